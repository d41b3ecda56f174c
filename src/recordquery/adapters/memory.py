"""
In-memory query executor.

Evaluates a sealed plan over lists of mapping records.  Used by tests and as
the reference semantics for store-backed executors: pattern matches are
case-insensitive, nulls sort as the largest value, and a continuation
predicate selects the rows strictly after the cursor in plan order.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from ..builders.pagination import CursorWindow, read_record_value
from ..builders.plan import QueryPlan
from ..builders.predicates import (
    AllOf,
    AnyOf,
    ArrayMatch,
    ArrayMode,
    Comparison,
    ContinuationPredicate,
    Membership,
    NullCheck,
    PatternMatch,
    PatternMode,
    Predicate,
    Range,
)
from ..builders.sort import OrderKey
from ..operators import NullsPosition, Operator, SortDirection
from ..ports import ExecutionResult

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]

_COMPARISONS: dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.EQ: lambda actual, expected: bool(actual == expected),
    Operator.NE: lambda actual, expected: bool(actual != expected),
    Operator.GT: lambda actual, expected: bool(actual > expected),
    Operator.GE: lambda actual, expected: bool(actual >= expected),
    Operator.LT: lambda actual, expected: bool(actual < expected),
    Operator.LE: lambda actual, expected: bool(actual <= expected),
}

_ORDERING = frozenset({Operator.GT, Operator.GE, Operator.LT, Operator.LE})


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def align_values(left: Any, right: Any) -> tuple[Any, Any]:
    """
    Put an identifier string and a number on one type.

    Identifier fields arrive as strings while stores often keep them as
    numbers; ``"12"`` against ``12`` compares numerically, a non-numeric
    string against a number compares as text.
    """
    if isinstance(left, str) and _is_number(right):
        try:
            return type(right)(left), right
        except ValueError:
            return left, str(right)
    if isinstance(right, str) and _is_number(left):
        aligned_right, aligned_left = align_values(right, left)
        return aligned_left, aligned_right
    return left, right


def compare_values(
    left: Any, right: Any, direction: SortDirection, nulls: NullsPosition
) -> int:
    """Three-way comparison of two key values in output order."""
    if left is None and right is None:
        return 0
    if left is None:
        return 1 if nulls is NullsPosition.LAST else -1
    if right is None:
        return -1 if nulls is NullsPosition.LAST else 1
    left, right = align_values(left, right)
    if left == right:
        return 0
    result = -1 if left < right else 1
    return result if direction is SortDirection.ASC else -result


def _as_collection(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Iterable):
        return list(value)
    return [value]


class InMemoryQueryExecutor:
    """
    Fake executor over ``{entity_type: [record, ...]}``.

    Usage::

        executor = InMemoryQueryExecutor({"products": [{"id": 1, ...}]})
        result = await executor.execute("products", plan)
    """

    def __init__(self, data: Mapping[str, Sequence[Record]] | None = None) -> None:
        self._data: dict[str, list[Record]] = {
            entity: list(records) for entity, records in (data or {}).items()
        }
        self.executed_plans: list[QueryPlan] = []

    def add(self, entity_type: str, *records: Record) -> None:
        self._data.setdefault(entity_type, []).extend(records)

    async def execute(
        self,
        entity_type: str,
        plan: QueryPlan,
        *,
        include_total: bool = True,
    ) -> ExecutionResult:
        self.executed_plans.append(plan)
        conditions = list(plan.predicates)
        if plan.full_text is not None:
            conditions.append(plan.full_text)

        matched = [
            record
            for record in self._data.get(entity_type, [])
            if all(self.matches(p, record) for p in conditions)
        ]
        ordered = self.order(matched, plan.order_by)

        window = plan.window
        if isinstance(window, CursorWindow):
            if window.continuation is not None:
                ordered = [
                    r for r in ordered if self.matches(window.continuation, r)
                ]
            records = ordered[: window.page_size]
            has_more = len(ordered) > window.page_size
        else:
            records = ordered[window.offset : window.offset + window.limit]
            has_more = window.offset + window.limit < len(matched)

        logger.debug(
            "In-memory %s query matched %d records, returning %d",
            entity_type,
            len(matched),
            len(records),
        )
        return ExecutionResult(
            records=records,
            total_count=len(matched) if include_total else None,
            has_more=has_more,
        )

    # ── Ordering ─────────────────────────────────────────────────

    @staticmethod
    def order(records: list[Record], order_by: tuple[OrderKey, ...]) -> list[Record]:
        def compare(left: Record, right: Record) -> int:
            for key in order_by:
                result = compare_values(
                    read_record_value(left, key.field),
                    read_record_value(right, key.field),
                    key.direction,
                    key.nulls_position,
                )
                if result:
                    return result
            return 0

        return sorted(records, key=functools.cmp_to_key(compare))

    # ── Predicate evaluation ─────────────────────────────────────

    def matches(self, predicate: Predicate, record: Record) -> bool:
        if isinstance(predicate, AllOf):
            return all(self.matches(child, record) for child in predicate.children)
        if isinstance(predicate, AnyOf):
            return any(self.matches(child, record) for child in predicate.children)
        if isinstance(predicate, ContinuationPredicate):
            return self._after(predicate, record)

        actual = read_record_value(record, predicate.field)
        if isinstance(predicate, Comparison):
            if actual is None and predicate.operator in _ORDERING:
                return False
            return _COMPARISONS[predicate.operator](
                *align_values(actual, predicate.value)
            )
        if isinstance(predicate, Range):
            if actual is None:
                return False
            low, value = align_values(predicate.low, actual)
            value, high = align_values(value, predicate.high)
            return bool(low <= value <= high)
        if isinstance(predicate, Membership):
            if actual is None:
                return False
            found = any(
                left == right
                for left, right in (
                    align_values(actual, value) for value in predicate.values
                )
            )
            return found != predicate.negated
        if isinstance(predicate, PatternMatch):
            return self._pattern(predicate, actual)
        if isinstance(predicate, NullCheck):
            return (actual is None) == predicate.is_null
        if isinstance(predicate, ArrayMatch):
            return self._array(predicate, actual)
        raise ValueError(f"Unsupported predicate for in-memory evaluation: {predicate}")

    @staticmethod
    def _pattern(predicate: PatternMatch, actual: Any) -> bool:
        if actual is None:
            return False
        text = str(actual).lower()
        pattern = predicate.pattern.lower()
        if predicate.mode is PatternMode.STARTS_WITH:
            found = text.startswith(pattern)
        elif predicate.mode is PatternMode.ENDS_WITH:
            found = text.endswith(pattern)
        else:
            found = pattern in text
        return found != predicate.negated

    @staticmethod
    def _array(predicate: ArrayMatch, actual: Any) -> bool:
        items = _as_collection(actual)
        if predicate.mode is ArrayMode.CONTAINS_ALL:
            return all(v in items for v in predicate.values)
        overlap = any(v in items for v in predicate.values)
        if predicate.mode is ArrayMode.CONTAINS_NONE:
            return not overlap
        return overlap

    @staticmethod
    def _after(predicate: ContinuationPredicate, record: Record) -> bool:
        for key in predicate.keys:
            result = compare_values(
                read_record_value(record, key.field),
                key.value,
                key.direction,
                key.nulls_position,
            )
            if result:
                return result > 0
        return False
