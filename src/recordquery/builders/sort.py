"""Sort builder — ordered ``ORDER BY`` keys and the default sort policy."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..model import SortClause
from ..operators import NullsPosition, SortDirection

if TYPE_CHECKING:
    from ..capabilities import FieldDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderKey:
    field: str
    direction: SortDirection
    nulls_position: NullsPosition

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "direction": self.direction.value,
            "nulls": self.nulls_position.value,
        }


def default_sort(
    fields: Mapping[str, FieldDescriptor],
    candidates: Iterable[tuple[str, str]],
) -> tuple[SortClause, ...]:
    """
    The first candidate that exists and is sortable, as a one-clause sort.

    With the default candidates that is ``id`` ascending, else
    ``created_at`` descending, else ``updated_at`` descending.  Empty when no
    candidate qualifies.
    """
    for name, direction in candidates:
        descriptor = fields.get(name)
        if descriptor is not None and descriptor.is_sortable:
            return (
                SortClause(
                    field=descriptor,
                    direction=SortDirection(direction),
                    is_default=True,
                ),
            )
    return ()


def effective_sort(
    clauses: Iterable[SortClause], max_clauses: int
) -> tuple[tuple[SortClause, ...], list[str], list[str]]:
    """
    Drop repeated fields (first wins) and cap the clause count.

    Returns the kept clauses plus the names dropped as duplicates and the
    names dropped by the cap.
    """
    kept: list[SortClause] = []
    seen: set[str] = set()
    duplicates: list[str] = []
    for clause in clauses:
        if clause.field.name in seen:
            duplicates.append(clause.field.name)
            continue
        seen.add(clause.field.name)
        kept.append(clause)
    truncated = [c.field.name for c in kept[max_clauses:]]
    return tuple(kept[:max_clauses]), duplicates, truncated


def sort_signature(
    clauses: Iterable[SortClause],
) -> tuple[tuple[str, SortDirection], ...]:
    """The ``(field, direction)`` key a cursor must have been issued for."""
    return tuple((c.field.name, c.direction) for c in clauses)


class SortBuilder:
    """Turn validated sort clauses into ordered :class:`OrderKey` values."""

    def __init__(self, max_clauses: int) -> None:
        self._max_clauses = max_clauses

    def build(self, clauses: Iterable[SortClause]) -> tuple[OrderKey, ...]:
        kept, duplicates, truncated = effective_sort(clauses, self._max_clauses)
        if duplicates:
            logger.warning("Dropped repeated sort fields: %s", ", ".join(duplicates))
        if truncated:
            logger.warning(
                "Sort capped at %d clauses; dropped: %s",
                self._max_clauses,
                ", ".join(truncated),
            )
        return tuple(
            OrderKey(
                field=clause.field.name,
                direction=clause.direction,
                nulls_position=clause.nulls_position,
            )
            for clause in kept
        )
