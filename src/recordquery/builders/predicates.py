"""
Tagged predicate variants handed to the execution collaborator.

Each predicate is a frozen value describing *what* to match; none of them
carry query text.  An executor translates them into its own query language
(or evaluates them directly, see ``recordquery.adapters.memory``).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..operators import NullsPosition, Operator, SortDirection


class PredicateKind(str, Enum):
    COMPARISON = "comparison"
    RANGE = "range"
    MEMBERSHIP = "membership"
    PATTERN = "pattern"
    NULL_CHECK = "null_check"
    ARRAY = "array"
    ALL_OF = "all_of"
    ANY_OF = "any_of"
    CONTINUATION = "continuation"


class PatternMode(str, Enum):
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"


class ArrayMode(str, Enum):
    OVERLAP = "overlap"
    CONTAINS_ALL = "contains_all"
    CONTAINS_NONE = "contains_none"


@dataclass(frozen=True)
class Comparison:
    """``field <op> value`` for equality and ordering operators."""

    field: str
    operator: Operator
    value: Any

    @property
    def kind(self) -> PredicateKind:
        return PredicateKind.COMPARISON

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "field": self.field,
            "operator": self.operator.value,
            "value": self.value,
        }


@dataclass(frozen=True)
class Range:
    """Inclusive ``low <= field <= high``."""

    field: str
    low: Any
    high: Any

    @property
    def kind(self) -> PredicateKind:
        return PredicateKind.RANGE

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "field": self.field,
            "low": self.low,
            "high": self.high,
        }


@dataclass(frozen=True)
class Membership:
    field: str
    values: tuple[Any, ...]
    negated: bool = False

    @property
    def kind(self) -> PredicateKind:
        return PredicateKind.MEMBERSHIP

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "field": self.field,
            "values": list(self.values),
            "negated": self.negated,
        }


@dataclass(frozen=True)
class PatternMatch:
    """Case-insensitive substring/prefix/suffix match on a text field."""

    field: str
    pattern: str
    mode: PatternMode = PatternMode.CONTAINS
    negated: bool = False

    @property
    def kind(self) -> PredicateKind:
        return PredicateKind.PATTERN

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "field": self.field,
            "pattern": self.pattern,
            "mode": self.mode.value,
            "negated": self.negated,
        }


@dataclass(frozen=True)
class NullCheck:
    field: str
    is_null: bool = True

    @property
    def kind(self) -> PredicateKind:
        return PredicateKind.NULL_CHECK

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "field": self.field, "isNull": self.is_null}


@dataclass(frozen=True)
class ArrayMatch:
    """Set relation between a multi-valued field and the given values."""

    field: str
    values: tuple[Any, ...]
    mode: ArrayMode = ArrayMode.OVERLAP

    @property
    def kind(self) -> PredicateKind:
        return PredicateKind.ARRAY

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "field": self.field,
            "values": list(self.values),
            "mode": self.mode.value,
        }


@dataclass(frozen=True)
class AllOf:
    children: tuple[Predicate, ...]

    @property
    def kind(self) -> PredicateKind:
        return PredicateKind.ALL_OF

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class AnyOf:
    children: tuple[Predicate, ...]

    @property
    def kind(self) -> PredicateKind:
        return PredicateKind.ANY_OF

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class ContinuationKey:
    field: str
    direction: SortDirection
    nulls_position: NullsPosition
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "direction": self.direction.value,
            "nulls": self.nulls_position.value,
            "value": self.value,
        }


@dataclass(frozen=True)
class ContinuationPredicate:
    """
    Rows strictly after ``keys`` in the plan's sort order.

    Conceptually ``WHERE (k1, k2, ...) > (v1, v2, ...)`` with each key's
    direction and nulls position honoured: a row qualifies when, for some
    ``i``, it ties with the cursor on keys ``1..i-1`` and sorts after it on
    key ``i``.
    """

    keys: tuple[ContinuationKey, ...]

    @property
    def kind(self) -> PredicateKind:
        return PredicateKind.CONTINUATION

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "keys": [key.to_dict() for key in self.keys],
        }


Predicate = (
    Comparison
    | Range
    | Membership
    | PatternMatch
    | NullCheck
    | ArrayMatch
    | AllOf
    | AnyOf
    | ContinuationPredicate
)
