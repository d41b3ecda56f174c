"""
Request intent at its two stages.

``Raw*`` types and :class:`ParsedQuerySpec` are what a parser produces:
field names and operators are still the strings the client sent.  The
validated counterparts (:class:`FilterClause`, :class:`SortClause`,
:class:`QueryIntent` ...) reference registry descriptors and carry coerced,
native values only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from .operators import (
    MULTI_VALUE_OPERATORS,
    NULLARY_OPERATORS,
    RANGE_OPERATORS,
    LogicalOperator,
    NullsPosition,
    Operator,
    SortDirection,
)

if TYPE_CHECKING:
    from .capabilities import FieldDescriptor


# ── Parsed (pre-validation) ──────────────────────────────────────


@dataclass(frozen=True)
class FilterGroup:
    """A boolean group some filter clauses belong to."""

    group_id: str
    logic: LogicalOperator
    parent: FilterGroup | None = None

    @property
    def depth(self) -> int:
        """1 for a group directly under the root."""
        return 1 if self.parent is None else self.parent.depth + 1

    def lineage(self) -> tuple[FilterGroup, ...]:
        """Groups from the outermost down to this one."""
        chain: list[FilterGroup] = []
        node: FilterGroup | None = self
        while node is not None:
            chain.append(node)
            node = node.parent
        return tuple(reversed(chain))


@dataclass(frozen=True)
class RawFilterClause:
    field_name: str
    operator: str
    values: tuple[str, ...] = ()
    group: FilterGroup | None = None


@dataclass(frozen=True)
class RawSearchSpec:
    term: str
    fields: tuple[str, ...] = ()
    operator: str | None = None


@dataclass(frozen=True)
class RawSortClause:
    field_name: str
    direction: str = "asc"


@dataclass(frozen=True)
class RawPaginationSpec:
    """
    Pagination exactly as sent; the validator does all numeric parsing.

    ``page_base`` is 0 for formats whose page numbers start at zero.
    """

    page: str | None = None
    page_size: str | None = None
    offset: str | None = None
    start_row: str | None = None
    end_row: str | None = None
    cursor: str | None = None
    page_base: int = 1


@dataclass(frozen=True)
class ResponseOptions:
    response_format: str | None = None
    include_total: bool = True
    include_available_filters: bool = False
    include_metadata: bool = False


@dataclass(frozen=True)
class ParsedQuerySpec:
    """Canonical pre-validation intent produced by exactly one parser."""

    filters: tuple[RawFilterClause, ...] = ()
    search: RawSearchSpec | None = None
    sort: tuple[RawSortClause, ...] = ()
    pagination: RawPaginationSpec = field(default_factory=RawPaginationSpec)
    filter_logic: LogicalOperator = LogicalOperator.AND
    options: ResponseOptions = field(default_factory=ResponseOptions)


# ── Validated ────────────────────────────────────────────────────


class WindowKind(str, Enum):
    OFFSET = "offset"
    CURSOR = "cursor"


@dataclass(frozen=True)
class FilterClause:
    """A validated filter: known field, permitted operator, native values."""

    field: FieldDescriptor
    operator: Operator
    values: tuple[Any, ...] = ()
    group: FilterGroup | None = None

    @property
    def value(self) -> Any:
        """``None`` for null checks, a tuple for list/range operators."""
        if self.operator in NULLARY_OPERATORS:
            return None
        if self.operator in MULTI_VALUE_OPERATORS or self.operator in RANGE_OPERATORS:
            return self.values
        return self.values[0]


@dataclass(frozen=True)
class SearchSpec:
    term: str
    fields: tuple[FieldDescriptor, ...]
    operator: Operator = Operator.CONTAINS


@dataclass(frozen=True)
class SortClause:
    field: FieldDescriptor
    direction: SortDirection = SortDirection.ASC
    is_default: bool = False

    @property
    def nulls_position(self) -> NullsPosition:
        """Nulls sort as the largest value: last ascending, first descending."""
        if self.direction is SortDirection.ASC:
            return NullsPosition.LAST
        return NullsPosition.FIRST


@dataclass(frozen=True)
class CursorState:
    """Decoded continuation point: the sort key and the last row's values."""

    keys: tuple[tuple[str, SortDirection], ...]
    values: tuple[Any, ...]
    direction: str = "next"


@dataclass(frozen=True)
class PaginationSpec:
    """
    Normalized window request.

    Row-range and zero-based page inputs are folded into the same
    ``(page, page_size, offset)`` triple a one-based page request yields.
    """

    kind: WindowKind
    page_size: int
    page: int = 1
    offset: int = 0
    cursor: CursorState | None = None
    cursor_token: str | None = None


@dataclass(frozen=True)
class QueryIntent:
    entity_type: str
    filters: tuple[FilterClause, ...]
    search: SearchSpec | None
    sort: tuple[SortClause, ...]
    pagination: PaginationSpec
    filter_logic: LogicalOperator = LogicalOperator.AND
