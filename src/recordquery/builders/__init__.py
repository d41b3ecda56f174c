"""Builders turning a validated QueryIntent into a sealed QueryPlan."""

from .filters import FilterBuilder, clause_predicate, combine
from .pagination import (
    CursorWindow,
    OffsetWindow,
    PaginationBuilder,
    Window,
    read_record_value,
)
from .plan import QueryPlan, QueryPlanBuilder
from .predicates import (
    AllOf,
    AnyOf,
    ArrayMatch,
    ArrayMode,
    Comparison,
    ContinuationKey,
    ContinuationPredicate,
    Membership,
    NullCheck,
    PatternMatch,
    PatternMode,
    Predicate,
    PredicateKind,
    Range,
)
from .search import SearchBuilder, SearchToken, tokenize_search_term
from .sort import OrderKey, SortBuilder, default_sort, effective_sort, sort_signature

__all__ = [
    "AllOf",
    "AnyOf",
    "ArrayMatch",
    "ArrayMode",
    "Comparison",
    "ContinuationKey",
    "ContinuationPredicate",
    "CursorWindow",
    "FilterBuilder",
    "Membership",
    "NullCheck",
    "OffsetWindow",
    "OrderKey",
    "PaginationBuilder",
    "PatternMatch",
    "PatternMode",
    "Predicate",
    "PredicateKind",
    "QueryPlan",
    "QueryPlanBuilder",
    "Range",
    "SearchBuilder",
    "SearchToken",
    "SortBuilder",
    "Window",
    "clause_predicate",
    "combine",
    "default_sort",
    "effective_sort",
    "read_record_value",
    "sort_signature",
    "tokenize_search_term",
]
