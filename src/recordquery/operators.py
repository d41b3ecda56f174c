"""Canonical operators, sort directions and the operator alias table."""

from __future__ import annotations

from enum import Enum


class Operator(str, Enum):
    """Canonical comparison/match operators understood by the pipeline."""

    # Equality
    EQ = "equals"
    NE = "notEquals"

    # Ordering
    GT = "greaterThan"
    GE = "greaterThanOrEqual"
    LT = "lessThan"
    LE = "lessThanOrEqual"
    BETWEEN = "between"

    # Set membership
    IN = "in"
    NOT_IN = "notIn"

    # Pattern matching
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"

    # Null checks
    IS_NULL = "isNull"
    IS_NOT_NULL = "isNotNull"

    # Multi-value (array) fields
    OVERLAP = "overlap"
    CONTAINS_ALL = "containsAll"
    CONTAINS_NONE = "containsNone"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class NullsPosition(str, Enum):
    FIRST = "first"
    LAST = "last"


class LogicalOperator(str, Enum):
    """How sibling filter clauses (or groups) combine."""

    AND = "and"
    OR = "or"


# Operators that take no value at all.
NULLARY_OPERATORS: frozenset[Operator] = frozenset(
    {Operator.IS_NULL, Operator.IS_NOT_NULL}
)

# Operators that take one or more values.
MULTI_VALUE_OPERATORS: frozenset[Operator] = frozenset(
    {
        Operator.IN,
        Operator.NOT_IN,
        Operator.OVERLAP,
        Operator.CONTAINS_ALL,
        Operator.CONTAINS_NONE,
    }
)

# Operators that take exactly two values (low, high).
RANGE_OPERATORS: frozenset[Operator] = frozenset({Operator.BETWEEN})

# Operators whose wire value may be a comma-separated list.
LIST_VALUED_OPERATORS: frozenset[Operator] = MULTI_VALUE_OPERATORS | RANGE_OPERATORS

OPERATOR_DESCRIPTIONS: dict[Operator, str] = {
    Operator.EQ: "Exact match",
    Operator.NE: "Not equal to",
    Operator.CONTAINS: "Text contains value",
    Operator.NOT_CONTAINS: "Text does not contain value",
    Operator.STARTS_WITH: "Text starts with value",
    Operator.ENDS_WITH: "Text ends with value",
    Operator.IN: "Value is in list",
    Operator.NOT_IN: "Value is not in list",
    Operator.GT: "Greater than",
    Operator.GE: "Greater than or equal to",
    Operator.LT: "Less than",
    Operator.LE: "Less than or equal to",
    Operator.BETWEEN: "Between two values",
    Operator.IS_NULL: "Field is empty/null",
    Operator.IS_NOT_NULL: "Field is not empty/null",
    Operator.OVERLAP: "Array values overlap",
    Operator.CONTAINS_ALL: "Array contains all values",
    Operator.CONTAINS_NONE: "Array contains none of the values",
}

# Map shorthand and symbolic names to canonical operators
_OP_ALIASES: dict[str, Operator] = {
    "eq": Operator.EQ,
    "=": Operator.EQ,
    "==": Operator.EQ,
    "is": Operator.EQ,
    "ne": Operator.NE,
    "neq": Operator.NE,
    "!=": Operator.NE,
    "not": Operator.NE,
    "gt": Operator.GT,
    ">": Operator.GT,
    "gte": Operator.GE,
    "ge": Operator.GE,
    ">=": Operator.GE,
    "lt": Operator.LT,
    "<": Operator.LT,
    "lte": Operator.LE,
    "le": Operator.LE,
    "<=": Operator.LE,
    "not_in": Operator.NOT_IN,
    "nin": Operator.NOT_IN,
    "not_contains": Operator.NOT_CONTAINS,
    "starts_with": Operator.STARTS_WITH,
    "startswith": Operator.STARTS_WITH,
    "ends_with": Operator.ENDS_WITH,
    "endswith": Operator.ENDS_WITH,
    "is_null": Operator.IS_NULL,
    "null": Operator.IS_NULL,
    "is_not_null": Operator.IS_NOT_NULL,
    "not_null": Operator.IS_NOT_NULL,
    "contains_all": Operator.CONTAINS_ALL,
    "contains_none": Operator.CONTAINS_NONE,
}

_CANONICAL: dict[str, Operator] = {op.value: op for op in Operator}
_CANONICAL_FOLDED: dict[str, Operator] = {op.value.lower(): op for op in Operator}


def resolve_operator(name: str) -> Operator | None:
    """Return the canonical operator for *name*, or ``None`` if unknown.

    Canonical names match case-sensitively first (``notIn``), then
    case-insensitively, then through the alias table (``NOT_IN``, ``gte``,
    ``>=``).
    """
    text = name.strip()
    if text in _CANONICAL:
        return _CANONICAL[text]
    folded = text.lower()
    return _CANONICAL_FOLDED.get(folded) or _OP_ALIASES.get(folded)


def canonical_operator_name(name: str) -> str:
    """Canonical wire name for *name*; unknown names pass through unchanged."""
    op = resolve_operator(name)
    return op.value if op is not None else name.strip()
