"""Result type and aggregated validation errors."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorScope(str, Enum):
    FILTER = "filter"
    SEARCH = "search"
    SORT = "sort"
    PAGINATION = "pagination"


class ErrorCode(str, Enum):
    """Machine-readable codes carried by every ``ValidationError``."""

    UNKNOWN_FIELD = "UNKNOWN_FIELD"
    FIELD_NOT_FILTERABLE = "FIELD_NOT_FILTERABLE"
    OPERATOR_NOT_ALLOWED = "OPERATOR_NOT_ALLOWED"
    VALUE_TYPE_MISMATCH = "VALUE_TYPE_MISMATCH"
    INVALID_VALUE_COUNT = "INVALID_VALUE_COUNT"
    MALFORMED_PARAMETER = "MALFORMED_PARAMETER"
    UNSUPPORTED_GROUP_NESTING = "UNSUPPORTED_GROUP_NESTING"
    NO_SEARCHABLE_FIELDS = "NO_SEARCHABLE_FIELDS"
    FIELD_NOT_SEARCHABLE = "FIELD_NOT_SEARCHABLE"
    FIELD_NOT_SORTABLE = "FIELD_NOT_SORTABLE"
    INVALID_SORT_DIRECTION = "INVALID_SORT_DIRECTION"
    INVALID_PAGE = "INVALID_PAGE"
    INVALID_PAGE_SIZE = "INVALID_PAGE_SIZE"
    INVALID_ROW_RANGE = "INVALID_ROW_RANGE"
    INVALID_CURSOR = "INVALID_CURSOR"
    CONFLICTING_PAGINATION = "CONFLICTING_PAGINATION"


@dataclass(frozen=True)
class ValidationError:
    """One semantic problem with a request, attributed to a scope and field."""

    scope: ErrorScope
    code: ErrorCode
    message: str
    field_name: str | None = None
    suggested_fix: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope": self.scope.value,
            "field": self.field_name,
            "code": self.code.value,
            "message": self.message,
            "suggestedFix": self.suggested_fix,
        }


_SUMMARY_KEYS: dict[ErrorScope, str] = {
    ErrorScope.FILTER: "filterErrors",
    ErrorScope.SORT: "sortErrors",
    ErrorScope.SEARCH: "searchErrors",
    ErrorScope.PAGINATION: "paginationErrors",
}


@dataclass(frozen=True)
class ValidationErrorAggregate:
    """
    Every validation error found in one request, in discovery order.

    Usage::

        aggregate = ValidationErrorAggregate.of(errors)
        body = aggregate.to_dict()
    """

    errors: tuple[ValidationError, ...] = ()

    @classmethod
    def of(cls, errors: list[ValidationError]) -> ValidationErrorAggregate:
        return cls(errors=tuple(errors))

    @property
    def is_empty(self) -> bool:
        return not self.errors

    def by_scope(self, scope: ErrorScope) -> list[ValidationError]:
        return [e for e in self.errors if e.scope is scope]

    def codes(self) -> list[ErrorCode]:
        return [e.code for e in self.errors]

    def summary(self) -> dict[str, int]:
        counts = {key: 0 for key in _SUMMARY_KEYS.values()}
        for error in self.errors:
            counts[_SUMMARY_KEYS[error.scope]] += 1
        counts["total"] = len(self.errors)
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "errors": [e.to_dict() for e in self.errors],
            "summary": self.summary(),
        }

    def __len__(self) -> int:
        return len(self.errors)


def default_error_list_factory() -> list[ValidationError]:
    return []


@dataclass
class Result(Generic[T]):
    """
    Outcome of a parse or validation step: a value, or the errors found.

    Errors are accumulated rather than raised so a caller always sees every
    problem at once.

    Usage::

        result = Result.success(intent)
        result = Result.failure([error, ...])
        if result.ok:
            use(result.value)
    """

    value: T | None = None
    errors: list[ValidationError] = field(default_factory=default_error_list_factory)

    @property
    def ok(self) -> bool:
        return self.value is not None and not self.errors

    # ── Factory methods ──────────────────────────────────────────

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, errors: list[ValidationError]) -> Result[T]:
        return cls(value=None, errors=list(errors))

    # ── Accessors ────────────────────────────────────────────────

    def unwrap(self) -> T:
        """Return the value, raising ``ValueError`` if the result failed."""
        if self.value is None or self.errors:
            codes = ", ".join(e.code.value for e in self.errors) or "no value"
            raise ValueError(f"Result is a failure: {codes}")
        return self.value

    def aggregate(self) -> ValidationErrorAggregate:
        return ValidationErrorAggregate.of(self.errors)

    def __bool__(self) -> bool:
        return self.ok
