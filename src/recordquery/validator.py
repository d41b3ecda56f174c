"""
QueryValidator — checks a ParsedQuerySpec against the capability registry.

Every clause of every scope is checked; errors are collected, never raised,
so a client sees all problems of a request in one response.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from difflib import get_close_matches
from typing import Any

from .builders.sort import default_sort, effective_sort, sort_signature
from .capabilities import FieldCapabilityRegistry, FieldDescriptor
from .coercion import coerce_value, describe_kind
from .config import PipelineConfig
from .cursor import CursorCodec
from .exceptions import CursorError
from .model import (
    CursorState,
    FilterClause,
    PaginationSpec,
    ParsedQuerySpec,
    QueryIntent,
    RawFilterClause,
    RawPaginationSpec,
    RawSearchSpec,
    RawSortClause,
    SearchSpec,
    SortClause,
    WindowKind,
)
from .operators import (
    MULTI_VALUE_OPERATORS,
    NULLARY_OPERATORS,
    RANGE_OPERATORS,
    Operator,
    SortDirection,
    resolve_operator,
)
from .result import ErrorCode, ErrorScope, Result, ValidationError

logger = logging.getLogger(__name__)


def _did_you_mean(name: str, candidates: Iterable[str]) -> str | None:
    matches = get_close_matches(name, list(candidates), n=3, cutoff=0.6)
    if not matches:
        return None
    return f"Did you mean: {', '.join(matches)}?"


def _join_fix(*parts: str | None) -> str | None:
    text = " ".join(p for p in parts if p)
    return text or None


class QueryValidator:
    """
    Turn a :class:`ParsedQuerySpec` into a :class:`QueryIntent`.

    Usage::

        validator = QueryValidator(registry, config)
        result = validator.validate(spec, "products")
        if not result.ok:
            body = result.aggregate().to_dict()
    """

    def __init__(
        self,
        registry: FieldCapabilityRegistry,
        config: PipelineConfig | None = None,
        codec: CursorCodec | None = None,
    ) -> None:
        self._registry = registry
        self._config = config or PipelineConfig()
        self._codec = codec or CursorCodec(
            self._config.cursor_secret.get_secret_value()
        )

    def validate(self, spec: ParsedQuerySpec, entity_type: str) -> Result[QueryIntent]:
        """
        Validate every scope of *spec* for *entity_type*.

        Raises:
            EntityNotRegisteredError: *entity_type* has no field metadata.
        """
        fields = self._registry.fields_for(entity_type)
        errors: list[ValidationError] = []

        filters = self._validate_filters(spec.filters, fields, errors)
        search = self._validate_search(spec.search, entity_type, fields, errors)
        sort = self._validate_sort(spec.sort, fields, errors)
        pagination = self._validate_pagination(spec.pagination, sort, fields, errors)

        if errors or pagination is None:
            logger.debug(
                "Validation of %s request failed with %d errors",
                entity_type,
                len(errors),
            )
            return Result.failure(errors)

        return Result.success(
            QueryIntent(
                entity_type=entity_type,
                filters=tuple(filters),
                search=search,
                sort=sort,
                pagination=pagination,
                filter_logic=spec.filter_logic,
            )
        )

    # ── Filters ──────────────────────────────────────────────────

    def _validate_filters(
        self,
        clauses: Iterable[RawFilterClause],
        fields: Mapping[str, FieldDescriptor],
        errors: list[ValidationError],
    ) -> list[FilterClause]:
        validated: list[FilterClause] = []
        for raw in clauses:
            clause = self._validate_filter(raw, fields, errors)
            if clause is not None:
                validated.append(clause)
        return validated

    def _validate_filter(
        self,
        raw: RawFilterClause,
        fields: Mapping[str, FieldDescriptor],
        errors: list[ValidationError],
    ) -> FilterClause | None:
        descriptor = fields.get(raw.field_name)
        if descriptor is None:
            errors.append(
                self._unknown_field(
                    ErrorScope.FILTER,
                    raw.field_name,
                    [f.name for f in fields.values() if f.is_filterable],
                )
            )
            return None
        if not descriptor.is_filterable:
            errors.append(
                ValidationError(
                    scope=ErrorScope.FILTER,
                    code=ErrorCode.FIELD_NOT_FILTERABLE,
                    message=f"Field '{raw.field_name}' cannot be filtered on",
                    field_name=raw.field_name,
                )
            )
            return None

        operator = resolve_operator(raw.operator)
        if operator is None or not descriptor.allows(operator):
            allowed = descriptor.sorted_operators()
            errors.append(
                ValidationError(
                    scope=ErrorScope.FILTER,
                    code=ErrorCode.OPERATOR_NOT_ALLOWED,
                    message=(
                        f"Operator '{raw.operator}' is not allowed on field "
                        f"'{raw.field_name}'"
                    ),
                    field_name=raw.field_name,
                    suggested_fix=_join_fix(
                        f"Allowed operators: {', '.join(allowed)}.",
                        _did_you_mean(raw.operator, allowed),
                    ),
                )
            )
            return None

        values = self._check_arity(raw, operator, errors)
        if values is None:
            return None

        coerced: list[Any] = []
        for value in values:
            try:
                coerced.append(coerce_value(descriptor, value))
            except ValueError as exc:
                errors.append(
                    ValidationError(
                        scope=ErrorScope.FILTER,
                        code=ErrorCode.VALUE_TYPE_MISMATCH,
                        message=(
                            f"Value '{value}' for field '{raw.field_name}' "
                            f"is invalid: {exc}"
                        ),
                        field_name=raw.field_name,
                        suggested_fix=(
                            f"Provide {describe_kind(descriptor.data_kind)}."
                        ),
                    )
                )
                return None

        return FilterClause(
            field=descriptor,
            operator=operator,
            values=tuple(coerced),
            group=raw.group,
        )

    @staticmethod
    def _check_arity(
        raw: RawFilterClause, operator: Operator, errors: list[ValidationError]
    ) -> tuple[str, ...] | None:
        """The values the operator takes, or ``None`` after recording an error."""
        if operator in NULLARY_OPERATORS:
            return ()

        count = len(raw.values)
        if operator in RANGE_OPERATORS:
            expected, ok = "exactly 2 values", count == 2
        elif operator in MULTI_VALUE_OPERATORS:
            expected, ok = "at least 1 value", count >= 1
        else:
            expected, ok = "exactly 1 value", count == 1
        if ok:
            return raw.values

        errors.append(
            ValidationError(
                scope=ErrorScope.FILTER,
                code=ErrorCode.INVALID_VALUE_COUNT,
                message=(
                    f"Operator '{operator.value}' on field '{raw.field_name}' "
                    f"takes {expected}, got {count}"
                ),
                field_name=raw.field_name,
            )
        )
        return None

    # ── Search ───────────────────────────────────────────────────

    def _validate_search(
        self,
        raw: RawSearchSpec | None,
        entity_type: str,
        fields: Mapping[str, FieldDescriptor],
        errors: list[ValidationError],
    ) -> SearchSpec | None:
        if raw is None:
            return None

        operator: Operator | None = self._config.default_search_operator
        if raw.operator is not None:
            operator = resolve_operator(raw.operator)
        if operator is None or operator not in self._config.search_operators:
            allowed = [
                op.value for op in Operator if op in self._config.search_operators
            ]
            errors.append(
                ValidationError(
                    scope=ErrorScope.SEARCH,
                    code=ErrorCode.OPERATOR_NOT_ALLOWED,
                    message=f"Search operator '{raw.operator}' is not supported",
                    suggested_fix=f"Allowed operators: {', '.join(allowed)}.",
                )
            )

        searchable = [f.name for f in fields.values() if f.is_searchable]
        chosen: list[FieldDescriptor] = []
        if raw.fields:
            for name in raw.fields:
                descriptor = fields.get(name)
                if descriptor is None:
                    errors.append(
                        self._unknown_field(ErrorScope.SEARCH, name, searchable)
                    )
                elif not descriptor.is_searchable:
                    errors.append(
                        ValidationError(
                            scope=ErrorScope.SEARCH,
                            code=ErrorCode.FIELD_NOT_SEARCHABLE,
                            message=f"Field '{name}' is not searchable",
                            field_name=name,
                            suggested_fix=(
                                f"Searchable fields: {', '.join(searchable)}."
                                if searchable
                                else None
                            ),
                        )
                    )
                elif descriptor not in chosen:
                    chosen.append(descriptor)
        else:
            chosen = self._registry.default_search_fields(entity_type)

        if not chosen:
            errors.append(
                ValidationError(
                    scope=ErrorScope.SEARCH,
                    code=ErrorCode.NO_SEARCHABLE_FIELDS,
                    message=f"No searchable fields for '{entity_type}'",
                    suggested_fix=(
                        f"Searchable fields: {', '.join(searchable)}."
                        if searchable
                        else None
                    ),
                )
            )
            return None
        if operator is None:
            return None
        return SearchSpec(term=raw.term, fields=tuple(chosen), operator=operator)

    # ── Sort ─────────────────────────────────────────────────────

    def _validate_sort(
        self,
        clauses: tuple[RawSortClause, ...],
        fields: Mapping[str, FieldDescriptor],
        errors: list[ValidationError],
    ) -> tuple[SortClause, ...]:
        if not clauses:
            return default_sort(fields, self._config.default_sort_candidates)

        sortable = [f.name for f in fields.values() if f.is_sortable]
        validated: list[SortClause] = []
        for raw in clauses:
            direction: SortDirection | None = None
            try:
                direction = SortDirection(raw.direction.strip().lower())
            except ValueError:
                errors.append(
                    ValidationError(
                        scope=ErrorScope.SORT,
                        code=ErrorCode.INVALID_SORT_DIRECTION,
                        message=(
                            f"Sort direction '{raw.direction}' for field "
                            f"'{raw.field_name}' is not valid"
                        ),
                        field_name=raw.field_name,
                        suggested_fix="Use 'asc' or 'desc'.",
                    )
                )

            descriptor = fields.get(raw.field_name)
            if descriptor is None:
                errors.append(
                    self._unknown_field(ErrorScope.SORT, raw.field_name, sortable)
                )
                continue
            if not descriptor.is_sortable:
                errors.append(
                    ValidationError(
                        scope=ErrorScope.SORT,
                        code=ErrorCode.FIELD_NOT_SORTABLE,
                        message=f"Field '{raw.field_name}' cannot be sorted on",
                        field_name=raw.field_name,
                        suggested_fix=_join_fix(
                            _did_you_mean(raw.field_name, sortable),
                            f"Sortable fields: {', '.join(sortable)}.",
                        ),
                    )
                )
                continue
            if direction is not None:
                validated.append(SortClause(field=descriptor, direction=direction))
        return tuple(validated)

    # ── Pagination ───────────────────────────────────────────────

    @staticmethod
    def _pagination_error(
        code: ErrorCode,
        message: str,
        field_name: str | None = None,
        suggested_fix: str | None = None,
    ) -> ValidationError:
        return ValidationError(
            scope=ErrorScope.PAGINATION,
            code=code,
            message=message,
            field_name=field_name,
            suggested_fix=suggested_fix,
        )

    def _validate_pagination(
        self,
        raw: RawPaginationSpec,
        sort: tuple[SortClause, ...],
        fields: Mapping[str, FieldDescriptor],
        errors: list[ValidationError],
    ) -> PaginationSpec | None:
        has_rows = raw.start_row is not None or raw.end_row is not None
        has_page = raw.page is not None
        has_offset = raw.offset is not None

        conflict: str | None = None
        if raw.cursor is not None and (has_page or has_offset or has_rows):
            conflict = "A cursor cannot be combined with page, offset or row range"
        elif has_page and (has_offset or has_rows):
            conflict = "'page' cannot be combined with offset or row range"
        elif has_offset and has_rows:
            conflict = "'offset' cannot be combined with a row range"
        if conflict is not None:
            errors.append(
                self._pagination_error(
                    ErrorCode.CONFLICTING_PAGINATION,
                    conflict,
                    suggested_fix="Send one pagination style per request.",
                )
            )
            return None

        if has_rows:
            return self._row_range(raw, errors)

        page_size = self._page_size(raw.page_size, errors)
        if raw.cursor is not None:
            return self._cursor_window(raw.cursor, page_size, sort, fields, errors)
        if has_offset:
            return self._offset_window(raw.offset, page_size, errors)
        return self._page_window(raw.page, raw.page_base, page_size, errors)

    def _page_size(self, raw: str | None, errors: list[ValidationError]) -> int | None:
        if raw is None:
            return self._config.default_page_size
        maximum = self._config.max_page_size
        try:
            size = int(raw)
        except ValueError:
            size = None
        if size is None or not 1 <= size <= maximum:
            errors.append(
                self._pagination_error(
                    ErrorCode.INVALID_PAGE_SIZE,
                    f"Page size '{raw}' must be an integer between 1 and {maximum}",
                    field_name="pageSize",
                    suggested_fix=f"Use a page size between 1 and {maximum}.",
                )
            )
            return None
        return size

    def _page_window(
        self,
        raw: str | None,
        page_base: int,
        page_size: int | None,
        errors: list[ValidationError],
    ) -> PaginationSpec | None:
        page = 1
        if raw is not None:
            try:
                page = int(raw) - page_base + 1
            except ValueError:
                page = 0
            if page < 1:
                errors.append(
                    self._pagination_error(
                        ErrorCode.INVALID_PAGE,
                        f"Page '{raw}' must be an integer of at least {page_base}",
                        field_name="page",
                    )
                )
                return None
        if page_size is None:
            return None
        return PaginationSpec(
            kind=WindowKind.OFFSET,
            page_size=page_size,
            page=page,
            offset=(page - 1) * page_size,
        )

    def _offset_window(
        self,
        raw: str | None,
        page_size: int | None,
        errors: list[ValidationError],
    ) -> PaginationSpec | None:
        try:
            offset = int(raw or "")
        except ValueError:
            offset = -1
        if offset < 0:
            errors.append(
                self._pagination_error(
                    ErrorCode.INVALID_PAGE,
                    f"Offset '{raw}' must be a non-negative integer",
                    field_name="offset",
                )
            )
            return None
        if page_size is None:
            return None
        return PaginationSpec(
            kind=WindowKind.OFFSET,
            page_size=page_size,
            page=offset // page_size + 1,
            offset=offset,
        )

    def _row_range(
        self, raw: RawPaginationSpec, errors: list[ValidationError]
    ) -> PaginationSpec | None:
        try:
            start = int(raw.start_row or "")
            end = int(raw.end_row or "")
        except ValueError:
            start, end = -1, -1
        if start < 0 or end <= start:
            errors.append(
                self._pagination_error(
                    ErrorCode.INVALID_ROW_RANGE,
                    f"Row range '{raw.start_row}'..'{raw.end_row}' is not valid",
                    field_name="startRow",
                    suggested_fix="Send integers with 0 <= startRow < endRow.",
                )
            )
            return None

        size = end - start
        maximum = self._config.max_page_size
        if size > maximum:
            errors.append(
                self._pagination_error(
                    ErrorCode.INVALID_PAGE_SIZE,
                    f"Row range of {size} rows exceeds the maximum of {maximum}",
                    field_name="endRow",
                    suggested_fix=f"Request at most {maximum} rows at a time.",
                )
            )
            return None
        return PaginationSpec(
            kind=WindowKind.OFFSET,
            page_size=size,
            page=start // size + 1,
            offset=start,
        )

    def _cursor_window(
        self,
        token: str,
        page_size: int | None,
        sort: tuple[SortClause, ...],
        fields: Mapping[str, FieldDescriptor],
        errors: list[ValidationError],
    ) -> PaginationSpec | None:
        def invalid(reason: str) -> None:
            errors.append(
                self._pagination_error(
                    ErrorCode.INVALID_CURSOR,
                    f"Cursor is not valid: {reason}",
                    field_name="cursor",
                    suggested_fix="Restart from the first page without a cursor.",
                )
            )

        try:
            state = self._codec.decode(token)
        except CursorError as exc:
            invalid(exc.reason)
            return None

        kept, _, _ = effective_sort(sort, self._config.max_sort_clauses)
        if state.keys != sort_signature(kept):
            invalid("it was issued for a different sort order")
            return None

        values: list[Any] = []
        for (name, _direction), value in zip(state.keys, state.values, strict=True):
            if value is None:
                values.append(None)
                continue
            try:
                values.append(coerce_value(fields[name], value))
            except ValueError:
                invalid(f"value for '{name}' does not fit the field")
                return None

        if page_size is None:
            return None
        return PaginationSpec(
            kind=WindowKind.CURSOR,
            page_size=page_size,
            cursor=CursorState(
                keys=state.keys, values=tuple(values), direction=state.direction
            ),
            cursor_token=token,
        )

    # ── Shared ───────────────────────────────────────────────────

    @staticmethod
    def _unknown_field(
        scope: ErrorScope, name: str, candidates: list[str]
    ) -> ValidationError:
        return ValidationError(
            scope=scope,
            code=ErrorCode.UNKNOWN_FIELD,
            message=f"Unknown field '{name}'",
            field_name=name,
            suggested_fix=_join_fix(
                _did_you_mean(name, candidates),
                f"Available fields: {', '.join(candidates)}." if candidates else None,
            ),
        )
