"""Tests for QueryValidator: every scope, every error code, aggregation."""

from __future__ import annotations

import datetime

import pytest

from recordquery import (
    CursorCodec,
    CursorState,
    EntityNotRegisteredError,
    ErrorCode,
    ErrorScope,
    FilterGroup,
    LogicalOperator,
    Operator,
    ParsedQuerySpec,
    SortDirection,
    WindowKind,
)
from recordquery.model import (
    RawFilterClause,
    RawPaginationSpec,
    RawSearchSpec,
    RawSortClause,
)


def spec(**kwargs) -> ParsedQuerySpec:
    return ParsedQuerySpec(**kwargs)


def where(*clauses: tuple) -> ParsedQuerySpec:
    return spec(filters=tuple(RawFilterClause(f, op, v) for f, op, v in clauses))


def codes(result) -> list[ErrorCode]:
    return result.aggregate().codes()


# ── Happy path ───────────────────────────────────────────────────


def test_valid_request_produces_intent(validator) -> None:
    raw = spec(
        filters=(
            RawFilterClause("status", "equals", ("active",)),
            RawFilterClause("price", "gt", ("20",)),
            RawFilterClause("quantity", "between", ("2", "8")),
        ),
        search=RawSearchSpec(term="red"),
        pagination=RawPaginationSpec(page="2", page_size="10"),
    )
    intent = validator.validate(raw, "products").unwrap()

    status, price, quantity = intent.filters
    assert status.operator is Operator.EQ
    assert status.value == "active"
    assert price.operator is Operator.GT
    assert price.value == 20.0
    assert quantity.value == (2, 8)

    assert intent.search is not None
    assert [f.name for f in intent.search.fields] == ["name"]
    assert intent.search.operator is Operator.CONTAINS

    (sort,) = intent.sort
    assert sort.field.name == "id"
    assert sort.direction is SortDirection.ASC
    assert sort.is_default

    assert intent.pagination.kind is WindowKind.OFFSET
    assert intent.pagination.page == 2
    assert intent.pagination.page_size == 10
    assert intent.pagination.offset == 10


def test_values_are_coerced_to_native_types(validator) -> None:
    raw = where(
        ("created_at", "greaterThan", ("2024-01-02T03:00:00Z",)),
        ("released_on", "lessThanOrEqual", ("2024-01-05",)),
        ("tags", "overlap", ("new", "sale")),
        ("category_id", "in", ("1", "2")),
        ("name", "isNull", ("ignored",)),
    )
    created, released, tags, category, name = (
        validator.validate(raw, "products").unwrap().filters
    )
    assert created.value == datetime.datetime(
        2024, 1, 2, 3, tzinfo=datetime.timezone.utc
    )
    assert released.value == datetime.date(2024, 1, 5)
    assert tags.value == ("new", "sale")
    assert category.value == ("1", "2")
    assert name.value is None
    assert name.values == ()


def test_groups_and_logic_are_preserved(validator) -> None:
    group = FilterGroup(group_id="g0", logic=LogicalOperator.AND)
    raw = spec(
        filters=(RawFilterClause("status", "equals", ("active",), group),),
        filter_logic=LogicalOperator.OR,
    )
    intent = validator.validate(raw, "products").unwrap()
    assert intent.filter_logic is LogicalOperator.OR
    assert intent.filters[0].group == group


def test_unregistered_entity_raises(validator) -> None:
    with pytest.raises(EntityNotRegisteredError):
        validator.validate(spec(), "prodcuts")


# ── Filters ──────────────────────────────────────────────────────


def test_unknown_filter_field_suggests_close_match(validator) -> None:
    result = validator.validate(where(("stauts", "equals", ("active",))), "products")
    (error,) = result.errors
    assert error.code is ErrorCode.UNKNOWN_FIELD
    assert error.scope is ErrorScope.FILTER
    assert error.field_name == "stauts"
    assert error.suggested_fix.startswith("Did you mean: status")
    assert "internal_code" not in error.suggested_fix


def test_field_not_filterable(validator) -> None:
    result = validator.validate(where(("internal_code", "equals", ("X",))), "products")
    assert codes(result) == [ErrorCode.FIELD_NOT_FILTERABLE]


def test_operator_not_allowed_lists_allowed_operators(validator) -> None:
    result = validator.validate(where(("price", "between", ("10", "50"))), "products")
    (error,) = result.errors
    assert error.code is ErrorCode.OPERATOR_NOT_ALLOWED
    assert error.field_name == "price"
    assert error.suggested_fix.startswith(
        "Allowed operators: equals, notEquals, greaterThan, lessThan, in."
    )


def test_unknown_operator_is_not_allowed(validator) -> None:
    result = validator.validate(where(("name", "soundsLike", ("bob",))), "products")
    assert codes(result) == [ErrorCode.OPERATOR_NOT_ALLOWED]


def test_every_disallowed_operator_yields_exactly_one_error(
    validator, fields
) -> None:
    checked = 0
    for descriptor in fields.values():
        if not descriptor.is_filterable:
            continue
        for operator in Operator:
            if descriptor.allows(operator):
                continue
            raw = where((descriptor.name, operator.value, ("1",)))
            result = validator.validate(raw, "products")
            assert codes(result) == [ErrorCode.OPERATOR_NOT_ALLOWED], (
                descriptor.name,
                operator,
            )
            checked += 1
    assert checked > 0


@pytest.mark.parametrize(
    ("field", "operator", "values"),
    [
        ("quantity", "between", ("1",)),
        ("quantity", "between", ("1", "2", "3")),
        ("price", "equals", ("1", "2")),
        ("status", "in", ()),
        ("name", "contains", ()),
    ],
)
def test_invalid_value_count(validator, field, operator, values) -> None:
    result = validator.validate(where((field, operator, values)), "products")
    assert codes(result) == [ErrorCode.INVALID_VALUE_COUNT]


@pytest.mark.parametrize(
    ("field", "value", "fix"),
    [
        ("quantity", "abc", "Provide an integer."),
        ("quantity", "2.5", "Provide an integer."),
        ("price", "inf", "Provide a number."),
        ("released_on", "2024-13-01", "Provide an ISO date (YYYY-MM-DD)."),
        ("created_at", "yesterday", "Provide an ISO datetime."),
        ("status", "deleted", "Provide one of the field's options."),
    ],
)
def test_value_type_mismatch(validator, field, value, fix) -> None:
    result = validator.validate(where((field, "equals", (value,))), "products")
    (error,) = result.errors
    assert error.code is ErrorCode.VALUE_TYPE_MISMATCH
    assert error.suggested_fix == fix


# ── Search ───────────────────────────────────────────────────────


def test_search_with_explicit_fields_and_operator(validator) -> None:
    raw = spec(
        search=RawSearchSpec(
            term="red", fields=("description", "name"), operator="startsWith"
        )
    )
    search = validator.validate(raw, "products").unwrap().search
    assert search is not None
    assert [f.name for f in search.fields] == ["description", "name"]
    assert search.operator is Operator.STARTS_WITH


def test_search_on_unknown_field(validator) -> None:
    raw = spec(search=RawSearchSpec(term="red", fields=("nmae", "name")))
    result = validator.validate(raw, "products")
    (error,) = result.errors
    assert error.code is ErrorCode.UNKNOWN_FIELD
    assert error.scope is ErrorScope.SEARCH


def test_search_on_unsearchable_field_only(validator) -> None:
    raw = spec(search=RawSearchSpec(term="red", fields=("status",)))
    result = validator.validate(raw, "products")
    assert codes(result) == [
        ErrorCode.FIELD_NOT_SEARCHABLE,
        ErrorCode.NO_SEARCHABLE_FIELDS,
    ]


def test_search_without_searchable_fields(validator) -> None:
    result = validator.validate(spec(search=RawSearchSpec(term="x")), "audits")
    assert codes(result) == [ErrorCode.NO_SEARCHABLE_FIELDS]


def test_search_operator_must_be_supported(validator) -> None:
    raw = spec(search=RawSearchSpec(term="red", operator="between"))
    result = validator.validate(raw, "products")
    (error,) = result.errors
    assert error.code is ErrorCode.OPERATOR_NOT_ALLOWED
    assert error.scope is ErrorScope.SEARCH


# ── Sort ─────────────────────────────────────────────────────────


def test_explicit_sort(validator) -> None:
    raw = spec(sort=(RawSortClause("price", "DESC"), RawSortClause("name")))
    price, name = validator.validate(raw, "products").unwrap().sort
    assert (price.field.name, price.direction) == ("price", SortDirection.DESC)
    assert (name.field.name, name.direction) == ("name", SortDirection.ASC)
    assert not price.is_default


def test_sort_errors(validator) -> None:
    raw = spec(
        sort=(
            RawSortClause("name", "sideways"),
            RawSortClause("nmae", "asc"),
            RawSortClause("internal_code", "asc"),
        )
    )
    result = validator.validate(raw, "products")
    assert codes(result) == [
        ErrorCode.INVALID_SORT_DIRECTION,
        ErrorCode.UNKNOWN_FIELD,
        ErrorCode.FIELD_NOT_SORTABLE,
    ]
    assert all(e.scope is ErrorScope.SORT for e in result.errors)


def test_default_sort_falls_back_to_created_at(validator) -> None:
    (sort,) = validator.validate(spec(), "events").unwrap().sort
    assert sort.field.name == "created_at"
    assert sort.direction is SortDirection.DESC
    assert sort.is_default


def test_no_sortable_field_means_no_default_sort(validator) -> None:
    assert validator.validate(spec(), "audits").unwrap().sort == ()


# ── Pagination ───────────────────────────────────────────────────


def paginate(validator, **kwargs):
    return validator.validate(spec(pagination=RawPaginationSpec(**kwargs)), "products")


def test_default_pagination(validator) -> None:
    pagination = paginate(validator).unwrap().pagination
    assert (pagination.page, pagination.page_size, pagination.offset) == (1, 20, 0)


@pytest.mark.parametrize("size", ["0", "101", "-3", "ten"])
def test_invalid_page_size(validator, size) -> None:
    result = paginate(validator, page_size=size)
    (error,) = result.errors
    assert error.code is ErrorCode.INVALID_PAGE_SIZE
    assert error.field_name == "pageSize"


@pytest.mark.parametrize("page", ["0", "-1", "first"])
def test_invalid_page(validator, page) -> None:
    assert codes(paginate(validator, page=page)) == [ErrorCode.INVALID_PAGE]


def test_zero_based_page(validator) -> None:
    pagination = paginate(
        validator, page="1", page_size="25", page_base=0
    ).unwrap().pagination
    assert (pagination.page, pagination.offset) == (2, 25)


def test_offset_pagination(validator) -> None:
    pagination = paginate(validator, offset="30", page_size="10").unwrap().pagination
    assert (pagination.page, pagination.offset) == (4, 30)
    assert codes(paginate(validator, offset="-5")) == [ErrorCode.INVALID_PAGE]


def test_row_range(validator) -> None:
    pagination = paginate(validator, start_row="20", end_row="40").unwrap().pagination
    assert (pagination.page, pagination.page_size, pagination.offset) == (2, 20, 20)


@pytest.mark.parametrize(
    ("start", "end", "code"),
    [
        ("10", "5", ErrorCode.INVALID_ROW_RANGE),
        ("-1", "5", ErrorCode.INVALID_ROW_RANGE),
        ("5", "5", ErrorCode.INVALID_ROW_RANGE),
        ("0", None, ErrorCode.INVALID_ROW_RANGE),
        ("0", "101", ErrorCode.INVALID_PAGE_SIZE),
    ],
)
def test_invalid_row_range(validator, start, end, code) -> None:
    assert codes(paginate(validator, start_row=start, end_row=end)) == [code]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"page": "1", "offset": "10"},
        {"offset": "10", "start_row": "0", "end_row": "10"},
        {"page": "2", "start_row": "0", "end_row": "10"},
        {"cursor": "abc.def", "page": "2"},
    ],
)
def test_conflicting_pagination(validator, kwargs) -> None:
    assert codes(paginate(validator, **kwargs)) == [ErrorCode.CONFLICTING_PAGINATION]


# ── Cursor ───────────────────────────────────────────────────────


def id_cursor(value, secret: str = "test-secret") -> str:
    state = CursorState(keys=(("id", SortDirection.ASC),), values=(value,))
    return CursorCodec(secret).encode(state)


def test_valid_cursor(validator) -> None:
    token = id_cursor(10)
    pagination = paginate(validator, cursor=token, page_size="5").unwrap().pagination
    assert pagination.kind is WindowKind.CURSOR
    assert pagination.page_size == 5
    assert pagination.cursor_token == token
    assert pagination.cursor is not None
    assert pagination.cursor.values == (10,)


@pytest.mark.parametrize(
    "token",
    ["not-a-token", "abc.def", id_cursor(10, secret="other-secret"), id_cursor("x")],
)
def test_invalid_cursor(validator, token) -> None:
    (error,) = paginate(validator, cursor=token).errors
    assert error.code is ErrorCode.INVALID_CURSOR
    assert error.field_name == "cursor"


def test_cursor_for_a_different_sort(validator) -> None:
    raw = spec(
        sort=(RawSortClause("name", "desc"),),
        pagination=RawPaginationSpec(cursor=id_cursor(10)),
    )
    (error,) = validator.validate(raw, "products").errors
    assert error.code is ErrorCode.INVALID_CURSOR
    assert "different sort order" in error.message


# ── Aggregation ──────────────────────────────────────────────────


def test_errors_from_every_scope_are_aggregated(validator) -> None:
    raw = spec(
        filters=(RawFilterClause("foo", "equals", ("1",)),),
        search=RawSearchSpec(term="red", fields=("status",)),
        sort=(RawSortClause("name", "up"),),
        pagination=RawPaginationSpec(page_size="0"),
    )
    aggregate = validator.validate(raw, "products").aggregate()
    assert aggregate.codes() == [
        ErrorCode.UNKNOWN_FIELD,
        ErrorCode.FIELD_NOT_SEARCHABLE,
        ErrorCode.NO_SEARCHABLE_FIELDS,
        ErrorCode.INVALID_SORT_DIRECTION,
        ErrorCode.INVALID_PAGE_SIZE,
    ]
    assert aggregate.summary() == {
        "filterErrors": 1,
        "sortErrors": 1,
        "searchErrors": 2,
        "paginationErrors": 1,
        "total": 5,
    }
    body = aggregate.to_dict()
    assert body["errors"][0] == {
        "scope": "filter",
        "field": "foo",
        "code": "UNKNOWN_FIELD",
        "message": "Unknown field 'foo'",
        "suggestedFix": body["errors"][0]["suggestedFix"],
    }


def test_every_bad_clause_is_reported(validator) -> None:
    raw = where(
        ("foo", "equals", ("1",)),
        ("quantity", "equals", ("x",)),
        ("price", "between", ("1", "2")),
    )
    assert codes(validator.validate(raw, "products")) == [
        ErrorCode.UNKNOWN_FIELD,
        ErrorCode.VALUE_TYPE_MISMATCH,
        ErrorCode.OPERATOR_NOT_ALLOWED,
    ]
