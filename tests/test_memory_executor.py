"""Tests for the in-memory executor that backs the pipeline tests."""

from __future__ import annotations

import pytest

from recordquery import (
    CursorWindow,
    IQueryExecutor,
    InMemoryQueryExecutor,
    NullsPosition,
    OffsetWindow,
    Operator,
    OrderKey,
    QueryPlanBuilder,
    SortDirection,
)
from recordquery.adapters import compare_values
from recordquery.builders import (
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
    Range,
)

BY_ID = (OrderKey("id", SortDirection.ASC, NullsPosition.LAST),)
FIRST_HUNDRED = OffsetWindow(offset=0, limit=100, page=1, page_size=100)


def plan(predicates=(), window=FIRST_HUNDRED, order_by=BY_ID, full_text=None):
    return (
        QueryPlanBuilder("products")
        .with_predicates(tuple(predicates))
        .with_full_text(full_text)
        .with_order_by(order_by)
        .with_window(window)
        .seal()
    )


def ids(result) -> list[int]:
    return [record["id"] for record in result.records]


def test_executor_satisfies_protocol(executor) -> None:
    assert isinstance(executor, IQueryExecutor)


@pytest.mark.parametrize(
    ("left", "right", "direction", "nulls", "expected"),
    [
        (1, 2, SortDirection.ASC, NullsPosition.LAST, -1),
        (1, 2, SortDirection.DESC, NullsPosition.FIRST, 1),
        (None, 2, SortDirection.ASC, NullsPosition.LAST, 1),
        (None, 2, SortDirection.DESC, NullsPosition.FIRST, -1),
        (None, None, SortDirection.ASC, NullsPosition.LAST, 0),
        ("a", "a", SortDirection.DESC, NullsPosition.FIRST, 0),
        ("10", 9, SortDirection.ASC, NullsPosition.LAST, 1),
        ("b", 9, SortDirection.ASC, NullsPosition.LAST, 1),
    ],
)
def test_compare_values(left, right, direction, nulls, expected) -> None:
    assert compare_values(left, right, direction, nulls) == expected


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("predicate", "expected"),
    [
        (Comparison("price", Operator.LE, 30.0), [1, 2, 3]),
        (Comparison("quantity", Operator.LT, 3), [1, 2]),
        (Comparison("quantity", Operator.EQ, None), [5, 10, 15, 20, 25]),
        (Range("quantity", 8, 11), [8, 9, 11]),
        (Membership("category_id", ("0",)), [4, 8, 12, 16, 20, 24]),
        (
            Membership("status", ("active", "inactive"), negated=True),
            [2, 5, 8, 11, 14, 17, 20, 23],
        ),
        (PatternMatch("name", "product 0"), [1, 2, 3, 4, 5, 6, 7, 8, 9]),
        (PatternMatch("name", "5", PatternMode.ENDS_WITH), [5, 15, 25]),
        (
            PatternMatch("description", "red", negated=True),
            [2, 4, 6, 8, 10, 12, 14, 16, 18, 20, 22, 24],
        ),
        (NullCheck("quantity"), [5, 10, 15, 20, 25]),
        (ArrayMatch("tags", ("sale", "other")), list(range(2, 26, 2))),
        (ArrayMatch("tags", ("new", "sale"), ArrayMode.CONTAINS_ALL), []),
        (
            ArrayMatch("tags", ("new",), ArrayMode.CONTAINS_NONE),
            list(range(2, 26, 2)),
        ),
        (
            AnyOf(
                (
                    Comparison("id", Operator.EQ, 1),
                    Comparison("id", Operator.GT, 23),
                )
            ),
            [1, 24, 25],
        ),
    ],
)
async def test_predicates(executor, predicate, expected) -> None:
    result = await executor.execute("products", plan([predicate]))
    assert ids(result) == expected


@pytest.mark.asyncio
async def test_predicates_and_full_text_are_anded(executor) -> None:
    result = await executor.execute(
        "products",
        plan(
            [Comparison("status", Operator.EQ, "active")],
            full_text=PatternMatch("description", "red"),
        ),
    )
    assert ids(result) == [3, 9, 15, 21]


@pytest.mark.asyncio
async def test_ordering_puts_nulls_last_ascending(executor) -> None:
    order_by = (
        OrderKey("quantity", SortDirection.ASC, NullsPosition.LAST),
        OrderKey("id", SortDirection.DESC, NullsPosition.FIRST),
    )
    result = await executor.execute("products", plan(order_by=order_by))
    assert ids(result)[:3] == [1, 2, 3]
    assert ids(result)[-5:] == [25, 20, 15, 10, 5]


@pytest.mark.asyncio
async def test_offset_window(executor) -> None:
    window = OffsetWindow(offset=20, limit=10, page=3, page_size=10)
    result = await executor.execute("products", plan(window=window))
    assert ids(result) == [21, 22, 23, 24, 25]
    assert result.total_count == 25
    assert not result.has_more

    window = OffsetWindow(offset=10, limit=10, page=2, page_size=10)
    result = await executor.execute(
        "products", plan(window=window), include_total=False
    )
    assert result.total_count is None
    assert result.has_more


@pytest.mark.asyncio
async def test_cursor_window_continues_after_key(executor) -> None:
    continuation = ContinuationPredicate(
        keys=(ContinuationKey("id", SortDirection.ASC, NullsPosition.LAST, 20),)
    )
    window = CursorWindow(page_size=3, continuation=continuation)
    result = await executor.execute("products", plan(window=window))
    assert ids(result) == [21, 22, 23]
    assert result.has_more

    window = CursorWindow(page_size=10, continuation=continuation)
    result = await executor.execute("products", plan(window=window))
    assert ids(result) == [21, 22, 23, 24, 25]
    assert not result.has_more


@pytest.mark.asyncio
async def test_records_plans_and_unknown_entities() -> None:
    executor = InMemoryQueryExecutor()
    executor.add("products", {"id": 2}, {"id": 1})
    result = await executor.execute("products", plan())
    assert ids(result) == [1, 2]
    assert len(executor.executed_plans) == 1

    empty = await executor.execute("orders", plan())
    assert empty.records == []
    assert empty.total_count == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("predicate", "expected"),
    [
        (Comparison("id", Operator.EQ, "3"), [3]),
        (Comparison("id", Operator.GT, "23"), [24, 25]),
        (Range("id", "8", "10"), [8, 9, 10]),
        (Membership("id", ("12", "x", "3")), [3, 12]),
        (Comparison("id", Operator.EQ, "abc"), []),
    ],
)
async def test_identifier_strings_match_numeric_keys(
    executor, predicate, expected
) -> None:
    result = await executor.execute("products", plan([predicate]))
    assert ids(result) == expected


@pytest.mark.asyncio
async def test_continuation_from_identifier_string(executor) -> None:
    continuation = ContinuationPredicate(
        keys=(ContinuationKey("id", SortDirection.ASC, NullsPosition.LAST, "9"),)
    )
    window = CursorWindow(page_size=3, continuation=continuation)
    result = await executor.execute("products", plan(window=window))
    assert ids(result) == [10, 11, 12]
