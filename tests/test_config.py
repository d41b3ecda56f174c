"""Tests for PipelineConfig, RequestEnvelope and the Result helpers."""

from __future__ import annotations

import pydantic
import pytest

from recordquery import (
    ErrorCode,
    ErrorScope,
    Operator,
    ParseError,
    PipelineConfig,
    RequestEnvelope,
    Result,
    ValidationError,
)
from recordquery.config import DEFAULT_RESERVED_PARAMS

# ── PipelineConfig ───────────────────────────────────────────────


def test_defaults() -> None:
    config = PipelineConfig()
    assert config.default_page_size == 20
    assert config.max_page_size == 1000
    assert config.max_group_depth == 1
    assert config.default_search_operator is Operator.CONTAINS
    assert config.default_sort_candidates[0] == ("id", "asc")
    assert {"page", "cursor", "responseFormat"} <= config.reserved_params


def test_generated_secret_is_random_and_hidden() -> None:
    first, second = PipelineConfig(), PipelineConfig()
    assert first.cursor_secret.get_secret_value()
    assert (
        first.cursor_secret.get_secret_value()
        != second.cursor_secret.get_secret_value()
    )
    assert first.cursor_secret.get_secret_value() not in repr(first)


def test_config_is_frozen() -> None:
    config = PipelineConfig()
    with pytest.raises(pydantic.ValidationError):
        config.max_page_size = 5  # type: ignore[misc]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"default_page_size": 0},
        {"max_sort_clauses": 0},
        {"default_page_size": 50, "max_page_size": 10},
        {"search_operators": frozenset({Operator.BETWEEN, Operator.CONTAINS})},
        {
            "default_search_operator": Operator.ENDS_WITH,
            "search_operators": frozenset({Operator.CONTAINS}),
        },
    ],
)
def test_invalid_config(kwargs) -> None:
    with pytest.raises(pydantic.ValidationError):
        PipelineConfig(**kwargs)


def test_config_accepts_strings() -> None:
    config = PipelineConfig(
        cursor_secret="s3cret",
        search_operators=["contains", "startsWith"],
        default_search_operator="startsWith",
        reserved_params=DEFAULT_RESERVED_PARAMS | {"tenant"},
    )
    assert config.cursor_secret.get_secret_value() == "s3cret"
    assert config.default_search_operator is Operator.STARTS_WITH
    assert "tenant" in config.reserved_params


# ── RequestEnvelope ──────────────────────────────────────────────


def test_envelope_keeps_repeated_keys_in_order() -> None:
    envelope = RequestEnvelope.from_query_string(
        "products", "status=a&page=1&status=b&empty="
    )
    assert envelope.get_all("status") == ["a", "b"]
    assert envelope.get("status") == "b"
    assert envelope.get("missing", "x") == "x"
    assert envelope.has("empty")
    assert envelope.query_keys() == ["status", "page", "empty"]


def test_envelope_from_params() -> None:
    envelope = RequestEnvelope.from_params(
        "products", {"status": ["a", "b"], "page": "2"}, body={"startRow": 0}
    )
    assert envelope.raw_query_params == (
        ("status", "a"),
        ("status", "b"),
        ("page", "2"),
    )
    assert envelope.json_body() == {"startRow": 0}
    assert envelope.body_keys() == {"startRow"}


@pytest.mark.parametrize("raw", [b"{broken", b"[1, 2]", b"\xff\xfe"])
def test_envelope_rejects_bad_bodies(raw) -> None:
    envelope = RequestEnvelope.from_query_string("products", "", body=raw)
    with pytest.raises(ParseError):
        envelope.json_body()
    assert envelope.body_keys() == set()


def test_envelope_without_body() -> None:
    envelope = RequestEnvelope.from_query_string("products", "", body=b"  ")
    assert envelope.json_body() is None


# ── Result ───────────────────────────────────────────────────────


def test_result_success_and_failure() -> None:
    assert Result.success(1).unwrap() == 1
    assert Result.success(1)

    error = ValidationError(
        scope=ErrorScope.SORT,
        code=ErrorCode.FIELD_NOT_SORTABLE,
        message="Field 'x' cannot be sorted on",
        field_name="x",
    )
    failed: Result[int] = Result.failure([error])
    assert not failed
    with pytest.raises(ValueError, match="FIELD_NOT_SORTABLE"):
        failed.unwrap()
    assert failed.aggregate().by_scope(ErrorScope.SORT) == [error]
    assert failed.aggregate().summary()["sortErrors"] == 1
