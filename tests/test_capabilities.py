"""Tests for operators, the capability registry and metadata loading."""

from __future__ import annotations

import pytest

from recordquery import (
    DataKind,
    EntityNotRegisteredError,
    FieldCapabilityRegistry,
    FieldDescriptor,
    MetadataError,
    Operator,
)
from recordquery.capabilities import DEFAULT_OPERATORS
from recordquery.operators import canonical_operator_name, resolve_operator


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("equals", Operator.EQ),
        ("EQUALS", Operator.EQ),
        ("eq", Operator.EQ),
        ("==", Operator.EQ),
        ("gte", Operator.GE),
        (">=", Operator.GE),
        ("notIn", Operator.NOT_IN),
        ("NOT_IN", Operator.NOT_IN),
        ("nin", Operator.NOT_IN),
        (" between ", Operator.BETWEEN),
        ("isnotnull", Operator.IS_NOT_NULL),
    ],
)
def test_resolve_operator(name: str, expected: Operator) -> None:
    assert resolve_operator(name) is expected


def test_unknown_operator_resolves_to_none() -> None:
    assert resolve_operator("fuzzy") is None
    assert canonical_operator_name("fuzzy") == "fuzzy"
    assert canonical_operator_name("lte") == "lessThanOrEqual"


def test_metadata_kinds_and_flags(fields) -> None:
    assert fields["description"].data_kind is DataKind.TEXT
    assert fields["tags"].data_kind is DataKind.MULTI_ENUM
    assert fields["tags"].options == ("new", "sale")
    assert fields["category_id"].data_kind is DataKind.RELATION
    assert fields["name"].is_searchable
    assert fields["description"].is_searchable
    assert not fields["status"].is_searchable
    assert not fields["internal_code"].is_filterable
    assert not fields["internal_code"].is_sortable


def test_operator_override_replaces_defaults(fields) -> None:
    price = fields["price"]
    assert price.allows(Operator.LT)
    assert not price.allows(Operator.BETWEEN)
    assert price.sorted_operators() == [
        "equals",
        "notEquals",
        "greaterThan",
        "lessThan",
        "in",
    ]


def test_default_operators_by_kind(fields) -> None:
    assert fields["quantity"].allowed_operators == DEFAULT_OPERATORS[DataKind.INTEGER]
    assert fields["name"].allows(Operator.CONTAINS)
    assert not fields["status"].allows(Operator.CONTAINS)
    assert fields["tags"].allows(Operator.OVERLAP)
    assert not fields["tags"].allows(Operator.EQ)


def test_default_search_fields_prefers_flagged(registry) -> None:
    assert [f.name for f in registry.default_search_fields("products")] == ["name"]
    assert [f.name for f in registry.default_search_fields("events")] == ["title"]
    assert registry.default_search_fields("audits") == []


def test_unknown_entity_raises_with_suggestions(registry) -> None:
    with pytest.raises(EntityNotRegisteredError) as exc_info:
        registry.fields_for("product")
    assert exc_info.value.suggestions == ["products"]
    assert exc_info.value.to_dict()["error"] == "ENTITY_NOT_REGISTERED"


def test_registry_is_read_only(registry) -> None:
    with pytest.raises(TypeError):
        registry.fields_for("products")["x"] = None  # type: ignore[index]


def test_invalid_metadata_raises_metadata_error() -> None:
    with pytest.raises(MetadataError):
        FieldCapabilityRegistry.from_metadata({"things": {"a": {"type": "blob"}}})
    with pytest.raises(MetadataError, match="unknown operator"):
        FieldCapabilityRegistry.from_metadata(
            {"things": {"a": {"type": "text", "operators": ["sounds_like"]}}}
        )


def test_from_lookup() -> None:
    def lookup(entity_type: str) -> list[FieldDescriptor]:
        return [
            FieldDescriptor(
                entity_type=entity_type,
                name="id",
                data_kind=DataKind.ID,
                allowed_operators=DEFAULT_OPERATORS[DataKind.ID],
            )
        ]

    registry = FieldCapabilityRegistry.from_lookup(["a", "b"], lookup)
    assert registry.entity_types == ["a", "b"]
    assert registry.get("b", "id") is not None
    assert registry.get("b", "missing") is None


def test_from_lookup_rejects_foreign_fields() -> None:
    def lookup(_entity_type: str) -> list[FieldDescriptor]:
        return [
            FieldDescriptor(
                entity_type="other",
                name="id",
                data_kind=DataKind.ID,
                allowed_operators=frozenset(),
            )
        ]

    with pytest.raises(MetadataError):
        FieldCapabilityRegistry.from_lookup(["a"], lookup)


def test_available_filters(registry) -> None:
    available = {
        entry["field"]: entry for entry in registry.available_filters("products")
    }
    assert "internal_code" not in available
    assert available["status"]["options"] == ["active", "inactive", "archived"]
    price_ops = [op["operator"] for op in available["price"]["operators"]]
    assert "between" not in price_ops
    assert all(op["description"] for op in available["price"]["operators"])
