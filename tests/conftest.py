"""Shared fixtures for recordquery tests."""

from __future__ import annotations

import datetime

import pytest

from recordquery import (
    FieldCapabilityRegistry,
    InMemoryQueryExecutor,
    PipelineConfig,
    QueryPipeline,
    QueryValidator,
)

PRODUCT_FIELDS = {
    "id": {"type": "integer"},
    "name": {"type": "text", "default_searchable": True},
    "description": {"type": "bigtext"},
    "status": {"type": "enum", "options": ["active", "inactive", "archived"]},
    "price": {
        "type": "float",
        "operators": ["equals", "notEquals", "lessThan", "greaterThan", "in"],
    },
    "quantity": {"type": "integer"},
    "tags": {"type": "MultiEnum", "options": {"new": "New", "sale": "On sale"}},
    "category_id": {"type": "RelatedRecord"},
    "released_on": {"type": "date"},
    "created_at": {"type": "datetime"},
    "internal_code": {
        "type": "text",
        "filterable": False,
        "searchable": False,
        "sortable": False,
    },
}

# No id, so the default sort falls back to created_at
EVENT_FIELDS = {
    "title": {"type": "text"},
    "created_at": {"type": "datetime"},
}

# Nothing sortable or searchable
AUDIT_FIELDS = {
    "action": {"type": "enum", "sortable": False, "searchable": False},
}


def make_products(count: int = 25) -> list[dict[str, object]]:
    statuses = ["active", "inactive", "archived"]
    return [
        {
            "id": i,
            "name": f"Product {i:02d}",
            "description": "Red widget" if i % 2 else "Blue gadget",
            "status": statuses[i % 3],
            "price": float(i * 10),
            "quantity": i if i % 5 else None,
            "tags": ["new"] if i % 2 else ["sale"],
            "category_id": str(i % 4),
            "released_on": datetime.date(2024, 1, 1) + datetime.timedelta(days=i),
            "created_at": datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
            + datetime.timedelta(hours=i),
            "internal_code": f"X{i}",
        }
        for i in range(1, count + 1)
    ]


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig(
        cursor_secret="test-secret",
        default_page_size=20,
        max_page_size=100,
        max_sort_clauses=3,
    )


@pytest.fixture
def registry() -> FieldCapabilityRegistry:
    return FieldCapabilityRegistry.from_metadata(
        {
            "products": PRODUCT_FIELDS,
            "events": EVENT_FIELDS,
            "audits": AUDIT_FIELDS,
        }
    )


@pytest.fixture
def fields(registry):
    return registry.fields_for("products")


@pytest.fixture
def validator(registry, config) -> QueryValidator:
    return QueryValidator(registry, config)


@pytest.fixture
def executor() -> InMemoryQueryExecutor:
    return InMemoryQueryExecutor({"products": make_products()})


@pytest.fixture
def pipeline(registry, config, executor) -> QueryPipeline:
    return QueryPipeline(registry, config, executor=executor)
