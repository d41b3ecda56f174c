"""
Field capability registry.

A read-only table mapping ``(entity_type, field_name)`` to a
:class:`FieldDescriptor`.  It is built once at startup, from metadata
mappings (validated with pydantic) or from a ``lookup_fields`` callable, and
then shared by every request without locking: nothing mutates it after
construction.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import EntityNotRegisteredError, MetadataError
from .operators import OPERATOR_DESCRIPTIONS, Operator, resolve_operator

logger = logging.getLogger(__name__)


class DataKind(str, Enum):
    TEXT = "text"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    ENUM = "enum"
    MULTI_ENUM = "multi_enum"
    RELATION = "relation"
    ID = "id"


# Field class names used by metadata files, folded to lower case
_KIND_ALIASES: dict[str, DataKind] = {
    "string": DataKind.TEXT,
    "bigtext": DataKind.TEXT,
    "email": DataKind.TEXT,
    "password": DataKind.TEXT,
    "int": DataKind.INTEGER,
    "number": DataKind.FLOAT,
    "decimal": DataKind.FLOAT,
    "bool": DataKind.BOOLEAN,
    "multienum": DataKind.MULTI_ENUM,
    "relatedrecord": DataKind.RELATION,
}

_NULL_CHECKS = frozenset({Operator.IS_NULL, Operator.IS_NOT_NULL})
_EQUALITY = frozenset({Operator.EQ, Operator.NE}) | _NULL_CHECKS
_MEMBERSHIP = _EQUALITY | {Operator.IN, Operator.NOT_IN}
_ORDERING = frozenset(
    {Operator.GT, Operator.GE, Operator.LT, Operator.LE, Operator.BETWEEN}
)

DEFAULT_OPERATORS: Mapping[DataKind, frozenset[Operator]] = MappingProxyType(
    {
        DataKind.TEXT: _MEMBERSHIP
        | {Operator.CONTAINS, Operator.STARTS_WITH, Operator.ENDS_WITH},
        DataKind.INTEGER: _MEMBERSHIP | _ORDERING,
        DataKind.FLOAT: _MEMBERSHIP | _ORDERING,
        DataKind.BOOLEAN: _EQUALITY,
        DataKind.DATE: _EQUALITY | _ORDERING,
        DataKind.DATETIME: _EQUALITY | _ORDERING,
        DataKind.ENUM: _MEMBERSHIP,
        DataKind.MULTI_ENUM: _NULL_CHECKS
        | {Operator.OVERLAP, Operator.CONTAINS_ALL, Operator.CONTAINS_NONE},
        DataKind.RELATION: _MEMBERSHIP,
        DataKind.ID: _MEMBERSHIP,
    }
)


@dataclass(frozen=True)
class FieldDescriptor:
    """Type and query capabilities of one field of one entity type."""

    entity_type: str
    name: str
    data_kind: DataKind
    allowed_operators: frozenset[Operator]
    is_filterable: bool = True
    is_searchable: bool = False
    is_sortable: bool = True
    is_default_searchable: bool = False
    options: tuple[str, ...] = ()

    def allows(self, operator: Operator) -> bool:
        return operator in self.allowed_operators

    def sorted_operators(self) -> list[str]:
        """Allowed operator names in declaration order of :class:`Operator`."""
        return [op.value for op in Operator if op in self.allowed_operators]


# ── Metadata schema ──────────────────────────────────────────────


class FieldMetadata(BaseModel):
    """
    One field as described by the metadata layer.

    ``type`` accepts a :class:`DataKind` value or a field class name
    (``"Text"``, ``"RelatedRecord"``, ``"MultiEnum"`` ...).  ``operators``
    replaces the data kind's default operator set when given.  ``searchable``
    defaults to ``True`` for text fields only.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    data_kind: DataKind = Field(alias="type")
    operators: tuple[str, ...] | None = None
    filterable: bool = True
    searchable: bool | None = None
    sortable: bool = True
    default_searchable: bool = False
    options: tuple[str, ...] = ()

    @field_validator("data_kind", mode="before")
    @classmethod
    def _fold_kind(cls, value: Any) -> Any:
        if isinstance(value, str) and not isinstance(value, DataKind):
            folded = value.strip().lower()
            try:
                return DataKind(folded)
            except ValueError:
                return _KIND_ALIASES.get(folded, value)
        return value

    @field_validator("options", mode="before")
    @classmethod
    def _options_from_mapping(cls, value: Any) -> Any:
        # Option lists are often ``{value: label}`` mappings
        if isinstance(value, Mapping):
            return tuple(str(k) for k in value)
        return value


class EntityMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    entity_type: str
    fields: dict[str, FieldMetadata]


def descriptor_from_metadata(
    entity_type: str, name: str, meta: FieldMetadata
) -> FieldDescriptor:
    """Build a descriptor, resolving any operator override."""
    if meta.operators is None:
        allowed = DEFAULT_OPERATORS[meta.data_kind]
    else:
        resolved: set[Operator] = set()
        for raw in meta.operators:
            op = resolve_operator(raw)
            if op is None:
                raise MetadataError(
                    entity_type, f"field '{name}' declares unknown operator '{raw}'"
                )
            resolved.add(op)
        allowed = frozenset(resolved)

    searchable = (
        meta.searchable
        if meta.searchable is not None
        else meta.data_kind is DataKind.TEXT
    )
    return FieldDescriptor(
        entity_type=entity_type,
        name=name,
        data_kind=meta.data_kind,
        allowed_operators=allowed,
        is_filterable=meta.filterable,
        is_searchable=searchable,
        is_sortable=meta.sortable,
        is_default_searchable=meta.default_searchable and searchable,
        options=meta.options,
    )


# ── Registry ─────────────────────────────────────────────────────


class FieldCapabilityRegistry:
    """
    Immutable lookup of field descriptors by entity type and field name.

    Usage::

        registry = FieldCapabilityRegistry.from_metadata({
            "products": {
                "id": {"type": "id"},
                "name": {"type": "text", "default_searchable": True},
                "price": {"type": "float", "operators": ["equals", "lessThan"]},
            },
        })
        registry.get("products", "price").allowed_operators
    """

    def __init__(self, descriptors: Iterable[FieldDescriptor]) -> None:
        table: dict[str, dict[str, FieldDescriptor]] = {}
        for descriptor in descriptors:
            table.setdefault(descriptor.entity_type, {})[descriptor.name] = descriptor
        self._table: Mapping[str, Mapping[str, FieldDescriptor]] = MappingProxyType(
            {entity: MappingProxyType(fields) for entity, fields in table.items()}
        )
        logger.debug(
            "Capability registry built: %d entity types, %d fields",
            len(self._table),
            sum(len(fields) for fields in self._table.values()),
        )

    # ── Construction ─────────────────────────────────────────────

    @classmethod
    def from_metadata(
        cls,
        metadata: Mapping[str, Mapping[str, Any]] | Iterable[EntityMetadata],
    ) -> FieldCapabilityRegistry:
        """Build from ``{entity_type: {field: field_metadata}}`` or models."""
        entities: list[EntityMetadata] = []
        if isinstance(metadata, Mapping):
            for entity_type, fields in metadata.items():
                try:
                    entities.append(
                        EntityMetadata.model_validate(
                            {"entity_type": entity_type, "fields": dict(fields)}
                        )
                    )
                except ValidationError as exc:
                    raise MetadataError(entity_type, str(exc)) from exc
        else:
            entities = list(metadata)

        descriptors: list[FieldDescriptor] = []
        for entity in entities:
            for name, meta in entity.fields.items():
                descriptors.append(
                    descriptor_from_metadata(entity.entity_type, name, meta)
                )
        return cls(descriptors)

    @classmethod
    def from_lookup(
        cls,
        entity_types: Iterable[str],
        lookup_fields: Callable[[str], Iterable[FieldDescriptor]],
    ) -> FieldCapabilityRegistry:
        """Build by calling the metadata layer's ``lookup_fields`` once per type."""
        descriptors: list[FieldDescriptor] = []
        for entity_type in entity_types:
            for descriptor in lookup_fields(entity_type):
                if descriptor.entity_type != entity_type:
                    raise MetadataError(
                        entity_type,
                        f"lookup returned field '{descriptor.name}' "
                        f"of '{descriptor.entity_type}'",
                    )
                descriptors.append(descriptor)
        return cls(descriptors)

    # ── Lookup ───────────────────────────────────────────────────

    @property
    def entity_types(self) -> list[str]:
        return sorted(self._table)

    def has_entity(self, entity_type: str) -> bool:
        return entity_type in self._table

    def fields_for(self, entity_type: str) -> Mapping[str, FieldDescriptor]:
        try:
            return self._table[entity_type]
        except KeyError:
            raise EntityNotRegisteredError(entity_type, self.entity_types) from None

    def get(self, entity_type: str, name: str) -> FieldDescriptor | None:
        return self.fields_for(entity_type).get(name)

    def field_names(self, entity_type: str) -> list[str]:
        return list(self.fields_for(entity_type))

    def searchable_fields(self, entity_type: str) -> list[FieldDescriptor]:
        return [f for f in self.fields_for(entity_type).values() if f.is_searchable]

    def default_search_fields(self, entity_type: str) -> list[FieldDescriptor]:
        """Fields flagged default-searchable, else every searchable field."""
        searchable = self.searchable_fields(entity_type)
        defaults = [f for f in searchable if f.is_default_searchable]
        return defaults or searchable

    def sortable_fields(self, entity_type: str) -> list[FieldDescriptor]:
        return [f for f in self.fields_for(entity_type).values() if f.is_sortable]

    def available_filters(self, entity_type: str) -> list[dict[str, Any]]:
        """Describe every filterable field and its operators for API clients."""
        filters: list[dict[str, Any]] = []
        for descriptor in self.fields_for(entity_type).values():
            if not descriptor.is_filterable:
                continue
            entry: dict[str, Any] = {
                "field": descriptor.name,
                "type": descriptor.data_kind.value,
                "operators": [
                    {
                        "operator": name,
                        "description": OPERATOR_DESCRIPTIONS[Operator(name)],
                    }
                    for name in descriptor.sorted_operators()
                ],
            }
            if descriptor.options:
                entry["options"] = list(descriptor.options)
            filters.append(entry)
        return filters
