"""
Record query exception hierarchy.

Semantic request problems are *values* (``ValidationError`` in
``recordquery.result``) and never raised.  The exceptions below cover the
remaining failure classes: malformed wire syntax, cursor decoding, misuse of
a sealed plan, configuration problems and execution failures.

All exceptions inherit from ``RecordQueryError`` and provide ``to_dict()``
for API-friendly error responses.
"""

from __future__ import annotations

from difflib import get_close_matches
from typing import Any


class RecordQueryError(Exception):
    """Base exception for all record query errors."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": str(self),
        }


class ParseError(RecordQueryError):
    """
    A parser could not make sense of the wire syntax.

    Never surfaced to the client: the pipeline falls back to the simple
    parser when a format-specific parser raises this.
    """

    def __init__(self, message: str, parameter: str | None = None) -> None:
        self.message = message
        self.parameter = parameter
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "PARSE_ERROR",
            "message": self.message,
            "parameter": self.parameter,
        }


class CursorError(RecordQueryError):
    """A pagination cursor failed integrity or format decoding."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid cursor: {reason}")

    def to_dict(self) -> dict[str, Any]:
        return {"error": "INVALID_CURSOR", "reason": self.reason}


class PlanSealedError(RecordQueryError):
    """A sealed query plan builder was asked to change."""

    def __init__(self, attribute: str) -> None:
        self.attribute = attribute
        super().__init__(f"Query plan is sealed; cannot set '{attribute}'")


class EntityNotRegisteredError(RecordQueryError):
    """
    The entity type has no registered field metadata.

    Raised, not aggregated: the routing layer resolved an entity the
    capability registry was never told about.
    """

    def __init__(self, entity_type: str, known_entities: list[str]) -> None:
        self.entity_type = entity_type
        self.known_entities = known_entities
        self.suggestions = get_close_matches(
            entity_type, known_entities, n=3, cutoff=0.6
        )
        message = f"Entity type '{entity_type}' is not registered."
        if self.suggestions:
            message += f" Did you mean: {', '.join(self.suggestions)}?"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "ENTITY_NOT_REGISTERED",
            "entity_type": self.entity_type,
            "suggestions": self.suggestions,
        }


class MetadataError(RecordQueryError):
    """Field metadata could not be loaded into the capability registry."""

    def __init__(self, entity_type: str, detail: str) -> None:
        self.entity_type = entity_type
        self.detail = detail
        super().__init__(f"Invalid metadata for '{entity_type}': {detail}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "METADATA_ERROR",
            "entity_type": self.entity_type,
            "detail": self.detail,
        }


class QueryExecutionError(RecordQueryError):
    """
    The execution collaborator failed.

    The original exception is chained as ``__cause__``; ``to_dict()`` never
    exposes store internals to the client.
    """

    def __init__(self, entity_type: str) -> None:
        self.entity_type = entity_type
        super().__init__(f"Query execution failed for '{entity_type}'")

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "QUERY_EXECUTION_FAILED",
            "message": "The request could not be completed.",
        }
