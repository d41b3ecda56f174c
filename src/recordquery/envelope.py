"""RequestEnvelope — the raw, read-only request handed over by the HTTP layer."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qsl

from .exceptions import ParseError


@dataclass(frozen=True)
class RequestEnvelope:
    """
    Opaque bag of request data: method, entity type, query multimap, body.

    ``raw_query_params`` keeps every ``(key, value)`` pair in arrival order,
    so repeated keys survive.

    Usage::

        envelope = RequestEnvelope.from_query_string(
            "products", "status=active&page=2&pageSize=10"
        )
        envelope.get("status")  # "active"
    """

    http_method: str
    entity_type: str
    raw_query_params: tuple[tuple[str, str], ...] = ()
    raw_json_body: bytes | None = None

    # ── Construction ─────────────────────────────────────────────

    @classmethod
    def from_query_string(
        cls,
        entity_type: str,
        query_string: str,
        *,
        http_method: str = "GET",
        body: bytes | None = None,
    ) -> RequestEnvelope:
        pairs = parse_qsl(query_string, keep_blank_values=True)
        return cls(
            http_method=http_method,
            entity_type=entity_type,
            raw_query_params=tuple(pairs),
            raw_json_body=body,
        )

    @classmethod
    def from_params(
        cls,
        entity_type: str,
        params: Mapping[str, str | Iterable[str]] | Iterable[tuple[str, str]] = (),
        *,
        http_method: str = "GET",
        body: bytes | Mapping[str, Any] | None = None,
    ) -> RequestEnvelope:
        """Build from a mapping (list values repeat the key) or pair list."""
        pairs: list[tuple[str, str]] = []
        if isinstance(params, Mapping):
            for key, value in params.items():
                if isinstance(value, str):
                    pairs.append((key, value))
                else:
                    pairs.extend((key, str(v)) for v in value)
        else:
            pairs.extend((k, str(v)) for k, v in params)

        raw_body: bytes | None
        if isinstance(body, Mapping):
            raw_body = json.dumps(body).encode("utf-8")
        else:
            raw_body = body
        return cls(
            http_method=http_method,
            entity_type=entity_type,
            raw_query_params=tuple(pairs),
            raw_json_body=raw_body,
        )

    # ── Query access ─────────────────────────────────────────────

    def get(self, key: str, default: str | None = None) -> str | None:
        """Last value for *key*, matching common web-framework semantics."""
        value = default
        for k, v in self.raw_query_params:
            if k == key:
                value = v
        return value

    def get_all(self, key: str) -> list[str]:
        return [v for k, v in self.raw_query_params if k == key]

    def has(self, key: str) -> bool:
        return any(k == key for k, _ in self.raw_query_params)

    def query_keys(self) -> list[str]:
        """Distinct query keys in first-seen order."""
        seen: dict[str, None] = {}
        for k, _ in self.raw_query_params:
            seen.setdefault(k, None)
        return list(seen)

    # ── Body access ──────────────────────────────────────────────

    def json_body(self) -> dict[str, Any] | None:
        """
        Decode the body as a JSON object.

        Returns ``None`` when there is no body.  Raises :class:`ParseError`
        when the body is not valid JSON or not an object.
        """
        if not self.raw_json_body or not self.raw_json_body.strip():
            return None
        try:
            data = json.loads(self.raw_json_body)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ParseError(f"Request body is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ParseError("Request body must be a JSON object")
        return data

    def body_keys(self) -> set[str]:
        """Top-level JSON body keys; empty when the body is absent or invalid."""
        try:
            body = self.json_body()
        except ParseError:
            return set()
        return set(body) if body else set()
