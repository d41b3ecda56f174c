"""SimpleRequestParser — ``field=value`` query strings; the fallback format."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from ..capabilities import DataKind
from ..model import ParsedQuerySpec, RawFilterClause, RawSortClause
from ..operators import Operator
from ..result import Result, ValidationError
from .base import BaseRequestParser, ParserKind
from .utils import (
    decode_bracket_key,
    decode_json_array,
    parse_sort_string,
    sanitize_field_name,
    stringify_value,
)

if TYPE_CHECKING:
    from ..capabilities import FieldDescriptor
    from ..envelope import RequestEnvelope

logger = logging.getLogger(__name__)


class SimpleRequestParser(BaseRequestParser):
    """
    Every non-reserved query parameter is an equality filter.

    ``status=a&status=b``, ``status[]=a`` and ``status=["a","b"]`` become a
    membership filter (``overlap`` for multi-enum fields).  Blank values are
    ignored.  Sorting accepts ``sortBy``/``sortOrder`` and
    ``sort=field:dir,-field``.
    """

    kind = ParserKind.SIMPLE

    def parse(
        self,
        envelope: RequestEnvelope,
        fields: Mapping[str, FieldDescriptor],
    ) -> Result[ParsedQuerySpec]:
        params = self.query_mapping(envelope)
        errors: list[ValidationError] = []
        filters = self._parse_filters(envelope, fields, errors)
        if errors:
            return Result.failure(errors)

        spec = ParsedQuerySpec(
            filters=tuple(filters),
            search=self.read_search(params),
            sort=tuple(self._parse_sort(params)),
            pagination=self.read_page_pagination(params),
            options=self.read_options(params),
        )
        logger.debug(
            "Simple format parsed: %d filters, %d sorts, search=%s",
            len(spec.filters),
            len(spec.sort),
            spec.search is not None,
        )
        return Result.success(spec)

    def _parse_filters(
        self,
        envelope: RequestEnvelope,
        fields: Mapping[str, FieldDescriptor],
        errors: list[ValidationError],
    ) -> list[RawFilterClause]:
        reserved = self._config.reserved_params
        collected: dict[str, list[str]] = {}
        listed: set[str] = set()

        for key, value in envelope.raw_query_params:
            is_list_key = key.endswith("[]")
            base = key[:-2] if is_list_key else key
            decoded = decode_bracket_key(base)
            if decoded is not None:
                errors.append(
                    self.malformed(
                        f"Bracketed parameter '{key}' is not a simple filter",
                        field_name=sanitize_field_name(decoded[0]) or None,
                        suggested_fix="Use filter[field][operator]=value",
                    )
                )
                continue
            if base in reserved:
                continue
            name = sanitize_field_name(base)
            if not name:
                continue

            text = value.strip()
            if text.startswith("["):
                items = decode_json_array(text)
                if items is None:
                    errors.append(
                        self.malformed(
                            f"Value of '{name}' looks like a list but is not "
                            "a valid JSON array",
                            field_name=name,
                            suggested_fix='Send a JSON array, e.g. ["a","b"]',
                        )
                    )
                    continue
                collected.setdefault(name, []).extend(
                    stringify_value(item) for item in items
                )
                listed.add(name)
                continue
            if not text:
                continue
            collected.setdefault(name, []).append(value)
            if is_list_key:
                listed.add(name)

        clauses: list[RawFilterClause] = []
        for name, values in collected.items():
            if name in listed or len(values) > 1:
                descriptor = fields.get(name)
                operator = (
                    Operator.OVERLAP
                    if descriptor is not None
                    and descriptor.data_kind is DataKind.MULTI_ENUM
                    else Operator.IN
                )
            else:
                operator = Operator.EQ
            clauses.append(RawFilterClause(name, operator.value, tuple(values)))
        return clauses

    def _parse_sort(self, params: Mapping[str, str]) -> list[RawSortClause]:
        clauses: list[RawSortClause] = []
        sort_by = sanitize_field_name(params.get("sortBy", ""))
        if sort_by:
            direction = params.get("sortOrder") or "asc"
            clauses.append(RawSortClause(sort_by, direction.strip().lower()))
        if params.get("sort"):
            clauses.extend(parse_sort_string(params["sort"]))
        return clauses
