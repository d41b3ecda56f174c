"""StructuredRequestParser — ``filter[field][operator]=value`` query strings."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ..capabilities import DataKind
from ..exceptions import ParseError
from ..model import ParsedQuerySpec, RawFilterClause, RawSortClause
from ..operators import (
    LIST_VALUED_OPERATORS,
    NULLARY_OPERATORS,
    Operator,
    canonical_operator_name,
    resolve_operator,
)
from ..result import ErrorScope, Result, ValidationError
from .base import BaseRequestParser, ParserKind
from .utils import (
    decode_bracket_key,
    indexed_items,
    nest_bracket_params,
    parse_sort_string,
    sanitize_field_name,
    split_list,
)

if TYPE_CHECKING:
    from ..capabilities import FieldDescriptor
    from ..envelope import RequestEnvelope

logger = logging.getLogger(__name__)


class StructuredRequestParser(BaseRequestParser):
    """
    Bracketed filters, one clause per ``(field, operator)`` pair.

    - ``filter[price][between]=10,50`` and ``filter[id][in]=1&filter[id][in]=2``
      (list operators accept repeated keys and comma-separated values)
    - ``filter[status]=active`` is an implicit ``equals`` (``overlap`` on
      multi-enum fields)
    - ``sort[0][field]=name&sort[0][direction]=desc`` or ``sort=name:desc``
    - ``page``/``pageSize`` or ``startRow``/``endRow``
    """

    kind = ParserKind.STRUCTURED

    def parse(
        self,
        envelope: RequestEnvelope,
        fields: Mapping[str, FieldDescriptor],
    ) -> Result[ParsedQuerySpec]:
        params = self.query_mapping(envelope)
        errors: list[ValidationError] = []
        filters = self._parse_filters(envelope, fields, errors)
        sort = self._parse_sort(envelope, params, errors)
        if errors:
            return Result.failure(errors)

        spec = ParsedQuerySpec(
            filters=tuple(filters),
            search=self.read_search(params),
            sort=tuple(sort),
            pagination=self.read_page_pagination(params),
            options=self.read_options(params),
        )
        logger.debug(
            "Structured format parsed: %d filters, %d sorts",
            len(spec.filters),
            len(spec.sort),
        )
        return Result.success(spec)

    def _parse_filters(
        self,
        envelope: RequestEnvelope,
        fields: Mapping[str, FieldDescriptor],
        errors: list[ValidationError],
    ) -> list[RawFilterClause]:
        collected: dict[tuple[str, str, bool], list[str]] = {}
        for key, value in envelope.raw_query_params:
            decoded = decode_bracket_key(key)
            if decoded is None or decoded[0] != "filter":
                continue
            parts = decoded[1]
            name = sanitize_field_name(parts[0])
            if not name or len(parts) > 2:
                errors.append(
                    self.malformed(
                        f"Unrecognised filter parameter '{key}'",
                        field_name=name or None,
                        suggested_fix="Use filter[field][operator]=value",
                    )
                )
                continue

            if len(parts) == 1:
                # filter[tags]=a,b on a multi-enum field means "has any of"
                descriptor = fields.get(name)
                is_multi = (
                    descriptor is not None
                    and descriptor.data_kind is DataKind.MULTI_ENUM
                )
                operator_name = (
                    Operator.OVERLAP.value if is_multi else Operator.EQ.value
                )
            else:
                operator_name = canonical_operator_name(parts[1])

            operator = resolve_operator(operator_name)
            values: tuple[str, ...]
            if operator in NULLARY_OPERATORS:
                values = ()
            elif operator in LIST_VALUED_OPERATORS:
                values = split_list(value)
            elif value.strip():
                values = (value,)
            else:
                continue
            implicit = len(parts) == 1
            collected.setdefault((name, operator_name, implicit), []).extend(values)

        clauses: list[RawFilterClause] = []
        for (name, operator_name, implicit), values in collected.items():
            # Repeated implicit-equality keys read as membership
            if implicit and operator_name == Operator.EQ.value and len(values) > 1:
                operator_name = Operator.IN.value
            clauses.append(RawFilterClause(name, operator_name, tuple(values)))
        return clauses

    def _parse_sort(
        self,
        envelope: RequestEnvelope,
        params: Mapping[str, str],
        errors: list[ValidationError],
    ) -> list[RawSortClause]:
        try:
            tree = nest_bracket_params(envelope.raw_query_params, "sort")
            items: list[Any] = indexed_items(tree) if tree else []
        except ParseError as exc:
            errors.append(self.malformed(exc.message, scope=ErrorScope.SORT))
            return []

        if not items:
            raw = params.get("sort")
            return parse_sort_string(raw) if raw else []

        clauses: list[RawSortClause] = []
        for item in items:
            if not isinstance(item, dict):
                errors.append(
                    self.malformed(
                        "Sort entries must be sort[i][field] / sort[i][direction]",
                        scope=ErrorScope.SORT,
                    )
                )
                continue
            name = sanitize_field_name(item.get("field", ""))
            if not name:
                continue
            direction = str(item.get("direction") or "asc").strip().lower()
            clauses.append(RawSortClause(name, direction))
        return clauses
