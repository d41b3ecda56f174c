"""
Response envelopes for each client family.

The envelope follows the format the request arrived in, so a grid component
gets back the shape it expects.  ``responseFormat`` overrides that choice;
a cursor window always answers in cursor style.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from .builders.pagination import CursorWindow, OffsetWindow
from .parsers.base import ParserKind
from .query_string import QueryStringBuilder

if TYPE_CHECKING:
    from .builders.plan import QueryPlan
    from .model import QueryIntent, ResponseOptions
    from .ports import ExecutionResult

logger = logging.getLogger(__name__)


class ResponseFormat(str, Enum):
    STANDARD = "standard"
    STRUCTURED = "structured"
    ADVANCED = "advanced"
    AG_GRID = "ag-grid"
    MUI_DATAGRID = "mui-datagrid"
    CURSOR = "cursor"


FORMAT_DESCRIPTIONS: dict[ResponseFormat, str] = {
    ResponseFormat.STANDARD: "Page-number pagination with totals",
    ResponseFormat.STRUCTURED: "Standard envelope plus navigation links",
    ResponseFormat.ADVANCED: "Standard envelope plus applied query metadata",
    ResponseFormat.AG_GRID: "AG Grid server-side row model",
    ResponseFormat.MUI_DATAGRID: "MUI DataGrid server-side pagination",
    ResponseFormat.CURSOR: "Cursor-based pagination",
}

# One envelope per request format, and no two formats share one
DEFAULT_FORMATS: Mapping[ParserKind, ResponseFormat] = {
    ParserKind.SIMPLE: ResponseFormat.STANDARD,
    ParserKind.STRUCTURED: ResponseFormat.STRUCTURED,
    ParserKind.ADVANCED: ResponseFormat.ADVANCED,
    ParserKind.AG_GRID: ResponseFormat.AG_GRID,
    ParserKind.MUI_DATAGRID: ResponseFormat.MUI_DATAGRID,
}

_FORMAT_ALIASES: dict[str, ResponseFormat] = {
    "ag_grid": ResponseFormat.AG_GRID,
    "aggrid": ResponseFormat.AG_GRID,
    "mui": ResponseFormat.MUI_DATAGRID,
    "mui_datagrid": ResponseFormat.MUI_DATAGRID,
}


def resolve_response_format(
    parser_kind: ParserKind,
    window: OffsetWindow | CursorWindow,
    override: str | None = None,
) -> ResponseFormat:
    """The envelope for a request: cursor window, then override, then default."""
    if isinstance(window, CursorWindow):
        return ResponseFormat.CURSOR
    if override:
        folded = override.strip().lower()
        try:
            return ResponseFormat(folded)
        except ValueError:
            alias = _FORMAT_ALIASES.get(folded)
            if alias is not None:
                return alias
            logger.warning(
                "Ignoring unknown responseFormat '%s'; using '%s'",
                override,
                DEFAULT_FORMATS[parser_kind].value,
            )
    return DEFAULT_FORMATS[parser_kind]


@dataclass(frozen=True)
class FormatContext:
    """What the formatter may report besides the records themselves."""

    intent: QueryIntent
    plan: QueryPlan
    options: ResponseOptions
    query_params: tuple[tuple[str, str], ...] = ()
    available_filters: list[dict[str, Any]] | None = None


class ResponseFormatter:
    """
    Build the response envelope for one executed query.

    The page-number envelopes (standard, structured, advanced) carry
    ``availableFilters`` when the request asked for it; the grid and cursor
    envelopes keep their fixed shapes.

    Usage::

        formatter = ResponseFormatter()
        body = formatter.format(ResponseFormat.STANDARD, result, context)
    """

    def __init__(self, query_strings: QueryStringBuilder | None = None) -> None:
        self._query_strings = query_strings or QueryStringBuilder()

    def format(
        self,
        response_format: ResponseFormat,
        result: ExecutionResult,
        context: FormatContext,
        next_cursor: str | None = None,
    ) -> dict[str, Any]:
        if response_format is ResponseFormat.CURSOR:
            return self._cursor(result, next_cursor)
        window = context.plan.window
        if not isinstance(window, OffsetWindow):
            raise ValueError(
                f"'{response_format.value}' responses need an offset window"
            )
        if response_format is ResponseFormat.AG_GRID:
            return self._ag_grid(result, window)
        if response_format is ResponseFormat.MUI_DATAGRID:
            return self._mui_datagrid(result, window)

        body = self._standard(result, window)
        if response_format is ResponseFormat.STRUCTURED:
            body["links"] = self._query_strings.page_links(
                context.query_params,
                page=window.page,
                page_size=window.page_size,
                total_pages=body["totalPages"],
                has_more=result.has_more,
            )
        elif response_format is ResponseFormat.ADVANCED:
            body["meta"] = self._meta(context)
        if context.options.include_available_filters:
            body["availableFilters"] = context.available_filters or []
        return body

    # ── Envelopes ────────────────────────────────────────────────

    @staticmethod
    def _standard(result: ExecutionResult, window: OffsetWindow) -> dict[str, Any]:
        total = result.total_count
        return {
            "data": list(result.records),
            "page": window.page,
            "pageSize": window.page_size,
            "totalCount": total,
            "totalPages": (
                math.ceil(total / window.page_size) if total is not None else None
            ),
        }

    @staticmethod
    def _ag_grid(result: ExecutionResult, window: OffsetWindow) -> dict[str, Any]:
        end_row = window.offset + len(result.records)
        if result.total_count is not None:
            last_row = result.total_count
        elif not result.has_more:
            last_row = end_row
        else:
            # Grid convention for "more rows, count unknown"
            last_row = -1
        return {
            "data": list(result.records),
            "startRow": window.offset,
            "endRow": end_row,
            "lastRow": last_row,
        }

    @staticmethod
    def _mui_datagrid(
        result: ExecutionResult, window: OffsetWindow
    ) -> dict[str, Any]:
        return {
            "data": list(result.records),
            "rowCount": result.total_count if result.total_count is not None else -1,
            "page": window.page - 1,
            "pageSize": window.page_size,
        }

    @staticmethod
    def _cursor(result: ExecutionResult, next_cursor: str | None) -> dict[str, Any]:
        return {
            "data": list(result.records),
            "nextCursor": next_cursor if result.has_more else None,
            "hasMore": result.has_more,
        }

    @staticmethod
    def _meta(context: FormatContext) -> dict[str, Any]:
        intent = context.intent
        meta: dict[str, Any] = {
            "filters": [
                {
                    "field": clause.field.name,
                    "operator": clause.operator.value,
                    "value": clause.value,
                }
                for clause in intent.filters
            ],
            "filterLogic": intent.filter_logic.value,
            "sort": [
                {
                    "field": clause.field.name,
                    "direction": clause.direction.value,
                    "default": clause.is_default,
                }
                for clause in intent.sort
            ],
            "search": (
                {
                    "term": intent.search.term,
                    "fields": [f.name for f in intent.search.fields],
                    "operator": intent.search.operator.value,
                }
                if intent.search is not None
                else None
            ),
        }
        if context.options.include_metadata:
            meta["entityType"] = intent.entity_type
            meta["plan"] = context.plan.to_dict()
        return meta
