"""Wire-format parsers and the detector that selects between them."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .advanced import AdvancedRequestParser
from .ag_grid import AG_GRID_OPERATORS, AgGridRequestParser
from .base import BaseRequestParser, ParserKind, RequestParser
from .detector import FormatDetector
from .mui_datagrid import MUI_OPERATORS, MuiDataGridRequestParser
from .simple import SimpleRequestParser
from .structured import StructuredRequestParser

if TYPE_CHECKING:
    from ..config import PipelineConfig


def build_default_parsers(
    config: PipelineConfig | None = None,
) -> dict[ParserKind, RequestParser]:
    """One parser instance per :class:`ParserKind`."""
    parsers: list[RequestParser] = [
        SimpleRequestParser(config),
        StructuredRequestParser(config),
        AgGridRequestParser(config),
        MuiDataGridRequestParser(config),
        AdvancedRequestParser(config),
    ]
    return {parser.kind: parser for parser in parsers}


__all__ = [
    "AG_GRID_OPERATORS",
    "MUI_OPERATORS",
    "AdvancedRequestParser",
    "AgGridRequestParser",
    "BaseRequestParser",
    "FormatDetector",
    "MuiDataGridRequestParser",
    "ParserKind",
    "RequestParser",
    "SimpleRequestParser",
    "StructuredRequestParser",
    "build_default_parsers",
]
