"""FormatDetector — pick the parser that understands a request's shape."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from .base import ParserKind

if TYPE_CHECKING:
    from ..envelope import RequestEnvelope

logger = logging.getLogger(__name__)

_STRUCTURED_FILTER_KEY = re.compile(r"^filter\[[^\]]+\](\[[^\]]+\])?$")
_STRUCTURED_SORT_KEY = re.compile(r"^sort\[\d+\]\[(field|direction)\]$")


class FormatDetector:
    """
    Pure function of the envelope's key set (JSON body keys plus query keys).

    First match wins:

    1. ``startRow`` and ``endRow`` in the JSON body -> AG-Grid
    2. ``filterModel`` or ``sortModel`` -> MUI DataGrid
    3. any ``filter[<field>]`` / ``filter[<field>][<operator>]`` key or
       ``sort[<i>][field]`` key -> structured, or advanced when the request
       also carries ``advancedFilter``/``advancedSort`` (the advanced parser
       reads the structured keys as well)
    4. ``startRow`` and ``endRow`` in the query string -> AG-Grid
    5. ``advancedFilter`` or ``advancedSort`` -> advanced
    6. otherwise simple

    Never raises: an unreadable body simply contributes no keys.
    """

    def detect(self, envelope: RequestEnvelope) -> ParserKind:
        body_keys = envelope.body_keys()
        query_keys = set(envelope.query_keys())
        kind = self._classify(body_keys, query_keys)
        logger.debug(
            "Detected %s format for %s (%d keys)",
            kind.value,
            envelope.entity_type,
            len(body_keys | query_keys),
        )
        return kind

    @staticmethod
    def _classify(body_keys: set[str], query_keys: set[str]) -> ParserKind:
        keys = body_keys | query_keys
        if "startRow" in body_keys and "endRow" in body_keys:
            return ParserKind.AG_GRID
        if "filterModel" in keys or "sortModel" in keys:
            return ParserKind.MUI_DATAGRID
        if any(
            _STRUCTURED_FILTER_KEY.match(key) or _STRUCTURED_SORT_KEY.match(key)
            for key in query_keys
        ):
            if "advancedFilter" in keys or "advancedSort" in keys:
                return ParserKind.ADVANCED
            return ParserKind.STRUCTURED
        if "startRow" in query_keys and "endRow" in query_keys:
            return ParserKind.AG_GRID
        if "advancedFilter" in keys or "advancedSort" in keys:
            return ParserKind.ADVANCED
        return ParserKind.SIMPLE
