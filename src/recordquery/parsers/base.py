"""Parser contract and the helpers every format parser shares."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ..config import PipelineConfig
from ..model import RawPaginationSpec, RawSearchSpec, ResponseOptions
from ..result import ErrorCode, ErrorScope, ValidationError
from .utils import parse_bool_flag, sanitize_field_name, split_list, stringify_value

if TYPE_CHECKING:
    from ..capabilities import FieldDescriptor
    from ..envelope import RequestEnvelope
    from ..model import ParsedQuerySpec
    from ..result import Result


class ParserKind(str, Enum):
    SIMPLE = "simple"
    STRUCTURED = "structured"
    AG_GRID = "ag_grid"
    MUI_DATAGRID = "mui_datagrid"
    ADVANCED = "advanced"


@runtime_checkable
class RequestParser(Protocol):
    """
    Convert one wire format into a :class:`ParsedQuerySpec`.

    ``parse`` returns a failed :class:`Result` for malformed parameter
    values and raises :class:`~recordquery.exceptions.ParseError` when the
    request's structure cannot be read at all.
    """

    kind: ParserKind

    def parse(
        self,
        envelope: RequestEnvelope,
        fields: Mapping[str, FieldDescriptor],
    ) -> Result[ParsedQuerySpec]:
        ...


class BaseRequestParser:
    """Shared reading of search, pagination and response options."""

    kind: ParserKind

    def __init__(self, config: PipelineConfig | None = None) -> None:
        self._config = config or PipelineConfig()

    # ── Errors ───────────────────────────────────────────────────

    @staticmethod
    def malformed(
        message: str,
        field_name: str | None = None,
        scope: ErrorScope = ErrorScope.FILTER,
        suggested_fix: str | None = None,
    ) -> ValidationError:
        return ValidationError(
            scope=scope,
            code=ErrorCode.MALFORMED_PARAMETER,
            message=message,
            field_name=field_name,
            suggested_fix=suggested_fix,
        )

    # ── Parameter access ─────────────────────────────────────────

    @staticmethod
    def first_present(source: Mapping[str, Any], *keys: str) -> Any:
        """Value of the first key present with a non-empty value."""
        for key in keys:
            value = source.get(key)
            if value is not None and value != "":
                return value
        return None

    @staticmethod
    def query_mapping(envelope: RequestEnvelope) -> dict[str, str]:
        """Last-value-wins view of the query string."""
        return dict(envelope.raw_query_params)

    # ── Shared sections ──────────────────────────────────────────

    def read_search(
        self,
        source: Mapping[str, Any],
        term_keys: tuple[str, ...] = ("search", "q"),
    ) -> RawSearchSpec | None:
        term = self.first_present(source, *term_keys)
        if term is None:
            return None
        if isinstance(term, list):
            text = " ".join(stringify_value(v) for v in term).strip()
        else:
            text = stringify_value(term).strip()
        if not text:
            return None

        raw_fields = self.first_present(source, "search_fields", "searchFields")
        names: list[Any] | tuple[str, ...] = ()
        if isinstance(raw_fields, list):
            names = raw_fields
        elif raw_fields is not None:
            names = split_list(str(raw_fields))
        fields = tuple(f for f in (sanitize_field_name(v) for v in names) if f)

        operator = self.first_present(source, "search_operator", "searchOperator")
        return RawSearchSpec(
            term=text,
            fields=fields,
            operator=str(operator).strip() if operator is not None else None,
        )

    def read_page_pagination(
        self, source: Mapping[str, Any], page_base: int = 1
    ) -> RawPaginationSpec:
        """``page``/``pageSize`` style pagination plus row-range and cursor."""

        def text(value: Any) -> str | None:
            return None if value is None else stringify_value(value).strip()

        return RawPaginationSpec(
            page=text(self.first_present(source, "page")),
            page_size=text(
                self.first_present(
                    source, "pageSize", "page_size", "per_page", "limit"
                )
            ),
            offset=text(self.first_present(source, "offset")),
            start_row=text(self.first_present(source, "startRow")),
            end_row=text(self.first_present(source, "endRow")),
            cursor=text(self.first_present(source, "cursor")),
            page_base=page_base,
        )

    def read_options(self, source: Mapping[str, Any]) -> ResponseOptions:
        response_format = self.first_present(source, "responseFormat", "format")
        return ResponseOptions(
            response_format=(
                str(response_format).strip() if response_format is not None else None
            ),
            include_total=parse_bool_flag(source.get("include_total"), default=True),
            include_available_filters=parse_bool_flag(
                source.get("include_available_filters")
            ),
            include_metadata=parse_bool_flag(source.get("include_metadata")),
        )
