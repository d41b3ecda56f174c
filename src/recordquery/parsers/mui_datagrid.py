"""MuiDataGridRequestParser — MUI X DataGrid server-mode requests."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ..model import ParsedQuerySpec, RawFilterClause, RawSearchSpec
from ..operators import (
    NULLARY_OPERATORS,
    LogicalOperator,
    Operator,
    resolve_operator,
)
from ..result import Result, ValidationError
from .base import BaseRequestParser, ParserKind
from .utils import (
    decode_json_param,
    sanitize_field_name,
    sort_from_objects,
    stringify_value,
    stringify_values,
)

if TYPE_CHECKING:
    from ..capabilities import FieldDescriptor
    from ..envelope import RequestEnvelope

logger = logging.getLogger(__name__)

# DataGrid filter operator -> canonical operator name
MUI_OPERATORS: dict[str, str] = {
    # String operators
    "contains": Operator.CONTAINS.value,
    "doesNotContain": Operator.NOT_CONTAINS.value,
    "equals": Operator.EQ.value,
    "doesNotEqual": Operator.NE.value,
    "startsWith": Operator.STARTS_WITH.value,
    "endsWith": Operator.ENDS_WITH.value,
    "isEmpty": Operator.IS_NULL.value,
    "isNotEmpty": Operator.IS_NOT_NULL.value,
    "isAnyOf": Operator.IN.value,
    # Number operators
    "=": Operator.EQ.value,
    "!=": Operator.NE.value,
    ">": Operator.GT.value,
    ">=": Operator.GE.value,
    "gte": Operator.GE.value,
    "<": Operator.LT.value,
    "<=": Operator.LE.value,
    "lte": Operator.LE.value,
    # Date and single-select operators
    "is": Operator.EQ.value,
    "not": Operator.NE.value,
    "after": Operator.GT.value,
    "onOrAfter": Operator.GE.value,
    "before": Operator.LT.value,
    "onOrBefore": Operator.LE.value,
}

_MODEL_KEYS = frozenset(
    {"items", "logicOperator", "quickFilterValues", "quickFilterLogicOperator"}
)


def map_mui_operator(name: str) -> str:
    """Canonical operator name; unknown names pass through unchanged."""
    if name in MUI_OPERATORS:
        return MUI_OPERATORS[name]
    operator = resolve_operator(name)
    return operator.value if operator is not None else name


class MuiDataGridRequestParser(BaseRequestParser):
    """
    Page-number requests from a MUI DataGrid in server mode.

    - ``page`` is zero-based; ``pageSize`` (or ``paginationModel``)
    - ``sortModel``: ``[{"field": "name", "sort": "desc"}]``
    - ``filterModel``: ``{"items": [{field, operator, value}],
      "logicOperator": "or", "quickFilterValues": ["term"]}``, or the
      shorthand ``{field: value}`` / ``{field: {operator: value}}``

    Items missing the value their operator needs are skipped: the grid
    emits them while a filter row is still being edited.
    """

    kind = ParserKind.MUI_DATAGRID

    def parse(
        self,
        envelope: RequestEnvelope,
        fields: Mapping[str, FieldDescriptor],  # noqa: ARG002
    ) -> Result[ParsedQuerySpec]:
        source: dict[str, Any] = dict(self.query_mapping(envelope))
        source.update(envelope.json_body() or {})

        pagination_model = decode_json_param(
            source.get("paginationModel"), "paginationModel"
        )
        if isinstance(pagination_model, dict):
            source = {**pagination_model, **source}

        errors: list[ValidationError] = []
        filter_model = decode_json_param(source.get("filterModel"), "filterModel")
        filters, logic, quick_terms = self._parse_filter_model(filter_model, errors)

        sort_model = decode_json_param(source.get("sortModel"), "sortModel")
        sort = sort_from_objects(sort_model, "field", "sort", "sortModel")

        if errors:
            return Result.failure(errors)

        search = self.read_search(source)
        if search is None and quick_terms:
            search = RawSearchSpec(term=" ".join(quick_terms))

        spec = ParsedQuerySpec(
            filters=tuple(filters),
            search=search,
            sort=tuple(sort),
            pagination=self.read_page_pagination(source, page_base=0),
            filter_logic=logic,
            options=self.read_options(source),
        )
        logger.debug(
            "MUI DataGrid format parsed: %d filters (%s), %d sorts",
            len(spec.filters),
            spec.filter_logic.value,
            len(spec.sort),
        )
        return Result.success(spec)

    # ── Filters ──────────────────────────────────────────────────

    def _parse_filter_model(
        self, model: Any, errors: list[ValidationError]
    ) -> tuple[list[RawFilterClause], LogicalOperator, list[str]]:
        if not model:
            return [], LogicalOperator.AND, []
        if not isinstance(model, dict):
            errors.append(self.malformed("'filterModel' must be an object"))
            return [], LogicalOperator.AND, []

        logic = LogicalOperator.AND
        if str(model.get("logicOperator", "and")).strip().lower() == "or":
            logic = LogicalOperator.OR

        quick_terms: list[str] = []
        quick = model.get("quickFilterValues")
        if isinstance(quick, list):
            quick_terms = [t for t in (stringify_value(v).strip() for v in quick) if t]

        if "items" in model:
            items = model["items"]
            if not isinstance(items, list):
                errors.append(self.malformed("'filterModel.items' must be a list"))
                return [], logic, quick_terms
            clauses = [
                clause
                for clause in (self._item(item, errors) for item in items)
                if clause is not None
            ]
            return clauses, logic, quick_terms

        return self._shorthand(model), logic, quick_terms

    def _item(
        self, item: Any, errors: list[ValidationError]
    ) -> RawFilterClause | None:
        if not isinstance(item, dict):
            errors.append(self.malformed("Filter items must be objects"))
            return None
        # v5 used columnField/operatorValue
        raw_name = item.get("field") or item.get("columnField") or ""
        name = sanitize_field_name(raw_name)
        raw_operator = item.get("operator") or item.get("operatorValue")
        if not name or not raw_operator:
            return None

        operator_name = map_mui_operator(str(raw_operator))
        if resolve_operator(operator_name) in NULLARY_OPERATORS:
            return RawFilterClause(name, operator_name, ())

        value = item.get("value")
        if value is None or value == "" or value == []:
            return None
        return RawFilterClause(name, operator_name, stringify_values(value))

    def _shorthand(self, model: dict[str, Any]) -> list[RawFilterClause]:
        clauses: list[RawFilterClause] = []
        for raw_name, value in model.items():
            if raw_name in _MODEL_KEYS:
                continue
            name = sanitize_field_name(raw_name)
            if not name or value is None or value == "":
                continue
            if isinstance(value, dict):
                for raw_operator, operand in value.items():
                    operator_name = map_mui_operator(str(raw_operator))
                    values = (
                        ()
                        if resolve_operator(operator_name) in NULLARY_OPERATORS
                        else stringify_values(operand)
                    )
                    clauses.append(RawFilterClause(name, operator_name, values))
            elif isinstance(value, list):
                clauses.append(
                    RawFilterClause(name, Operator.IN.value, stringify_values(value))
                )
            else:
                clauses.append(
                    RawFilterClause(name, Operator.EQ.value, (stringify_value(value),))
                )
        return clauses
