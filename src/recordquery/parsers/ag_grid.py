"""AgGridRequestParser — AG-Grid server-side row model requests."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ..model import FilterGroup, ParsedQuerySpec, RawFilterClause
from ..operators import NULLARY_OPERATORS, LogicalOperator, Operator, resolve_operator
from ..result import Result, ValidationError
from .base import BaseRequestParser, ParserKind
from .utils import (
    decode_json_param,
    indexed_items,
    nest_bracket_params,
    sanitize_field_name,
    sort_from_objects,
    stringify_value,
    stringify_values,
)

if TYPE_CHECKING:
    from ..capabilities import FieldDescriptor
    from ..envelope import RequestEnvelope

logger = logging.getLogger(__name__)

# AG-Grid filter "type" -> canonical operator name
AG_GRID_OPERATORS: dict[str, str] = {
    "equals": Operator.EQ.value,
    "notEqual": Operator.NE.value,
    "contains": Operator.CONTAINS.value,
    "notContains": Operator.NOT_CONTAINS.value,
    "startsWith": Operator.STARTS_WITH.value,
    "endsWith": Operator.ENDS_WITH.value,
    "lessThan": Operator.LT.value,
    "lessThanOrEqual": Operator.LE.value,
    "greaterThan": Operator.GT.value,
    "greaterThanOrEqual": Operator.GE.value,
    "inRange": Operator.BETWEEN.value,
    "empty": Operator.IS_NULL.value,
    "blank": Operator.IS_NULL.value,
    "notEmpty": Operator.IS_NOT_NULL.value,
    "notBlank": Operator.IS_NOT_NULL.value,
}


class AgGridRequestParser(BaseRequestParser):
    """
    Row-range requests from an AG-Grid datasource.

    Reads a JSON body (or the same keys JSON-encoded in the query string):

    - ``startRow``/``endRow`` row range
    - ``sortModel``: ``[{"colId": "name", "sort": "asc"}]``
    - ``filterModel``: ``{field: {"filterType", "type", "filter", ...}}``
      for ``text``/``number``/``date``/``set`` filters, including combined
      conditions; an ``OR`` combination becomes a filter group
    - ``quickFilter``/``globalFilter``/``search`` as the search term

    The flat query-string form ``sort[0][colId]``/``sort[0][sort]`` and
    ``filters[field][type]``/``filters[field][filter]`` is accepted too.
    """

    kind = ParserKind.AG_GRID

    def parse(
        self,
        envelope: RequestEnvelope,
        fields: Mapping[str, FieldDescriptor],  # noqa: ARG002
    ) -> Result[ParsedQuerySpec]:
        source: dict[str, Any] = dict(self.query_mapping(envelope))
        source.update(envelope.json_body() or {})

        errors: list[ValidationError] = []
        filter_model = decode_json_param(source.get("filterModel"), "filterModel")
        if filter_model is None:
            filter_model = nest_bracket_params(envelope.raw_query_params, "filters")
        filters = self._parse_filter_model(filter_model, errors)

        sort_model = decode_json_param(source.get("sortModel"), "sortModel")
        if sort_model is None:
            tree = nest_bracket_params(envelope.raw_query_params, "sort")
            sort_model = indexed_items(tree) if tree else []
        sort = sort_from_objects(sort_model, "colId", "sort", "sortModel")

        if errors:
            return Result.failure(errors)

        spec = ParsedQuerySpec(
            filters=tuple(filters),
            search=self.read_search(
                source, term_keys=("quickFilter", "globalFilter", "search")
            ),
            sort=tuple(sort),
            pagination=self.read_page_pagination(source),
            options=self.read_options(source),
        )
        logger.debug(
            "AG-Grid format parsed: %d filters, %d sorts, rows %s-%s",
            len(spec.filters),
            len(spec.sort),
            spec.pagination.start_row,
            spec.pagination.end_row,
        )
        return Result.success(spec)

    # ── Filters ──────────────────────────────────────────────────

    def _parse_filter_model(
        self, model: Any, errors: list[ValidationError]
    ) -> list[RawFilterClause]:
        if not model:
            return []
        if not isinstance(model, dict):
            errors.append(self.malformed("'filterModel' must be an object"))
            return []

        clauses: list[RawFilterClause] = []
        for raw_name, column_model in model.items():
            name = sanitize_field_name(raw_name)
            if not name:
                continue
            if not isinstance(column_model, dict):
                errors.append(
                    self.malformed(
                        f"Filter for '{name}' must be an object", field_name=name
                    )
                )
                continue

            conditions = self._conditions_of(column_model)
            if conditions is None:
                clause = self._condition(name, column_model, None, errors)
                if clause is not None:
                    clauses.append(clause)
                continue

            logic = str(column_model.get("operator", "AND")).strip().lower()
            group = (
                FilterGroup(group_id=name, logic=LogicalOperator.OR)
                if logic == LogicalOperator.OR.value
                else None
            )
            for condition in conditions:
                if not isinstance(condition, dict):
                    errors.append(
                        self.malformed(
                            f"Conditions for '{name}' must be objects",
                            field_name=name,
                        )
                    )
                    continue
                # Inherit the column's filterType when a condition omits it
                merged = {"filterType": column_model.get("filterType"), **condition}
                clause = self._condition(name, merged, group, errors)
                if clause is not None:
                    clauses.append(clause)
        return clauses

    @staticmethod
    def _conditions_of(column_model: dict[str, Any]) -> list[Any] | None:
        """Sub-conditions of a combined filter, ``None`` for a single one."""
        if isinstance(column_model.get("conditions"), list):
            return list(column_model["conditions"])
        if "condition1" in column_model:
            return [
                column_model[key]
                for key in ("condition1", "condition2")
                if column_model.get(key) is not None
            ]
        return None

    def _condition(
        self,
        name: str,
        model: dict[str, Any],
        group: FilterGroup | None,
        errors: list[ValidationError],
    ) -> RawFilterClause | None:
        filter_type = model.get("filterType")
        if not filter_type:
            filter_type = "set" if "values" in model else "text"

        if filter_type == "set":
            selected = model.get("values")
            if not isinstance(selected, list):
                errors.append(
                    self.malformed(
                        f"Set filter for '{name}' needs a 'values' list",
                        field_name=name,
                    )
                )
                return None
            return RawFilterClause(
                name, Operator.IN.value, stringify_values(selected), group
            )

        grid_type = str(model.get("type") or "equals")
        operator_name = AG_GRID_OPERATORS.get(grid_type, grid_type)
        operator = resolve_operator(operator_name)

        if operator in NULLARY_OPERATORS:
            return RawFilterClause(name, operator_name, (), group)

        if filter_type == "date":
            low_key, high_key = "dateFrom", "dateTo"
        else:
            low_key, high_key = "filter", "filterTo"
        low = model.get(low_key)
        if low is None or low == "":
            # Incomplete condition while the user is still typing
            return None
        if operator is Operator.BETWEEN:
            high = model.get(high_key)
            values: tuple[str, ...] = (stringify_value(low),)
            if high is not None and high != "":
                values += (stringify_value(high),)
            return RawFilterClause(name, operator_name, values, group)
        return RawFilterClause(name, operator_name, (stringify_value(low),), group)
