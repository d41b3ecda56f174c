"""AdvancedRequestParser — boolean filter trees on top of the structured format."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ..model import FilterGroup, ParsedQuerySpec, RawFilterClause, RawSortClause
from ..operators import (
    LIST_VALUED_OPERATORS,
    NULLARY_OPERATORS,
    LogicalOperator,
    Operator,
    canonical_operator_name,
    resolve_operator,
)
from ..result import ErrorCode, ErrorScope, Result, ValidationError
from .base import ParserKind
from .structured import StructuredRequestParser
from .utils import (
    decode_json_param,
    parse_sort_string,
    sanitize_field_name,
    sort_from_objects,
    split_list,
    stringify_value,
    stringify_values,
)

if TYPE_CHECKING:
    from ..capabilities import FieldDescriptor
    from ..envelope import RequestEnvelope

logger = logging.getLogger(__name__)

_GROUP_KEYS = (LogicalOperator.AND.value, LogicalOperator.OR.value)


class AdvancedRequestParser(StructuredRequestParser):
    """
    Structured format plus a nested ``advancedFilter`` tree.

    The tree is ``{"and"|"or": [...]}`` or ``{"logic": ..., "conditions":
    [...]}`` with leaves ``{"field", "operator", "value"}``; a bare list is an
    implicit ``and``.  The root's logic becomes the request's filter logic.
    Leaves directly under the root stay ungrouped; each group below the root
    tags its leaves with a :class:`FilterGroup` (``g0``, ``g1``, nested
    ``g0.1`` ...).  Groups deeper than ``max_group_depth`` are rejected with
    ``UNSUPPORTED_GROUP_NESTING``.

    ``advancedSort`` is a JSON list of ``{"field", "direction"}`` or a
    ``field:dir`` string.  Flat ``filter[field]=value`` parameters may be
    combined with an ``and`` tree.
    """

    kind = ParserKind.ADVANCED

    def parse(
        self,
        envelope: RequestEnvelope,
        fields: Mapping[str, FieldDescriptor],
    ) -> Result[ParsedQuerySpec]:
        source: dict[str, Any] = dict(self.query_mapping(envelope))
        source.update(envelope.json_body() or {})

        errors: list[ValidationError] = []
        flat = self._parse_filters(envelope, fields, errors)
        tree = decode_json_param(source.get("advancedFilter"), "advancedFilter")
        logic, grouped = self._parse_tree(tree, errors)
        if flat and grouped and logic is LogicalOperator.OR:
            errors.append(
                self.malformed(
                    "An 'or' advancedFilter cannot be combined with "
                    "filter[...] parameters",
                    suggested_fix="Move the flat filters into the tree",
                )
            )

        sort = self._parse_advanced_sort(source.get("advancedSort"))
        if sort is None:
            sort = self._parse_sort(envelope, self.query_mapping(envelope), errors)

        if errors:
            return Result.failure(errors)

        spec = ParsedQuerySpec(
            filters=tuple(flat + grouped),
            search=self.read_search(source),
            sort=tuple(sort),
            pagination=self.read_page_pagination(source),
            filter_logic=logic,
            options=self.read_options(source),
        )
        logger.debug(
            "Advanced format parsed: %d filters (%d grouped, root %s), %d sorts",
            len(spec.filters),
            sum(1 for c in spec.filters if c.group is not None),
            logic.value,
            len(spec.sort),
        )
        return Result.success(spec)

    # ── Filter tree ──────────────────────────────────────────────

    def _parse_tree(
        self, tree: Any, errors: list[ValidationError]
    ) -> tuple[LogicalOperator, list[RawFilterClause]]:
        if tree is None or tree == "" or tree == {} or tree == []:
            return LogicalOperator.AND, []
        if isinstance(tree, list):
            tree = {LogicalOperator.AND.value: tree}
        if not isinstance(tree, dict):
            errors.append(self.malformed("'advancedFilter' must be an object or list"))
            return LogicalOperator.AND, []

        clauses: list[RawFilterClause] = []
        if self._is_leaf(tree):
            self._walk(tree, None, "g0", clauses, errors)
            return LogicalOperator.AND, clauses

        parts = self._group_parts(tree, errors)
        if parts is None:
            return LogicalOperator.AND, []
        logic, children = parts
        for index, child in enumerate(children):
            self._walk(child, None, f"g{index}", clauses, errors)
        return logic, clauses

    def _walk(
        self,
        node: Any,
        parent: FilterGroup | None,
        group_id: str,
        clauses: list[RawFilterClause],
        errors: list[ValidationError],
    ) -> None:
        if not isinstance(node, dict):
            errors.append(self.malformed("advancedFilter entries must be objects"))
            return
        if self._is_leaf(node):
            clause = self._leaf(node, parent, errors)
            if clause is not None:
                clauses.append(clause)
            return

        parts = self._group_parts(node, errors)
        if parts is None:
            return
        logic, children = parts
        group = FilterGroup(group_id=group_id, logic=logic, parent=parent)
        if group.depth > self._config.max_group_depth:
            errors.append(
                ValidationError(
                    scope=ErrorScope.FILTER,
                    code=ErrorCode.UNSUPPORTED_GROUP_NESTING,
                    message=(
                        f"Filter group '{group_id}' is nested {group.depth} "
                        f"levels deep; at most {self._config.max_group_depth} "
                        "supported"
                    ),
                    suggested_fix="Flatten the filter tree",
                )
            )
            return
        for index, child in enumerate(children):
            self._walk(child, group, f"{group_id}.{index}", clauses, errors)

    @staticmethod
    def _is_leaf(node: dict[str, Any]) -> bool:
        return "field" in node

    def _group_parts(
        self, node: dict[str, Any], errors: list[ValidationError]
    ) -> tuple[LogicalOperator, list[Any]] | None:
        for key in _GROUP_KEYS:
            if key in node:
                children = node[key]
                logic = LogicalOperator(key)
                break
        else:
            raw_logic = str(node.get("logic", "and")).strip().lower()
            children = node.get("conditions")
            if raw_logic not in _GROUP_KEYS or children is None:
                errors.append(
                    self.malformed(
                        "Filter groups need 'and'/'or' or 'logic' + 'conditions'"
                    )
                )
                return None
            logic = LogicalOperator(raw_logic)
        if not isinstance(children, list):
            errors.append(self.malformed("Filter group members must be a list"))
            return None
        return logic, children

    def _leaf(
        self,
        node: dict[str, Any],
        group: FilterGroup | None,
        errors: list[ValidationError],
    ) -> RawFilterClause | None:
        name = sanitize_field_name(node.get("field", ""))
        if not name:
            errors.append(self.malformed("Filter condition is missing 'field'"))
            return None
        raw_operator = node.get("operator") or node.get("op") or Operator.EQ.value
        operator_name = canonical_operator_name(str(raw_operator))
        operator = resolve_operator(operator_name)

        value = node.get("value")
        values: tuple[str, ...]
        if operator in NULLARY_OPERATORS or value is None:
            values = ()
        elif isinstance(value, list):
            values = stringify_values(value)
        elif operator in LIST_VALUED_OPERATORS and isinstance(value, str):
            values = split_list(value)
        else:
            values = (stringify_value(value),)
        return RawFilterClause(name, operator_name, values, group)

    # ── Sorting ──────────────────────────────────────────────────

    @staticmethod
    def _parse_advanced_sort(raw: Any) -> list[RawSortClause] | None:
        if raw is None or raw == "":
            return None
        if isinstance(raw, str) and not raw.lstrip().startswith("["):
            return parse_sort_string(raw)
        items = decode_json_param(raw, "advancedSort")
        return sort_from_objects(
            items, "field", "direction", "advancedSort", default_direction="asc"
        )
