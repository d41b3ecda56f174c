"""Filter builder — validated filter clauses to composed predicates."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from ..model import FilterClause, FilterGroup
from ..operators import LogicalOperator, Operator
from .predicates import (
    AllOf,
    AnyOf,
    ArrayMatch,
    ArrayMode,
    Comparison,
    Membership,
    NullCheck,
    PatternMatch,
    PatternMode,
    Predicate,
    Range,
)


def _comparison(clause: FilterClause) -> Predicate:
    return Comparison(clause.field.name, clause.operator, clause.values[0])


def _pattern(
    mode: PatternMode, negated: bool = False
) -> Callable[[FilterClause], Predicate]:
    def build(clause: FilterClause) -> Predicate:
        return PatternMatch(clause.field.name, str(clause.values[0]), mode, negated)

    return build


def _array(mode: ArrayMode) -> Callable[[FilterClause], Predicate]:
    def build(clause: FilterClause) -> Predicate:
        return ArrayMatch(clause.field.name, clause.values, mode)

    return build


_BUILDERS: dict[Operator, Callable[[FilterClause], Predicate]] = {
    Operator.EQ: _comparison,
    Operator.NE: _comparison,
    Operator.GT: _comparison,
    Operator.GE: _comparison,
    Operator.LT: _comparison,
    Operator.LE: _comparison,
    Operator.BETWEEN: lambda c: Range(c.field.name, c.values[0], c.values[1]),
    Operator.IN: lambda c: Membership(c.field.name, c.values),
    Operator.NOT_IN: lambda c: Membership(c.field.name, c.values, negated=True),
    Operator.CONTAINS: _pattern(PatternMode.CONTAINS),
    Operator.NOT_CONTAINS: _pattern(PatternMode.CONTAINS, negated=True),
    Operator.STARTS_WITH: _pattern(PatternMode.STARTS_WITH),
    Operator.ENDS_WITH: _pattern(PatternMode.ENDS_WITH),
    Operator.IS_NULL: lambda c: NullCheck(c.field.name, is_null=True),
    Operator.IS_NOT_NULL: lambda c: NullCheck(c.field.name, is_null=False),
    Operator.OVERLAP: _array(ArrayMode.OVERLAP),
    Operator.CONTAINS_ALL: _array(ArrayMode.CONTAINS_ALL),
    Operator.CONTAINS_NONE: _array(ArrayMode.CONTAINS_NONE),
}


def clause_predicate(clause: FilterClause) -> Predicate:
    """The operator-specific predicate for one validated clause."""
    return _BUILDERS[clause.operator](clause)


def combine(logic: LogicalOperator, children: Iterable[Predicate]) -> Predicate | None:
    items = tuple(children)
    if not items:
        return None
    if len(items) == 1:
        return items[0]
    return AllOf(items) if logic is LogicalOperator.AND else AnyOf(items)


@dataclass
class _Node:
    logic: LogicalOperator
    # Either a clause predicate or a nested group, in first-seen order
    members: list[Predicate | _Node] = field(default_factory=list)
    groups: dict[str, _Node] = field(default_factory=dict)

    def child_group(self, group: FilterGroup) -> _Node:
        node = self.groups.get(group.group_id)
        if node is None:
            node = _Node(logic=group.logic)
            self.groups[group.group_id] = node
            self.members.append(node)
        return node

    def to_predicates(self) -> list[Predicate]:
        out: list[Predicate] = []
        for member in self.members:
            if isinstance(member, _Node):
                composed = combine(member.logic, member.to_predicates())
                if composed is not None:
                    out.append(composed)
            else:
                out.append(member)
        return out


class FilterBuilder:
    """
    Compose clause predicates according to their groups.

    Ungrouped clauses and top-level groups are combined with the request's
    filter logic; clauses sharing a :class:`FilterGroup` are combined with
    that group's logic, recursively for nested groups.  The result is the
    plan's predicate list, whose members are implicitly AND-ed: an ``or``
    request therefore yields a single :class:`AnyOf`.
    """

    def build(
        self,
        clauses: Iterable[FilterClause],
        logic: LogicalOperator = LogicalOperator.AND,
    ) -> tuple[Predicate, ...]:
        root = _Node(logic=logic)
        for clause in clauses:
            node = root
            if clause.group is not None:
                for group in clause.group.lineage():
                    node = node.child_group(group)
            node.members.append(clause_predicate(clause))

        members = root.to_predicates()
        if logic is LogicalOperator.AND:
            return tuple(members)
        composed = combine(logic, members)
        return (composed,) if composed is not None else ()
