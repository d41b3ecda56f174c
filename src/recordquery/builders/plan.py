"""
QueryPlan — the sealed, execution-ready product of the builders.

A plan is assembled incrementally with :class:`QueryPlanBuilder` and then
sealed; the sealed :class:`QueryPlan` is a frozen value and the builder
refuses further changes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..exceptions import PlanSealedError
from .pagination import Window
from .predicates import Predicate
from .sort import OrderKey


@dataclass(frozen=True)
class QueryPlan:
    """
    Everything the execution collaborator needs for one list request.

    Attributes:
        entity_type: The entity being listed.
        predicates: Filter predicates, implicitly AND-ed.
        full_text: The search predicate, or ``None`` without a search.
        order_by: Sort keys in priority order.
        window: Offset or cursor window.
    """

    entity_type: str
    predicates: tuple[Predicate, ...]
    full_text: Predicate | None
    order_by: tuple[OrderKey, ...]
    window: Window

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-compatible dictionary."""
        return {
            "entityType": self.entity_type,
            "predicates": [p.to_dict() for p in self.predicates],
            "fullText": self.full_text.to_dict() if self.full_text else None,
            "orderBy": [key.to_dict() for key in self.order_by],
            "window": self.window.to_dict(),
        }


class QueryPlanBuilder:
    """
    Fluent, seal-once assembly of a :class:`QueryPlan`.

    Usage::

        plan = (
            QueryPlanBuilder("products")
            .with_predicates(predicates)
            .with_full_text(search_predicate)
            .with_order_by(order_by)
            .with_window(window)
            .seal()
        )
    """

    def __init__(self, entity_type: str) -> None:
        self._entity_type = entity_type
        self._predicates: tuple[Predicate, ...] = ()
        self._full_text: Predicate | None = None
        self._order_by: tuple[OrderKey, ...] = ()
        self._window: Window | None = None
        self._sealed: QueryPlan | None = None

    @property
    def is_sealed(self) -> bool:
        return self._sealed is not None

    def _ensure_open(self, attribute: str) -> None:
        if self._sealed is not None:
            raise PlanSealedError(attribute)

    def with_predicates(self, predicates: tuple[Predicate, ...]) -> QueryPlanBuilder:
        self._ensure_open("predicates")
        self._predicates = tuple(predicates)
        return self

    def with_full_text(self, predicate: Predicate | None) -> QueryPlanBuilder:
        self._ensure_open("full_text")
        self._full_text = predicate
        return self

    def with_order_by(self, order_by: tuple[OrderKey, ...]) -> QueryPlanBuilder:
        self._ensure_open("order_by")
        self._order_by = tuple(order_by)
        return self

    def with_window(self, window: Window) -> QueryPlanBuilder:
        self._ensure_open("window")
        self._window = window
        return self

    def seal(self) -> QueryPlan:
        """
        Freeze the plan.  Sealing again returns the same plan.

        Raises:
            ValueError: No window was set.
        """
        if self._sealed is not None:
            return self._sealed
        if self._window is None:
            raise ValueError("A query plan needs a pagination window")
        self._sealed = QueryPlan(
            entity_type=self._entity_type,
            predicates=self._predicates,
            full_text=self._full_text,
            order_by=self._order_by,
            window=self._window,
        )
        return self._sealed
