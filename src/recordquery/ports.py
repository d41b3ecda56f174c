"""IQueryExecutor — protocol for the data-access collaborator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .builders.plan import QueryPlan


@dataclass(frozen=True)
class ExecutionResult:
    """
    Records of one window plus what the formatter needs about the rest.

    ``total_count`` is ``None`` when the store did not count (cursor windows,
    or ``include_total=false``).
    """

    records: list[Any] = field(default_factory=list)
    total_count: int | None = None
    has_more: bool = False


@runtime_checkable
class IQueryExecutor(Protocol):
    """
    Executes a sealed :class:`~recordquery.builders.plan.QueryPlan`.

    Implementations translate the plan's tagged predicates into their own
    query language; they are called exactly once per request, after the plan
    is sealed.  Cancellation of the awaiting task must abandon the query.
    """

    async def execute(
        self,
        entity_type: str,
        plan: QueryPlan,
        *,
        include_total: bool = True,
    ) -> ExecutionResult:
        """Run *plan* against *entity_type* and return one window of records."""
        ...
