"""
QueryPipeline — request envelope to query plan to response envelope.

Detector -> parser -> validator -> builders -> (executor) -> formatter.  The
pipeline is pure transformation up to the execution boundary; it keeps no
per-request state, so one instance serves any number of concurrent requests.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .builders.filters import FilterBuilder
from .builders.pagination import PaginationBuilder
from .builders.plan import QueryPlan, QueryPlanBuilder
from .builders.search import SearchBuilder
from .builders.sort import SortBuilder
from .config import PipelineConfig
from .cursor import CursorCodec
from .exceptions import ParseError, QueryExecutionError
from .formatter import (
    FormatContext,
    ResponseFormat,
    ResponseFormatter,
    resolve_response_format,
)
from .model import QueryIntent, ResponseOptions
from .parsers import FormatDetector, ParserKind, RequestParser, build_default_parsers
from .result import ValidationErrorAggregate
from .validator import QueryValidator

if TYPE_CHECKING:
    from .capabilities import FieldCapabilityRegistry
    from .envelope import RequestEnvelope
    from .ports import IQueryExecutor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineOutcome:
    """
    The planning half of a run: a sealed plan, or every error found.

    ``errors`` is empty exactly when ``plan`` is set.
    """

    parser_kind: ParserKind
    options: ResponseOptions
    intent: QueryIntent | None = None
    plan: QueryPlan | None = None
    errors: ValidationErrorAggregate = field(default_factory=ValidationErrorAggregate)

    @property
    def ok(self) -> bool:
        return self.plan is not None


@dataclass(frozen=True)
class PipelineResponse:
    status_code: int
    body: dict[str, Any]
    response_format: ResponseFormat | None = None


class QueryPipeline:
    """
    Orchestrates one list request end to end.

    Usage::

        pipeline = QueryPipeline(registry, config, executor=executor)
        envelope = RequestEnvelope.from_query_string("products", "status=active")
        response = await pipeline.run(envelope)
        response.status_code, response.body
    """

    def __init__(
        self,
        registry: FieldCapabilityRegistry,
        config: PipelineConfig | None = None,
        *,
        executor: IQueryExecutor | None = None,
        parsers: Mapping[ParserKind, RequestParser] | None = None,
        detector: FormatDetector | None = None,
        formatter: ResponseFormatter | None = None,
    ) -> None:
        self._registry = registry
        self._config = config or PipelineConfig()
        self._executor = executor
        self._parsers = dict(parsers or build_default_parsers(self._config))
        if ParserKind.SIMPLE not in self._parsers:
            raise ValueError("A simple parser is required as the fallback")
        self._detector = detector or FormatDetector()
        self._formatter = formatter or ResponseFormatter()

        codec = CursorCodec(self._config.cursor_secret.get_secret_value())
        self._validator = QueryValidator(registry, self._config, codec)
        self._filters = FilterBuilder()
        self._search = SearchBuilder(self._config.min_search_word_length)
        self._sort = SortBuilder(self._config.max_sort_clauses)
        self._pagination = PaginationBuilder(codec)

    # ── Planning ─────────────────────────────────────────────────

    def plan(self, envelope: RequestEnvelope) -> PipelineOutcome:
        """
        Parse, validate and build a sealed plan for *envelope*.

        Raises:
            EntityNotRegisteredError: The envelope's entity type is unknown.
        """
        entity_type = envelope.entity_type
        fields = self._registry.fields_for(entity_type)

        kind = self._detector.detect(envelope)
        parser = self._parsers.get(kind, self._parsers[ParserKind.SIMPLE])
        try:
            parsed = parser.parse(envelope, fields)
        except ParseError as exc:
            logger.warning(
                "%s parser could not read the %s request (%s); using simple format",
                kind.value,
                entity_type,
                exc.message,
            )
            kind = ParserKind.SIMPLE
            parsed = self._parsers[ParserKind.SIMPLE].parse(envelope, fields)

        if not parsed.ok or parsed.value is None:
            return PipelineOutcome(
                parser_kind=kind,
                options=ResponseOptions(),
                errors=parsed.aggregate(),
            )
        spec = parsed.value

        validated = self._validator.validate(spec, entity_type)
        if not validated.ok or validated.value is None:
            return PipelineOutcome(
                parser_kind=kind,
                options=spec.options,
                errors=validated.aggregate(),
            )
        intent = validated.value

        order_by = self._sort.build(intent.sort)
        plan = (
            QueryPlanBuilder(entity_type)
            .with_predicates(self._filters.build(intent.filters, intent.filter_logic))
            .with_full_text(self._search.build(intent.search))
            .with_order_by(order_by)
            .with_window(self._pagination.build(intent.pagination, order_by))
            .seal()
        )
        return PipelineOutcome(
            parser_kind=kind, options=spec.options, intent=intent, plan=plan
        )

    # ── Execution ────────────────────────────────────────────────

    async def run(
        self,
        envelope: RequestEnvelope,
        executor: IQueryExecutor | None = None,
    ) -> PipelineResponse:
        """
        Plan, execute and format one request.

        Validation failures answer 400 with the aggregated errors; the
        executor is not called for them.

        Raises:
            QueryExecutionError: The executor failed; the original exception
                is chained.
            EntityNotRegisteredError: The envelope's entity type is unknown.
        """
        start = time.perf_counter()
        outcome = self.plan(envelope)
        if not outcome.ok or outcome.plan is None or outcome.intent is None:
            logger.info(
                "%s request rejected (%s format): %d errors",
                envelope.entity_type,
                outcome.parser_kind.value,
                len(outcome.errors),
            )
            return PipelineResponse(status_code=400, body=outcome.errors.to_dict())

        plan = outcome.plan
        executor = executor or self._executor
        if executor is None:
            raise ValueError("No query executor configured")

        response_format = resolve_response_format(
            outcome.parser_kind, plan.window, outcome.options.response_format
        )
        try:
            result = await executor.execute(
                plan.entity_type,
                plan,
                include_total=outcome.options.include_total,
            )
        except Exception as exc:
            logger.exception("Query execution failed for %s", plan.entity_type)
            raise QueryExecutionError(plan.entity_type) from exc

        next_cursor = None
        if (
            response_format is ResponseFormat.CURSOR
            and result.has_more
            and result.records
        ):
            next_cursor = self._pagination.next_cursor(
                plan.order_by, result.records[-1]
            )

        context = FormatContext(
            intent=outcome.intent,
            plan=plan,
            options=outcome.options,
            query_params=envelope.raw_query_params,
            available_filters=(
                self._registry.available_filters(plan.entity_type)
                if outcome.options.include_available_filters
                else None
            ),
        )
        body = self._formatter.format(response_format, result, context, next_cursor)

        elapsed = (time.perf_counter() - start) * 1000
        logger.info(
            "%s query (%s format, %d filters, %d sort keys, %s window) "
            "returned %d records in %.2fms",
            plan.entity_type,
            outcome.parser_kind.value,
            len(outcome.intent.filters),
            len(plan.order_by),
            plan.window.kind.value,
            len(result.records),
            elapsed,
        )
        return PipelineResponse(
            status_code=200, body=body, response_format=response_format
        )
