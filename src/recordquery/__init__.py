"""recordquery — request parsing, validation and query planning for record APIs.

Pure transformation up to the execution boundary; pydantic for configuration
and metadata validation only.
"""

from __future__ import annotations

# ── Adapters ─────────────────────────────────────────────────────
from .adapters.memory import InMemoryQueryExecutor

# ── Builders ─────────────────────────────────────────────────────
from .builders import (
    CursorWindow,
    FilterBuilder,
    OffsetWindow,
    OrderKey,
    PaginationBuilder,
    Predicate,
    QueryPlan,
    QueryPlanBuilder,
    SearchBuilder,
    SortBuilder,
)

# ── Capabilities ─────────────────────────────────────────────────
from .capabilities import (
    DataKind,
    EntityMetadata,
    FieldCapabilityRegistry,
    FieldDescriptor,
    FieldMetadata,
)
from .config import PipelineConfig
from .cursor import CursorCodec
from .envelope import RequestEnvelope

# ── Exceptions ───────────────────────────────────────────────────
from .exceptions import (
    CursorError,
    EntityNotRegisteredError,
    MetadataError,
    ParseError,
    PlanSealedError,
    QueryExecutionError,
    RecordQueryError,
)

# ── Formatting ───────────────────────────────────────────────────
from .formatter import ResponseFormat, ResponseFormatter, resolve_response_format

# ── Model ────────────────────────────────────────────────────────
from .model import (
    CursorState,
    FilterClause,
    FilterGroup,
    PaginationSpec,
    ParsedQuerySpec,
    QueryIntent,
    SearchSpec,
    SortClause,
    WindowKind,
)
from .operators import LogicalOperator, NullsPosition, Operator, SortDirection

# ── Parsers ──────────────────────────────────────────────────────
from .parsers import FormatDetector, ParserKind, RequestParser, build_default_parsers

# ── Pipeline ─────────────────────────────────────────────────────
from .pipeline import PipelineOutcome, PipelineResponse, QueryPipeline
from .ports import ExecutionResult, IQueryExecutor
from .query_string import QueryStringBuilder
from .result import (
    ErrorCode,
    ErrorScope,
    Result,
    ValidationError,
    ValidationErrorAggregate,
)
from .validator import QueryValidator

__all__ = [
    "CursorCodec",
    "CursorError",
    "CursorState",
    "CursorWindow",
    "DataKind",
    "EntityMetadata",
    "EntityNotRegisteredError",
    "ErrorCode",
    "ErrorScope",
    "ExecutionResult",
    "FieldCapabilityRegistry",
    "FieldDescriptor",
    "FieldMetadata",
    "FilterBuilder",
    "FilterClause",
    "FilterGroup",
    "FormatDetector",
    "IQueryExecutor",
    "InMemoryQueryExecutor",
    "LogicalOperator",
    "MetadataError",
    "NullsPosition",
    "OffsetWindow",
    "Operator",
    "OrderKey",
    "PaginationBuilder",
    "PaginationSpec",
    "ParseError",
    "ParsedQuerySpec",
    "ParserKind",
    "PipelineConfig",
    "PipelineOutcome",
    "PipelineResponse",
    "PlanSealedError",
    "Predicate",
    "QueryExecutionError",
    "QueryIntent",
    "QueryPipeline",
    "QueryPlan",
    "QueryPlanBuilder",
    "QueryStringBuilder",
    "QueryValidator",
    "RecordQueryError",
    "RequestEnvelope",
    "RequestParser",
    "ResponseFormat",
    "ResponseFormatter",
    "Result",
    "SearchBuilder",
    "SearchSpec",
    "SortBuilder",
    "SortClause",
    "SortDirection",
    "ValidationError",
    "ValidationErrorAggregate",
    "WindowKind",
    "build_default_parsers",
    "resolve_response_format",
]
