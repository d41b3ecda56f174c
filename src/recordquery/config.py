"""Pipeline configuration."""

from __future__ import annotations

import secrets

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator

from .operators import Operator

DEFAULT_RESERVED_PARAMS: frozenset[str] = frozenset(
    {
        # Pagination
        "page",
        "pageSize",
        "page_size",
        "per_page",
        "limit",
        "offset",
        "startRow",
        "endRow",
        "cursor",
        # Sorting
        "sort",
        "sortBy",
        "sortOrder",
        # Search
        "search",
        "q",
        "search_fields",
        "searchFields",
        "search_operator",
        "searchOperator",
        # Response options
        "include_total",
        "include_available_filters",
        "include_metadata",
        "responseFormat",
        "format",
        # Envelope keys owned by other formats
        "filter",
        "filters",
        "filterModel",
        "sortModel",
        "advancedFilter",
        "advancedSort",
    }
)


_SEARCHABLE_OPERATORS = frozenset(
    {Operator.CONTAINS, Operator.STARTS_WITH, Operator.ENDS_WITH, Operator.EQ}
)


def _random_secret() -> SecretStr:
    return SecretStr(secrets.token_urlsafe(32))


class PipelineConfig(BaseModel):
    """
    Tunables shared by every request-scoped pipeline run.

    The default ``cursor_secret`` is random per process; deployments that run
    more than one process (or restart) must set it explicitly so cursors
    stay valid across them.
    """

    model_config = ConfigDict(frozen=True)

    default_page_size: int = Field(default=20, gt=0)
    max_page_size: int = Field(default=1000, gt=0)
    max_sort_clauses: int = Field(default=5, gt=0)

    # Advanced format: how many levels of boolean groups below the root
    max_group_depth: int = Field(default=1, ge=0)

    cursor_secret: SecretStr = Field(default_factory=_random_secret)

    # Tie-break sort used when a request supplies none (first sortable wins)
    default_sort_candidates: tuple[tuple[str, str], ...] = (
        ("id", "asc"),
        ("created_at", "desc"),
        ("updated_at", "desc"),
    )

    search_operators: frozenset[Operator] = _SEARCHABLE_OPERATORS
    default_search_operator: Operator = Operator.CONTAINS
    min_search_word_length: int = Field(default=2, ge=1)

    reserved_params: frozenset[str] = DEFAULT_RESERVED_PARAMS

    @model_validator(mode="after")
    def _check_bounds(self) -> PipelineConfig:
        if self.default_page_size > self.max_page_size:
            raise ValueError(
                f"default_page_size ({self.default_page_size}) exceeds "
                f"max_page_size ({self.max_page_size})"
            )
        unsupported = self.search_operators - _SEARCHABLE_OPERATORS
        if unsupported:
            raise ValueError(
                "search_operators may only contain "
                + ", ".join(sorted(op.value for op in _SEARCHABLE_OPERATORS))
            )
        if self.default_search_operator not in self.search_operators:
            raise ValueError(
                f"default_search_operator '{self.default_search_operator.value}' "
                "is not one of search_operators"
            )
        return self
