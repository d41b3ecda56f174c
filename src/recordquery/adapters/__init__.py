"""Executor implementations."""

from .memory import InMemoryQueryExecutor, compare_values

__all__ = ["InMemoryQueryExecutor", "compare_values"]
