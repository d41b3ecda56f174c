"""
Pagination builder — offset and cursor windows.

An offset window is ``(offset, limit)`` plus the page numbers the response
formatter reports.  A cursor window carries a :class:`ContinuationPredicate`
rebuilt from a decoded cursor, so executors never see the token's contents.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from ..cursor import CursorCodec
from ..model import CursorState, PaginationSpec, WindowKind
from .predicates import ContinuationKey, ContinuationPredicate
from .sort import OrderKey


@dataclass(frozen=True)
class OffsetWindow:
    offset: int
    limit: int
    page: int
    page_size: int

    @property
    def kind(self) -> WindowKind:
        return WindowKind.OFFSET

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "offset": self.offset,
            "limit": self.limit,
            "page": self.page,
            "pageSize": self.page_size,
        }


@dataclass(frozen=True)
class CursorWindow:
    """
    Keyset window: the first ``page_size`` rows after ``continuation``.

    ``continuation`` is ``None`` for the first page of a cursor-paginated
    listing.
    """

    page_size: int
    continuation: ContinuationPredicate | None = None
    cursor_token: str | None = None

    @property
    def kind(self) -> WindowKind:
        return WindowKind.CURSOR

    @property
    def limit(self) -> int:
        return self.page_size

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "pageSize": self.page_size,
            "cursor": self.cursor_token,
            "continuation": (
                self.continuation.to_dict() if self.continuation is not None else None
            ),
        }


Window = OffsetWindow | CursorWindow


def read_record_value(record: Any, field_name: str) -> Any:
    """Field value of a mapping record or an attribute-style record."""
    if isinstance(record, Mapping):
        return record.get(field_name)
    return getattr(record, field_name, None)


class PaginationBuilder:
    """
    Build plan windows and emit next-page cursors.

    Usage::

        builder = PaginationBuilder(codec)
        window = builder.build(intent.pagination, order_by)
        token = builder.next_cursor(order_by, records[-1])
    """

    def __init__(
        self,
        codec: CursorCodec,
        value_reader: Callable[[Any, str], Any] = read_record_value,
    ) -> None:
        self._codec = codec
        self._read = value_reader

    def build(
        self, pagination: PaginationSpec, order_by: tuple[OrderKey, ...]
    ) -> Window:
        if pagination.kind is WindowKind.OFFSET:
            return OffsetWindow(
                offset=pagination.offset,
                limit=pagination.page_size,
                page=pagination.page,
                page_size=pagination.page_size,
            )

        continuation = None
        if pagination.cursor is not None:
            continuation = ContinuationPredicate(
                keys=tuple(
                    ContinuationKey(
                        field=key.field,
                        direction=key.direction,
                        nulls_position=key.nulls_position,
                        value=value,
                    )
                    for key, value in zip(
                        order_by, pagination.cursor.values, strict=True
                    )
                )
            )
        return CursorWindow(
            page_size=pagination.page_size,
            continuation=continuation,
            cursor_token=pagination.cursor_token,
        )

    def next_cursor(self, order_by: tuple[OrderKey, ...], last_record: Any) -> str:
        """Token continuing after *last_record* under the same order."""
        state = CursorState(
            keys=tuple((key.field, key.direction) for key in order_by),
            values=tuple(self._read(last_record, key.field) for key in order_by),
        )
        return self._codec.encode(state)
