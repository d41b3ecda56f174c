"""QueryStringBuilder — request parameters + window -> query string (links)."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from urllib.parse import urlencode

# Parameters replaced by the window of the link being built
_WINDOW_KEYS = frozenset(
    {
        "page",
        "pageSize",
        "page_size",
        "per_page",
        "limit",
        "offset",
        "startRow",
        "endRow",
        "cursor",
    }
)


class QueryStringBuilder:
    """Build query strings for pagination links, keeping the request's filters."""

    def build(
        self,
        base_params: Iterable[tuple[str, str]],
        *,
        page: int | None = None,
        page_size: int | None = None,
        cursor: str | None = None,
        page_key: str = "page",
        page_size_key: str = "pageSize",
        cursor_key: str = "cursor",
    ) -> str:
        """Produce a query string (without the leading ``?``)."""
        params: list[tuple[str, str]] = [
            (key, value) for key, value in base_params if key not in _WINDOW_KEYS
        ]
        if page is not None:
            params.append((page_key, str(page)))
        if page_size is not None:
            params.append((page_size_key, str(page_size)))
        if cursor is not None:
            params.append((cursor_key, cursor))
        return urlencode(params) if params else ""

    def page_links(
        self,
        base_params: Iterable[tuple[str, str]],
        *,
        page: int,
        page_size: int,
        total_pages: int | None,
        has_more: bool,
    ) -> dict[str, Any]:
        """``self``/``first``/``prev``/``next``/``last`` links for a page."""
        params = list(base_params)

        def link(number: int) -> str:
            return "?" + self.build(params, page=number, page_size=page_size)

        has_next = page < total_pages if total_pages is not None else has_more
        return {
            "self": link(page),
            "first": link(1),
            "prev": link(page - 1) if page > 1 else None,
            "next": link(page + 1) if has_next else None,
            "last": link(max(total_pages, 1)) if total_pages is not None else None,
        }
