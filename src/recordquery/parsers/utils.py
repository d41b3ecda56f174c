"""
Helpers shared by every request parser.

These are pure functions over strings and decoded JSON; none of them look
at field metadata.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from typing import Any

from ..exceptions import ParseError
from ..model import RawSortClause

# ---------------------------------------------------------------------------
# Field names
# ---------------------------------------------------------------------------

_FIELD_NAME_DISALLOWED = re.compile(r"[^a-zA-Z0-9_.]")


def sanitize_field_name(name: Any) -> str:
    """Strip every character outside ``[a-zA-Z0-9_.]``."""
    return _FIELD_NAME_DISALLOWED.sub("", str(name))


# ---------------------------------------------------------------------------
# Bracket paths: filter[price][between], sort[0][field], ids[]
# ---------------------------------------------------------------------------

_BRACKET_KEY = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])+)$")
_BRACKET_PART = re.compile(r"\[([^\[\]]*)\]")


def decode_bracket_key(key: str) -> tuple[str, list[str]] | None:
    """
    Split ``root[a][b]`` into ``("root", ["a", "b"])``.

    Returns ``None`` for keys without a well-formed bracket suffix.
    ``ids[]`` yields ``("ids", [""])``.
    """
    match = _BRACKET_KEY.match(key)
    if match is None:
        return None
    return match.group(1), _BRACKET_PART.findall(match.group(2))


def nest_bracket_params(
    pairs: Iterable[tuple[str, str]], root: str
) -> dict[str, Any]:
    """
    Fold ``root[a][b]=v`` pairs into ``{"a": {"b": v}}``.

    A path assigned more than once keeps its last value; a path that is both
    a leaf and a branch raises :class:`ParseError`.
    """
    tree: dict[str, Any] = {}
    for key, value in pairs:
        decoded = decode_bracket_key(key)
        if decoded is None or decoded[0] != root:
            continue
        parts = decoded[1]
        node = tree
        for part in parts[:-1]:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                raise ParseError(f"Conflicting bracket path in '{key}'", key)
            node = child
        if isinstance(node.get(parts[-1]), dict):
            raise ParseError(f"Conflicting bracket path in '{key}'", key)
        node[parts[-1]] = value
    return tree


def indexed_items(tree: dict[str, Any]) -> list[Any]:
    """Values of ``{"0": ..., "1": ...}`` ordered by integer index."""
    items: list[tuple[int, Any]] = []
    for index, value in tree.items():
        try:
            items.append((int(index), value))
        except ValueError as exc:
            raise ParseError(f"Expected a numeric index, got '{index}'") from exc
    return [value for _, value in sorted(items, key=lambda item: item[0])]


# ---------------------------------------------------------------------------
# JSON values
# ---------------------------------------------------------------------------


def decode_json_param(raw: Any, name: str) -> Any:
    """Decode a JSON-encoded parameter; already-decoded values pass through."""
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        message = f"Parameter '{name}' is not valid JSON: {exc}"
        raise ParseError(message, name) from exc


def decode_json_array(raw: str) -> list[Any] | None:
    """Decode ``'["a", "b"]'``; ``None`` when *raw* is not a JSON array."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, list) else None


def stringify_value(value: Any) -> str:
    """
    Render a decoded JSON scalar as the string a query parameter would carry.

    Booleans become ``"true"``/``"false"``; integral floats lose their
    ``.0`` so ``10`` and ``10.0`` agree with ``"10"`` from a query string.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, dict | list):
        return json.dumps(value, sort_keys=True)
    return str(value)


def stringify_values(value: Any) -> tuple[str, ...]:
    """Stringify a scalar or a list into a tuple of strings."""
    if isinstance(value, list | tuple):
        return tuple(stringify_value(v) for v in value)
    return (stringify_value(value),)


def split_list(raw: str) -> tuple[str, ...]:
    """Comma-split, trimming whitespace and dropping empty items."""
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def parse_bool_flag(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "on")


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


def parse_sort_string(raw: str) -> list[RawSortClause]:
    """
    Parse ``"created_at:desc,name"`` or ``"-created_at,name"``.

    Directions are kept verbatim; the validator rejects bad ones.
    """
    clauses: list[RawSortClause] = []
    for part in raw.split(","):
        item = part.strip()
        if not item:
            continue
        if ":" in item:
            name, direction = item.split(":", 1)
            direction = direction.strip().lower()
        elif item.startswith("-"):
            name, direction = item[1:], "desc"
        else:
            name, direction = item, "asc"
        field_name = sanitize_field_name(name.strip())
        if field_name:
            clauses.append(RawSortClause(field_name, direction))
    return clauses


def sort_from_objects(
    items: Any,
    field_key: str,
    direction_key: str,
    name: str,
    default_direction: str | None = None,
) -> list[RawSortClause]:
    """
    Sort clauses from a JSON list like ``[{"colId": "x", "sort": "asc"}]``.

    Entries without a direction are skipped unless *default_direction* is
    given: grids send unsorted columns with a null direction.
    """
    if items is None or items == "":
        return []
    if not isinstance(items, list):
        raise ParseError(f"'{name}' must be a list", name)
    clauses: list[RawSortClause] = []
    for item in items:
        if not isinstance(item, dict):
            raise ParseError(f"'{name}' entries must be objects", name)
        field_name = sanitize_field_name(item.get(field_key, ""))
        direction = item.get(direction_key) or default_direction
        if not field_name or direction is None:
            continue
        clauses.append(RawSortClause(field_name, str(direction).strip().lower()))
    return clauses
