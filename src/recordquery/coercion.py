"""
Strict per-``DataKind`` value coercion.

Unlike lenient casting, every function here raises ``ValueError`` when a
value does not fit the kind; the validator turns that into a
``VALUE_TYPE_MISMATCH`` error instead of letting a raw string through.
"""

from __future__ import annotations

import datetime
import math
from collections.abc import Callable
from typing import Any

from .capabilities import DataKind, FieldDescriptor

_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off"})


def _coerce_text(value: Any) -> str:
    return str(value)


def _coerce_integer(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got boolean {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"expected an integer, got {value!r}")
        return int(value)
    return int(str(value).strip())


def _coerce_float(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"expected a number, got boolean {value!r}")
    result = float(str(value).strip()) if isinstance(value, str) else float(value)
    if not math.isfinite(result):
        raise ValueError(f"expected a finite number, got {value!r}")
    return result


def _coerce_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"expected a boolean, got {value!r}")


def _coerce_date(value: Any) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    text = str(value).strip()
    if len(text) > 10:
        return _coerce_datetime(text).date()
    return datetime.date.fromisoformat(text)


def _coerce_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        result = value
    elif isinstance(value, datetime.date):
        result = datetime.datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip().replace("Z", "+00:00")
        result = datetime.datetime.fromisoformat(text)
    if result.tzinfo is not None:
        result = result.astimezone(datetime.timezone.utc)
    return result


def _coerce_identifier(value: Any) -> str:
    text = str(value).strip()
    if not text:
        raise ValueError("expected a non-empty identifier")
    return text


_COERCERS: dict[DataKind, Callable[[Any], Any]] = {
    DataKind.TEXT: _coerce_text,
    DataKind.INTEGER: _coerce_integer,
    DataKind.FLOAT: _coerce_float,
    DataKind.BOOLEAN: _coerce_boolean,
    DataKind.DATE: _coerce_date,
    DataKind.DATETIME: _coerce_datetime,
    DataKind.ENUM: _coerce_text,
    DataKind.MULTI_ENUM: _coerce_text,
    DataKind.RELATION: _coerce_identifier,
    DataKind.ID: _coerce_identifier,
}


def coerce_value(descriptor: FieldDescriptor, value: Any) -> Any:
    """
    Coerce one wire value to *descriptor*'s native kind.

    Enum and multi-enum values must also be one of the field's declared
    options (when it declares any).

    Raises:
        ValueError: The value does not fit the field.
    """
    try:
        result = _COERCERS[descriptor.data_kind](value)
    except (TypeError, OverflowError) as exc:
        raise ValueError(str(exc)) from exc

    if (
        descriptor.data_kind in (DataKind.ENUM, DataKind.MULTI_ENUM)
        and descriptor.options
        and result not in descriptor.options
    ):
        raise ValueError(
            f"'{result}' is not one of: {', '.join(descriptor.options)}"
        )
    return result


def describe_kind(kind: DataKind) -> str:
    """Human wording for error messages."""
    return {
        DataKind.INTEGER: "an integer",
        DataKind.FLOAT: "a number",
        DataKind.BOOLEAN: "a boolean (true/false)",
        DataKind.DATE: "an ISO date (YYYY-MM-DD)",
        DataKind.DATETIME: "an ISO datetime",
        DataKind.ENUM: "one of the field's options",
        DataKind.MULTI_ENUM: "one of the field's options",
        DataKind.RELATION: "a record identifier",
        DataKind.ID: "a record identifier",
    }.get(kind, "text")
