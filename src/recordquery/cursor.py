"""
CursorCodec — authenticated, opaque pagination cursors.

A token is ``<payload>.<signature>``, both base64url without padding.  The
payload is canonical JSON (sorted keys, compact separators) holding the sort
key and the last row's key values; the signature is HMAC-SHA256 of the
payload under the configured secret.  Encoding is deterministic: the same
continuation point always yields the same token.
"""

from __future__ import annotations

import base64
import binascii
import datetime
import hashlib
import hmac
import json
import uuid
from decimal import Decimal
from typing import Any

from .exceptions import CursorError
from .model import CursorState
from .operators import SortDirection

_SEPARATOR = "."


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(text + padding)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime.datetime | datetime.date):
        return value.isoformat()
    if isinstance(value, Decimal | uuid.UUID):
        return str(value)
    raise TypeError(f"Cannot encode {type(value).__name__} in a cursor")


class CursorCodec:
    """
    Encode and verify continuation cursors.

    Usage::

        codec = CursorCodec(secret="s3cret")
        token = codec.encode(state)
        codec.decode(token) == state  # values come back JSON-typed
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("Cursor secret must not be empty")
        self._key = secret.encode("utf-8")

    def _sign(self, payload: bytes) -> bytes:
        return hmac.new(key=self._key, msg=payload, digestmod=hashlib.sha256).digest()

    def encode(self, state: CursorState) -> str:
        body = {
            "d": state.direction,
            "k": [[name, direction.value] for name, direction in state.keys],
            "v": list(state.values),
        }
        payload = json.dumps(
            body, sort_keys=True, separators=(",", ":"), default=_json_default
        ).encode("utf-8")
        return f"{_b64encode(payload)}{_SEPARATOR}{_b64encode(self._sign(payload))}"

    def decode(self, token: str) -> CursorState:
        """
        Verify and decode *token*.

        Raises:
            CursorError: The token is malformed, was not signed with this
                codec's secret, or its payload has the wrong shape.
        """
        payload_part, sep, signature_part = token.strip().partition(_SEPARATOR)
        if not sep or not payload_part or not signature_part:
            raise CursorError("malformed token")
        try:
            payload = _b64decode(payload_part)
            signature = _b64decode(signature_part)
        except (binascii.Error, ValueError) as exc:
            raise CursorError("malformed token") from exc

        if not hmac.compare_digest(self._sign(payload), signature):
            raise CursorError("signature mismatch")

        try:
            body = json.loads(payload)
            keys = tuple(
                (str(name), SortDirection(direction)) for name, direction in body["k"]
            )
            values = tuple(body["v"])
            direction = str(body.get("d", "next"))
        except (ValueError, KeyError, TypeError) as exc:
            raise CursorError("unreadable payload") from exc

        if not keys or len(keys) != len(values):
            raise CursorError("sort key and values do not line up")
        return CursorState(keys=keys, values=values, direction=direction)
