"""JSON payload helpers.

Records are stored as raw JSON bytes. With authentication enabled, data
namespaces store a wrapper `{"user": <id>, "data": <value>}` instead so the
author of every record is kept alongside it.
"""
from __future__ import annotations
import json
from typing import Any, Optional

from caffeine_lib.errors import ValidationFailure


def decode(raw: bytes) -> Any:
    """Decode stored or submitted bytes as JSON.

    Raises `ValueError` (json.JSONDecodeError or UnicodeDecodeError) on
    malformed input; callers decide which error kind that becomes.
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("utf-8")
    return json.loads(raw)


def decode_submitted(raw: bytes) -> Any:
    """Decode client input, reporting malformed JSON as a validation failure."""
    try:
        return decode(raw)
    except ValueError as e:
        raise ValidationFailure([f"invalid JSON: {e}"]) from e


def encode(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":")).encode("utf-8")


def wrap(user: Optional[str], value: Any) -> bytes:
    return encode({"user": user, "data": value})

