"""JSON serialization helpers for cached payloads."""

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any


def compact_json_dumps(payload: object) -> str:
    """Dump JSON without whitespace, preserving key order."""
    return json.dumps(
        payload,
        ensure_ascii=False,
        separators=(",", ":"),
        default=_json_default,
    )


def json_loads(text: str | bytes) -> Any:
    return json.loads(text)


def payload_size(payload: object) -> int:
    """Return the UTF-8 byte length of the compact JSON form of a payload."""
    return len(compact_json_dumps(payload).encode("utf-8"))


def size_in_mb(payload: object) -> float:
    return round(payload_size(payload) / (1024 * 1024), 2)


def _json_default(value: object) -> str | float:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Path):
        return str(value)
    return str(value)


__all__ = ["compact_json_dumps", "json_loads", "payload_size", "size_in_mb"]
