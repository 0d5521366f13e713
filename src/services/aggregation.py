"""Numeric parsing, grouping and aggregation over consolidated rows."""

from __future__ import annotations

import math
import re
from collections.abc import Hashable
from typing import Any, Callable, Iterable, Mapping, Sequence

from persistence.models import Row


# Leading numeric prefix, the way JavaScript's parseFloat reads it.
_NUMERIC_PREFIX = re.compile(r"^[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

AGGREGATE_FUNCTIONS = ("sum", "avg", "min", "max", "count")


def to_number(value: Any, *, strict: bool = False) -> float | None:
    """Parse a cell as a float, or ``None`` when it holds no number.

    Strings are read up to their first non-numeric character (``"12.5 CRC"``
    is 12.5) unless ``strict`` requires the whole string to be numeric.
    Booleans, blanks and NaN are not numbers.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return None if math.isnan(number) else number
    text = str(value).strip()
    match = _NUMERIC_PREFIX.match(text)
    if not match or (strict and match.end() != len(text)):
        return None
    token = match.group(0)
    if token.endswith("Infinity"):
        return -math.inf if token.startswith("-") else math.inf
    return float(token)


def numeric_values(rows: Iterable[Mapping[str, Any]], field: str) -> list[float]:
    values: list[float] = []
    for row in rows:
        number = to_number(row.get(field))
        if number is not None:
            values.append(number)
    return values


def aggregate(values: Sequence[float], fn: str) -> float | int | None:
    """Apply an aggregate function; ``None`` for avg/min/max of nothing."""
    if fn == "sum":
        return math.fsum(values)
    if fn == "count":
        return len(values)
    if not values:
        return None
    if fn == "avg":
        return math.fsum(values) / len(values)
    if fn == "min":
        return min(values)
    if fn == "max":
        return max(values)
    raise ValueError(f"Unsupported aggregate function: {fn}")


def group_key(value: Any) -> Hashable:
    """Dictionary key for a cell value; unhashable values key by their repr."""
    if isinstance(value, Hashable):
        return value
    return repr(value)


def group_rows(rows: Iterable[Row], key: Callable[[Row], Any] | str) -> dict[Any, list[Row]]:
    """Group rows by exact value, in first-seen order.

    Rows lacking the field are grouped under ``None``.
    """
    getter = (lambda row: row.get(key)) if isinstance(key, str) else key
    groups: dict[Hashable, list[Row]] = {}
    for row in rows:
        groups.setdefault(group_key(getter(row)), []).append(row)
    return groups


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


__all__ = [
    "AGGREGATE_FUNCTIONS",
    "aggregate",
    "group_key",
    "group_rows",
    "is_blank",
    "numeric_values",
    "to_number",
]
