from __future__ import annotations

import math

import pytest

from services.aggregation import aggregate, group_rows, is_blank, numeric_values, to_number


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("10", 10.0),
        (" 12.5 CRC", 12.5),
        ("-3e2", -300.0),
        (".5", 0.5),
        (7, 7.0),
        (2.5, 2.5),
        ("abc", None),
        ("", None),
        (None, None),
        (True, None),
        (float("nan"), None),
    ],
)
def test_to_number(value, expected) -> None:
    assert to_number(value) == expected


def test_to_number_strict_requires_whole_string() -> None:
    assert to_number("12abc", strict=True) is None
    assert to_number("12", strict=True) == 12.0
    assert to_number("-Infinity") == -math.inf


def test_sum_excludes_non_numeric_values() -> None:
    rows = [{"amt": "10"}, {"amt": "20"}, {"amt": "abc"}]

    assert aggregate(numeric_values(rows, "amt"), "sum") == 30


def test_aggregate_functions() -> None:
    values = [4.0, 1.0, 7.0]

    assert aggregate(values, "avg") == 4.0
    assert aggregate(values, "min") == 1.0
    assert aggregate(values, "max") == 7.0
    assert aggregate(values, "count") == 3
    assert aggregate([], "sum") == 0
    assert aggregate([], "avg") is None
    with pytest.raises(ValueError):
        aggregate(values, "median")


def test_group_rows_keeps_first_seen_order_and_missing_key() -> None:
    rows = [{"t": "b"}, {"t": "a"}, {}, {"t": "b"}]

    groups = group_rows(rows, "t")

    assert list(groups) == ["b", "a", None]
    assert len(groups["b"]) == 2
    assert groups[None] == [{}]


def test_is_blank() -> None:
    assert is_blank(None)
    assert is_blank("   ")
    assert not is_blank(0)
    assert not is_blank("x")
