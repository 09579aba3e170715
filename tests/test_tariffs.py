"""Tariff interval matching: half-open ranges, open ends, first match wins."""

import pandas as pd
import pytest

from meterrecon import tariffs, utils
from meterrecon.exceptions import TariffError
from meterrecon.types import TariffInterval

TZ = "UTC"


def _ts(value):
    return utils.to_timestamp(value, TZ)


def _iv(rate, start=None, end=None):
    return TariffInterval(
        rate,
        None if start is None else utils.to_timestamp(start, TZ),
        None if end is None else utils.to_timestamp(end, TZ),
    )


@pytest.mark.parametrize(
    "instant, intervals, expected",
    [
        ("2025-01-01T12:15", [_iv(10.5, "2025-01-01T12:00", "2025-01-01T12:30")], 10.5),
        ("2025-01-01T11:45", [_iv(10.5, "2025-01-01T12:00", "2025-01-01T12:30")], None),
        ("2025-01-01T12:45", [_iv(10.5, "2025-01-01T12:00", "2025-01-01T12:30")], None),
        (
            "2025-01-01T12:15",
            [
                _iv(5.0, "2025-01-01T12:00", "2025-01-01T12:10"),
                _iv(10.5, "2025-01-01T12:10", "2025-01-01T12:20"),
                _iv(7.5, "2025-01-01T12:20", "2025-01-01T12:30"),
            ],
            10.5,
        ),
        ("2025-01-01T12:15", [], None),
        ("2025-01-01T12:15", [_iv(10.5, "2025-01-01T12:00", None)], 10.5),
        ("2025-01-01T12:15", [_iv(10.5, None, "2025-01-01T12:30")], 10.5),
        ("2025-01-01T12:15", [_iv(10.5)], 10.5),
    ],
    ids=[
        "within-range",
        "before-all",
        "after-all",
        "middle-of-several",
        "empty",
        "open-ended",
        "open-starting",
        "fully-open",
    ],
)
def test_resolve_rate(instant, intervals, expected):
    assert tariffs.resolve_rate(_ts(instant), intervals) == expected


def test_no_match_is_none_not_zero():
    result = tariffs.resolve_rate(_ts("2025-01-01"), [_iv(0.0, "2025-02-01")])
    assert result is None


def test_boundaries_are_left_closed_right_open():
    iv = _iv(10.5, "2025-01-01T12:00", "2025-01-01T12:30")
    assert tariffs.resolve_rate(_ts("2025-01-01T12:00"), [iv]) == 10.5
    assert tariffs.resolve_rate(_ts("2025-01-01T12:30"), [iv]) is None


def test_overlap_first_in_input_order_wins():
    wide = _iv(20.0, "2025-01-01T00:00", "2025-01-02T00:00")
    narrow = _iv(5.0, "2025-01-01T12:00", "2025-01-01T12:30")
    at = _ts("2025-01-01T12:10")
    assert tariffs.resolve_rate(at, [wide, narrow]) == 20.0
    assert tariffs.resolve_rate(at, [narrow, wide]) == 5.0


def test_resolve_rates_matches_scalar():
    intervals = [
        _iv(15.0, "2025-01-01T01:00", "2025-01-01T02:00"),
        _iv(30.0, "2025-01-01T00:30", "2025-01-01T01:30"),
        _iv(7.0, "2025-01-01T03:00", None),
    ]
    index = pd.date_range("2025-01-01", periods=10, freq="30min", tz=TZ)
    series = tariffs.resolve_rates(index, intervals)
    assert str(series.dtype) == "Float64"
    for instant, value in series.items():
        scalar = tariffs.resolve_rate(instant, intervals)
        if scalar is None:
            assert pd.isna(value)
        else:
            assert value == scalar
    assert series.iloc[2] == 15.0  # 01:00 is in both; first listed wins


def test_resolve_rates_across_zones():
    """Index and intervals in different zones compare as absolute instants."""
    index = pd.date_range("2025-07-01T00:00", periods=2, freq="30min", tz="Europe/London")
    iv = _iv(12.0, "2025-06-30T23:00", "2025-06-30T23:30")  # UTC == 00:00 BST
    series = tariffs.resolve_rates(index, [iv])
    assert series.iloc[0] == 12.0
    assert pd.isna(series.iloc[1])


def test_coverage():
    index = pd.date_range("2025-01-01", periods=4, freq="30min", tz=TZ)
    assert tariffs.coverage(index, [_iv(1.0, None, "2025-01-01T01:00")]) == 0.5
    assert tariffs.coverage(index[:0], []) == 1.0


def test_resolve_rates_needs_aware_index():
    naive = pd.date_range("2025-01-01", periods=2, freq="30min")
    with pytest.raises(TariffError):
        tariffs.resolve_rates(naive, [_iv(1.0, None, None)])
    assert tariffs.resolve_rates(naive[:0], []).empty
