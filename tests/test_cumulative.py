"""Cumulative-register reconciliation with the max-per-bucket policy."""

import itertools
import logging

import pytest

from meterrecon import utils
from meterrecon.cumulative import CumulativeRegisterReconciler, RegisterAccumulator
from meterrecon.exceptions import MalformedRecord, OutOfRangeSample
from meterrecon.store import UsageRowStore
from meterrecon.types import RawCumulativeSample

TZ = "Europe/London"


def _ts(value):
    return utils.to_timestamp(value, TZ)


def _sample(instant, value, counter="import"):
    return RawCumulativeSample(_ts(instant), counter, value)


def _reconciler(window, bucketizer, samples):
    rec = CumulativeRegisterReconciler(window, bucketizer)
    for s in samples:
        rec.ingest(s)
    return rec


def test_max_per_bucket_is_order_independent(two_hour_window, bucketizer):
    """Every delivery order yields the same maxima and the same deltas."""
    samples = [
        _sample("2025-01-01T00:05", 10.0),
        _sample("2025-01-01T00:25", 10.25),
        _sample("2025-01-01T00:25", 10.25),  # duplicate from an overlapping page
        _sample("2025-01-01T00:40", 10.5),
        _sample("2025-01-01T01:10", 11.0),
    ]
    reference = _reconciler(two_hour_window, bucketizer, samples)
    expected_maxima = reference.maxima()
    expected_readings, _ = reference.finalize()

    for perm in itertools.permutations(samples):
        rec = _reconciler(two_hour_window, bucketizer, perm)
        assert rec.maxima() == expected_maxima
        assert rec.finalize()[0] == expected_readings

    assert expected_maxima["import"] == {
        _ts("2025-01-01T00:00"): 10.25,
        _ts("2025-01-01T00:30"): 10.5,
        _ts("2025-01-01T01:00"): 11.0,
    }


def test_delta_uses_nearest_populated_bucket(two_hour_window, bucketizer):
    rec = _reconciler(
        two_hour_window,
        bucketizer,
        [_sample("2025-01-01T00:10", 10.0), _sample("2025-01-01T01:10", 12.5)],
    )
    readings, acc = rec.finalize()

    first = readings[_ts("2025-01-01T00:00")]["import"]
    gap = readings[_ts("2025-01-01T00:30")]["import"]
    later = readings[_ts("2025-01-01T01:00")]["import"]
    tail = readings[_ts("2025-01-01T01:30")]["import"]

    assert first.value == 10.0 and first.delta is None
    assert gap.value == 10.0 and gap.delta is None and gap.carried
    assert later.value == 12.5 and later.delta == 2.5 and not later.carried
    assert tail.carried and tail.delta is None
    assert acc.last == {"import": 12.5}


def test_nothing_before_first_sample(two_hour_window, bucketizer):
    """No value is fabricated for buckets before the first recorded one."""
    rec = _reconciler(two_hour_window, bucketizer, [_sample("2025-01-01T01:05", 3.0)])
    readings, _ = rec.finalize()
    assert _ts("2025-01-01T00:00") not in readings
    assert _ts("2025-01-01T00:30") not in readings
    assert readings[_ts("2025-01-01T01:00")]["import"].delta is None


def test_counters_reconcile_independently(two_hour_window, bucketizer):
    rec = _reconciler(
        two_hour_window,
        bucketizer,
        [
            _sample("2025-01-01T00:05", 10.0, "import"),
            _sample("2025-01-01T00:05", 5.0, "export"),
            _sample("2025-01-01T00:35", 10.5, "import"),
            _sample("2025-01-01T01:05", 5.5, "export"),
        ],
    )
    readings, _ = rec.finalize()
    half = readings[_ts("2025-01-01T00:30")]
    assert half["import"].delta == 0.5
    assert half["export"].carried and half["export"].delta is None
    assert readings[_ts("2025-01-01T01:00")]["export"].delta == 0.5
    assert readings[_ts("2025-01-01T01:00")]["import"].carried


def test_accumulator_carries_between_runs(two_hour_window, bucketizer):
    """A prior run's last value gives the first bucket a valid delta."""
    rec = _reconciler(two_hour_window, bucketizer, [_sample("2025-01-01T00:05", 10.0)])
    prior = RegisterAccumulator({"import": 9.0})
    readings, acc = rec.finalize(prior)
    assert readings[_ts("2025-01-01T00:00")]["import"].delta == 1.0
    assert prior.last == {"import": 9.0}  # input not mutated
    assert acc.last == {"import": 10.0}


def test_finalize_is_idempotent(two_hour_window, bucketizer):
    rec = _reconciler(
        two_hour_window,
        bucketizer,
        [_sample("2025-01-01T00:05", 1.0), _sample("2025-01-01T01:35", 2.0)],
    )
    assert rec.finalize() == rec.finalize()


def test_out_of_range_and_malformed(two_hour_window, bucketizer):
    rec = CumulativeRegisterReconciler(two_hour_window, bucketizer)
    with pytest.raises(OutOfRangeSample):
        rec.ingest(_sample("2025-01-01T02:00", 1.0))
    with pytest.raises(OutOfRangeSample):
        rec.ingest(_sample("2024-12-31T23:59", 1.0))
    with pytest.raises(MalformedRecord):
        rec.ingest(_sample("2025-01-01T00:10", float("nan")))
    with pytest.raises(MalformedRecord):
        rec.ingest(_sample("2025-01-01T00:10", 1.0, counter=""))
    assert rec.maxima() == {}


def test_register_reset_is_reported(two_hour_window, bucketizer, caplog):
    rec = _reconciler(
        two_hour_window,
        bucketizer,
        [_sample("2025-01-01T00:05", 100.0), _sample("2025-01-01T00:35", 2.0)],
    )
    with caplog.at_level(logging.WARNING, logger="meterrecon.cumulative"):
        readings, _ = rec.finalize()
    assert readings[_ts("2025-01-01T00:30")]["import"].delta == -98.0
    assert "went backwards" in caplog.text


def test_write_populates_register_fields(two_hour_window, bucketizer):
    rec = _reconciler(
        two_hour_window,
        bucketizer,
        [_sample("2025-01-01T00:05", 10.0), _sample("2025-01-01T00:35", 10.5)],
    )
    store = UsageRowStore(bucketizer)
    rec.write(store, rec.finalize()[0])
    first = store.get(_ts("2025-01-01T00:00"))
    second = store.get(_ts("2025-01-01T00:30"))
    assert first.registers == {"import": 10.0} and first.register_deltas == {}
    assert second.register_deltas == {"import": 0.5}
    # carried-forward buckets get a snapshot but no delta
    carried = store.get(_ts("2025-01-01T01:30"))
    assert carried.registers == {"import": 10.5} and carried.register_deltas == {}
