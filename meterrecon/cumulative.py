"""Cumulative-register reconciliation (max-per-bucket policy).

A register is a non-decreasing counter (e.g. lifetime grid import in kWh)
sampled at arbitrary instants, possibly duplicated or out of order across
pages. Each bucket keeps the largest value seen in it; the bucket's usage is
its max minus the max of the nearest earlier bucket that had one.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Optional

import pandas as pd

from .buckets import Bucketizer
from .exceptions import MalformedRecord, OutOfRangeSample
from .store import UsageRowStore
from .types import RawCumulativeSample, TimeRange

logger = logging.getLogger(__name__)


@dataclass
class RegisterAccumulator:
    """Last known register value per counter, carried between buckets/runs."""

    last: Dict[str, float] = field(default_factory=dict)

    def copy(self) -> "RegisterAccumulator":
        return RegisterAccumulator(dict(self.last))


@dataclass(frozen=True)
class RegisterReading:
    value: float  # bucket max, or the carried-forward value
    delta: Optional[float]  # None: first bucket, or nothing recorded here
    carried: bool = False


RegisterReadings = Dict[pd.Timestamp, Dict[str, RegisterReading]]


class CumulativeRegisterReconciler:
    source = "register"

    def __init__(self, window: TimeRange, bucketizer: Bucketizer):
        self.window = window
        self.bucketizer = bucketizer
        self._maxima: Dict[str, Dict[pd.Timestamp, float]] = {}

    def ingest(self, sample: RawCumulativeSample) -> None:
        if not sample.counter:
            raise MalformedRecord(f"Register sample without counter name at {sample.instant}")
        if not isinstance(sample.value, (int, float)) or not math.isfinite(sample.value):
            raise MalformedRecord(f"Non-numeric register value {sample.value!r}")
        if sample.instant not in self.window:
            raise OutOfRangeSample(
                f"register {sample.counter} sample at {sample.instant.isoformat()} "
                f"outside {self.window.start.isoformat()} .. {self.window.end.isoformat()}"
            )

        bucket = self.bucketizer(sample.instant)
        per_bucket = self._maxima.setdefault(sample.counter, {})
        current = per_bucket.get(bucket)
        if current is None or sample.value > current:
            per_bucket[bucket] = float(sample.value)

    def maxima(self) -> Dict[str, Dict[pd.Timestamp, float]]:
        return {c: dict(sorted(b.items())) for c, b in self._maxima.items()}

    def finalize(
        self, accumulator: Optional[RegisterAccumulator] = None
    ) -> tuple[RegisterReadings, RegisterAccumulator]:
        """
        Walk the window's buckets and derive per-counter deltas.

        The accumulator passed in is not modified; the returned one holds the
        last known value per counter after the window, for a following run.
        """
        acc = accumulator.copy() if accumulator is not None else RegisterAccumulator()
        out: RegisterReadings = {}

        for bucket in self.bucketizer.buckets(self.window):
            for counter in sorted(self._maxima):
                value = self._maxima[counter].get(bucket)
                previous = acc.last.get(counter)

                if value is None:
                    if previous is not None:
                        out.setdefault(bucket, {})[counter] = RegisterReading(
                            previous, None, carried=True
                        )
                    continue

                delta = None if previous is None else value - previous
                if delta is not None and delta < 0:
                    logger.warning(
                        "Register %s went backwards at %s (%.4f -> %.4f)",
                        counter,
                        bucket.isoformat(),
                        previous,
                        value,
                    )
                out.setdefault(bucket, {})[counter] = RegisterReading(value, delta)
                acc.last[counter] = value

        return out, acc

    def write(self, store: UsageRowStore, readings: RegisterReadings) -> None:
        for bucket, per_counter in readings.items():
            store.enrich(
                bucket,
                self.source,
                registers={c: r.value for c, r in per_counter.items()},
                register_deltas={
                    c: r.delta for c, r in per_counter.items() if r.delta is not None
                },
            )
