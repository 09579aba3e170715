from __future__ import annotations

import logging
import math
from typing import Dict

import pandas as pd

from .buckets import Bucketizer
from .exceptions import MalformedRecord, OutOfRangeSample
from .store import UsageRowStore
from .types import Flow, RawIntervalSample, TimeRange

logger = logging.getLogger(__name__)


class IntervalConsumptionReconciler:
    """Half-hourly consumption totals for one flow, already bucketed upstream."""

    source = "interval"

    def __init__(self, window: TimeRange, bucketizer: Bucketizer, flow: Flow = "import"):
        self.window = window
        self.bucketizer = bucketizer
        self.flow = flow
        self._totals: Dict[pd.Timestamp, float] = {}

    def ingest(self, sample: RawIntervalSample) -> None:
        if not isinstance(sample.consumption, (int, float)) or not math.isfinite(
            sample.consumption
        ):
            raise MalformedRecord(f"Non-numeric consumption {sample.consumption!r}")

        bucket = self.bucketizer(sample.bucket_start)
        if not self.bucketizer(self.window.start) <= bucket < self.window.end:
            raise OutOfRangeSample(
                f"{self.flow} interval at {sample.bucket_start.isoformat()} outside window"
            )
        if bucket != sample.bucket_start:
            logger.debug("Realigned %s interval %s to %s", self.flow, sample.bucket_start, bucket)
        if bucket in self._totals:
            logger.debug("Duplicate %s interval at %s; keeping the latest", self.flow, bucket)
        self._totals[bucket] = float(sample.consumption)

    def finalize(self) -> Dict[pd.Timestamp, float]:
        return dict(sorted(self._totals.items()))

    def write(self, store: UsageRowStore, totals: Dict[pd.Timestamp, float]) -> None:
        for bucket, kwh in totals.items():
            store.enrich(bucket, self.source, interval_kwh={self.flow: kwh})
