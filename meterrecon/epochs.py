"""Sub-metering epoch aggregation.

Epoch readings cover short, variable-length periods (typically 5 to 15
minutes) per channel, each with an energy amount in Wh and a cost in
milli-units. Per channel they are turned into running cumulative snapshots
keyed by epoch end; a bucket's usage is the difference between the last
snapshot that falls in it and the last snapshot before it.

A snapshot at end `e` belongs to bucket `b` when b < e <= b + 30min, so an
epoch closing exactly on a boundary counts towards the bucket it ran in.
"""

from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

import pandas as pd

from . import canon
from .buckets import Bucketizer
from .exceptions import MalformedRecord, OutOfRangeSample
from .store import UsageRowStore
from .types import RawEpochReading, TimeRange

logger = logging.getLogger(__name__)

_JUST_BEFORE = pd.Timedelta(1, unit="ns")


@dataclass
class EpochAccumulator:
    """Last cumulative energy / cost per channel, retained across gaps."""

    energy: Dict[str, int] = field(default_factory=dict)
    cost: Dict[str, int] = field(default_factory=dict)

    def copy(self) -> "EpochAccumulator":
        return EpochAccumulator(dict(self.energy), dict(self.cost))


@dataclass(frozen=True)
class EpochTotal:
    energy_wh: int
    cost_milli: int
    snapshots: int


EpochTotals = Dict[pd.Timestamp, Dict[str, EpochTotal]]


class IntervalEpochAggregator:
    source = "epoch"

    def __init__(
        self,
        window: TimeRange,
        bucketizer: Bucketizer,
        channels: Optional[Mapping[str, Optional[str]]] = None,
    ):
        self.window = window
        self.bucketizer = bucketizer
        self.channels = dict(channels or canon.EPOCH_CHANNELS)
        # channel -> epoch end -> (energy_wh, cost_milli)
        self._epochs: Dict[str, Dict[pd.Timestamp, Tuple[int, int]]] = {}
        self.missing: Dict[str, int] = {}

    def ingest(self, reading: RawEpochReading) -> None:
        if reading.channel not in self.channels:
            raise MalformedRecord(f"Unknown epoch channel {reading.channel!r}")
        for name in ("duration_s", "energy_wh", "cost_milli"):
            value = getattr(reading, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise MalformedRecord(f"Epoch {name} must be an integer, got {value!r}")
        if reading.duration_s <= 0:
            raise MalformedRecord(f"Epoch duration must be positive, got {reading.duration_s}")

        end = reading.end
        if not (
            reading.group_start >= self.window.start
            and self.window.start < end <= self.window.end
        ):
            raise OutOfRangeSample(
                f"{reading.channel} epoch ending {end.isoformat()} outside "
                f"{self.window.start.isoformat()} .. {self.window.end.isoformat()}"
            )

        per_end = self._epochs.setdefault(reading.channel, {})
        if end in per_end:
            logger.debug("Duplicate %s epoch ending %s; keeping the latest", reading.channel, end)
        per_end[end] = (int(reading.energy_wh), int(reading.cost_milli))

    def _bucket_ending(self, end: pd.Timestamp) -> pd.Timestamp:
        return self.bucketizer(end - _JUST_BEFORE)

    def snapshots(
        self, channel: str, accumulator: Optional[EpochAccumulator] = None
    ) -> pd.DataFrame:
        """
        Cumulative snapshots for one channel, in end-time order.

        Index: epoch end. Columns: energy_wh, cost_milli (running totals
        offset by the accumulator), bucket (owning bucket start).
        """
        acc = accumulator or EpochAccumulator()
        rows = [
            (end, energy, cost)
            for end, (energy, cost) in self._epochs.get(channel, {}).items()
        ]
        frame = (
            pd.DataFrame(rows, columns=["end", "energy_wh", "cost_milli"])
            .set_index("end")
            .sort_index()
        )
        cum = frame.cumsum()
        cum["energy_wh"] = cum["energy_wh"] + acc.energy.get(channel, 0)
        cum["cost_milli"] = cum["cost_milli"] + acc.cost.get(channel, 0)
        cum["bucket"] = [self._bucket_ending(e) for e in cum.index]
        return cum

    def finalize(
        self, accumulator: Optional[EpochAccumulator] = None
    ) -> tuple[EpochTotals, EpochAccumulator]:
        """
        Per-bucket, per-channel totals over the window.

        Buckets without a snapshot for a channel are left out (not zero) and
        the last cumulative value carries over to the next populated bucket.
        """
        acc = accumulator.copy() if accumulator is not None else EpochAccumulator()
        buckets = self.bucketizer.buckets(self.window)
        out: EpochTotals = {}
        self.missing = {}

        for channel in sorted(self._epochs):
            cum = self.snapshots(channel, acc)
            by_bucket = {b: g for b, g in cum.groupby("bucket", sort=True)}
            last_energy = acc.energy.get(channel, 0)
            last_cost = acc.cost.get(channel, 0)

            for bucket in buckets:
                group = by_bucket.get(bucket)
                if group is None:
                    logger.debug("No %s epoch data for %s", channel, bucket.isoformat())
                    self.missing[channel] = self.missing.get(channel, 0) + 1
                    continue
                energy = int(group["energy_wh"].iloc[-1])
                cost = int(group["cost_milli"].iloc[-1])
                out.setdefault(bucket, {})[channel] = EpochTotal(
                    energy - last_energy, cost - last_cost, len(group)
                )
                last_energy, last_cost = energy, cost

            acc.energy[channel] = last_energy
            acc.cost[channel] = last_cost
            if self.missing.get(channel):
                logger.info(
                    "%s: %d of %d buckets without epoch data",
                    channel,
                    self.missing[channel],
                    len(buckets),
                )

        return dict(sorted(out.items())), acc

    def write(self, store: UsageRowStore, totals: EpochTotals) -> None:
        for bucket, per_channel in totals.items():
            store.enrich(
                bucket,
                self.source,
                epoch_wh={c: t.energy_wh for c, t in per_channel.items()},
                epoch_cost_milli={c: t.cost_milli for c, t in per_channel.items()},
            )
