from __future__ import annotations
from typing import Literal, Dict, Optional, TypedDict
from dataclasses import dataclass, field

import pandas as pd

ZoneMode = Literal["local", "absolute"]
Flow = Literal["import", "export"]


@dataclass(frozen=True)
class TimeRange:
    """Half-open window [start, end) of tz-aware instants."""

    start: pd.Timestamp
    end: pd.Timestamp

    def __contains__(self, instant: pd.Timestamp) -> bool:
        return self.start <= instant < self.end


## Raw feed samples
@dataclass(frozen=True)
class RawCumulativeSample:
    instant: pd.Timestamp
    counter: str  # e.g. "import" / "export"
    value: float


@dataclass(frozen=True)
class RawIntervalSample:
    bucket_start: pd.Timestamp
    consumption: float  # kWh


@dataclass(frozen=True)
class RawEpochReading:
    group_start: pd.Timestamp
    duration_s: int
    channel: str  # key of canon.EPOCH_CHANNELS
    energy_wh: int
    cost_milli: int

    @property
    def end(self) -> pd.Timestamp:
        return self.group_start + pd.Timedelta(seconds=self.duration_s)


@dataclass(frozen=True)
class TariffInterval:
    rate: float  # per kWh, display currency units
    valid_from: Optional[pd.Timestamp] = None  # None: since the beginning of time
    valid_to: Optional[pd.Timestamp] = None  # None: until the end of time


## Reconciled output
@dataclass(frozen=True)
class UsageRow:
    """
    One half-hour bucket of merged usage.

    Every mapping is keyed by counter / flow / channel / cost name; an absent
    key means the source did not report for this bucket, never zero.
      - registers, register_deltas: cumulative-register snapshot and delta (kWh)
      - interval_kwh: interval-consumption totals per flow
      - epoch_wh, epoch_cost_milli: sub-metering totals per channel
      - rates: resolved tariff per flow (None when no interval matched)
      - costs: fixed-point costs (scaled by canon.COST_SCALE)
    """

    t_start: pd.Timestamp
    registers: Dict[str, float] = field(default_factory=dict)
    register_deltas: Dict[str, float] = field(default_factory=dict)
    interval_kwh: Dict[str, float] = field(default_factory=dict)
    epoch_wh: Dict[str, int] = field(default_factory=dict)
    epoch_cost_milli: Dict[str, int] = field(default_factory=dict)
    rates: Dict[str, Optional[float]] = field(default_factory=dict)
    costs: Dict[str, Optional[int]] = field(default_factory=dict)


class RejectCounts(TypedDict):
    accepted: int
    out_of_range: int
    malformed: int
