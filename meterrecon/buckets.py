"""Half-hour bucketing of tz-aware instants.

Two zone modes exist and a run must stick to one:
  - "local": floor the wall clock of the run's zone. Bucket labels always
    read HH:00 / HH:30 locally, also for zones with a non half-hour offset.
  - "absolute": floor on the UTC axis, then express the result in the run's
    zone. Labels follow the UTC grid (e.g. HH:15 / HH:45 in Asia/Kathmandu).
Both agree for every zone whose offset is a multiple of 30 minutes, on either
side of a daylight-saving change.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo

import pandas as pd

from . import canon, utils
from .types import TimeRange, ZoneMode

BUCKET = pd.Timedelta(minutes=canon.BUCKET_MINUTES)
FREQ = f"{canon.BUCKET_MINUTES}min"


def bucket_of(
    instant: pd.Timestamp,
    zone_mode: ZoneMode = "local",
    tz: Optional[str] = None,
) -> pd.Timestamp:
    """Start of the half-hour bucket containing `instant`."""
    ts = pd.Timestamp(instant)
    if ts.tz is None:
        raise ValueError(f"Instant must be tz-aware, got {ts}")
    if tz is not None:
        ts = ts.tz_convert(ZoneInfo(tz))

    if zone_mode == "absolute":
        return ts.tz_convert("UTC").floor(FREQ).tz_convert(ts.tz)
    if zone_mode == "local":
        # flooring stays inside the instant's own DST fold
        return ts.floor(FREQ, ambiguous=bool(ts.dst()), nonexistent="shift_backward")
    raise ValueError(f"zone_mode must be one of {canon.ZONE_MODES}, got {zone_mode!r}")


def bucket_range(
    window: TimeRange,
    zone_mode: ZoneMode = "local",
    tz: Optional[str] = None,
) -> pd.DatetimeIndex:
    """Bucket starts covering [window.start, window.end) in 30-minute steps."""
    first = bucket_of(window.start, zone_mode, tz)
    return pd.date_range(
        start=first,
        end=window.end.tz_convert(first.tz),
        freq=FREQ,
        inclusive="left",
        name=canon.INDEX_NAME,
    )


def collection_start(last_reading, tz: str = canon.DEFAULT_TZ) -> pd.Timestamp:
    """Local midnight of the day holding the bucket before `last_reading`."""
    ts = utils.to_timestamp(last_reading, tz) - BUCKET
    return ts.normalize()


@dataclass(frozen=True)
class Bucketizer:
    """Bucketing bound to one zone and one zone mode for a whole run."""

    tz: str = canon.DEFAULT_TZ
    zone_mode: ZoneMode = "local"

    def __post_init__(self):
        if self.zone_mode not in canon.ZONE_MODES:
            raise ValueError(
                f"zone_mode must be one of {canon.ZONE_MODES}, got {self.zone_mode!r}"
            )

    def __call__(self, instant) -> pd.Timestamp:
        return bucket_of(utils.to_timestamp(instant, self.tz), self.zone_mode)

    def buckets(self, window: TimeRange) -> pd.DatetimeIndex:
        return bucket_range(window, self.zone_mode, self.tz)
