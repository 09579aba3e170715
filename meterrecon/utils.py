# meterrecon/utils.py
from __future__ import annotations
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pandas as pd

from . import canon
from .types import TimeRange


def to_timestamp(value, tz: str = canon.DEFAULT_TZ) -> pd.Timestamp:
    """
    Normalise an instant to a tz-aware Timestamp in `tz`.

    Accepts Timestamp/datetime, ISO-8601 strings and epoch seconds.
    Naive values are taken as wall-clock time in `tz`; a naive value that is
    ambiguous (DST fold) or nonexistent (DST gap) there raises ValueError.
    """
    if isinstance(value, bool):
        raise TypeError("bool is not an instant")
    if isinstance(value, (int, float)):
        ts = pd.Timestamp(value, unit="s", tz="UTC")
    elif isinstance(value, datetime):
        # foreign tzinfo implementations (e.g. from parsers) go through UTC
        if value.tzinfo is not None and not isinstance(value, pd.Timestamp):
            value = value.astimezone(timezone.utc)
        ts = pd.Timestamp(value)
    elif isinstance(value, str):
        ts = pd.Timestamp(value)
    else:
        raise TypeError(f"Unsupported instant type: {type(value)!r}")
    if pd.isna(ts):
        raise ValueError(f"Not a valid instant: {value!r}")
    zone = ZoneInfo(tz)
    if ts.tz is not None:
        return ts.tz_convert(zone)
    local = ts.tz_localize(zone, ambiguous="NaT", nonexistent="NaT")
    if pd.isna(local):
        raise ValueError(f"{ts} is ambiguous or does not exist in {tz}")
    return local


def make_range(start, end, tz: str = canon.DEFAULT_TZ) -> TimeRange:
    s = to_timestamp(start, tz)
    e = to_timestamp(end, tz)
    if e <= s:
        raise ValueError(f"Range end must be after start: {s} .. {e}")
    return TimeRange(s, e)


def tz_name(ts: pd.Timestamp) -> str:
    tz = ts.tz
    return getattr(tz, "key", str(tz))
