from __future__ import annotations
from typing import Iterable, Optional, Sequence

import numpy as np
import pandas as pd

from .exceptions import TariffError, require
from .types import TariffInterval


def matches(instant: pd.Timestamp, interval: TariffInterval) -> bool:
    """Left-closed, right-open match; unset bounds are open-ended."""
    after_start = interval.valid_from is None or instant >= interval.valid_from
    before_end = interval.valid_to is None or instant < interval.valid_to
    return after_start and before_end


def resolve_rate(
    instant: pd.Timestamp, intervals: Iterable[TariffInterval]
) -> Optional[float]:
    """
    Rate of the first interval (in input order) containing `instant`.

    Callers order `intervals` by preference; overlaps are settled by that
    order alone. Returns None when nothing matches.
    """
    for iv in intervals:
        if matches(instant, iv):
            return iv.rate
    return None


def resolve_rates(
    index: pd.DatetimeIndex, intervals: Sequence[TariffInterval]
) -> pd.Series:
    """
    Vectorised resolve_rate over a tz-aware DatetimeIndex.

    Returns a nullable Float64 Series aligned to `index`; <NA> marks
    instants with no matching interval.
    """
    require(
        not len(index) or index.tz is not None,
        "Index must be tz-aware to resolve tariffs.",
        TariffError,
    )

    out = pd.Series(pd.NA, index=index, dtype="Float64", name="rate")
    unmatched = np.ones(len(index), dtype=bool)
    for iv in intervals:
        if not unmatched.any():
            break
        mask = unmatched.copy()
        if iv.valid_from is not None:
            mask &= np.asarray(index >= iv.valid_from)
        if iv.valid_to is not None:
            mask &= np.asarray(index < iv.valid_to)
        out[mask] = iv.rate
        unmatched &= ~mask
    return out


def coverage(index: pd.DatetimeIndex, intervals: Sequence[TariffInterval]) -> float:
    """Share of `index` that resolves to a rate (1.0 for an empty index)."""
    if len(index) == 0:
        return 1.0
    return float(resolve_rates(index, intervals).notna().mean())
