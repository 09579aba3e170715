from __future__ import annotations
from typing import Callable, Optional, Sequence, cast

import pandas as pd

from . import canon, exceptions
from .types import UsageRow


def assert_rows(
    rows: Sequence[UsageRow],
    bucketizer: Optional[Callable[[pd.Timestamp], pd.Timestamp]] = None,
) -> None:
    """Rows must be tz-aware, strictly ascending and (optionally) bucket-aligned."""
    previous = None
    for row in rows:
        if row.t_start.tz is None:
            raise exceptions.StoreError(f"Row {row.t_start} is not tz-aware.")
        if previous is not None and row.t_start <= previous:
            raise exceptions.StoreError("Rows must be strictly ascending by bucket.")
        if bucketizer is not None and bucketizer(row.t_start) != row.t_start:
            raise exceptions.StoreError(f"Row {row.t_start} is not a bucket boundary.")
        unknown_costs = set(row.costs) - set(canon.COST_BINDINGS)
        if unknown_costs:
            raise exceptions.StoreError(f"Unknown cost fields {sorted(unknown_costs)}.")
        previous = row.t_start


def assert_frame(df: pd.DataFrame) -> None:
    if df.index.name != canon.INDEX_NAME:
        raise exceptions.ReconError(f"Index must be '{canon.INDEX_NAME}'.")
    if len(df.index):
        tz_index = cast(pd.DatetimeIndex, df.index)
        if tz_index.tz is None:
            raise exceptions.ReconError("Index must be tz-aware.")
    if not df.index.is_monotonic_increasing or df.index.has_duplicates:
        raise exceptions.ReconError("Index must be sorted ascending without duplicates.")
