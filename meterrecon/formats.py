"""Hand-off shapes for output collaborators (writers, charts, APIs)."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence

import pandas as pd

from . import canon, costs, validate
from .types import UsageRow


def _register_counters(rows: Sequence[UsageRow]) -> list[str]:
    seen = {canon.REGISTER_IMPORT, canon.REGISTER_EXPORT}
    for row in rows:
        seen.update(row.registers)
    return sorted(seen)


def columns(rows: Sequence[UsageRow] = ()) -> list[str]:
    """Stable column order; every column is present whether populated or not."""
    cols: list[str] = []
    for counter in _register_counters(rows):
        cols += [f"register_{counter}", f"register_{counter}_kwh"]
    cols += [f"interval_{flow}_kwh" for flow in canon.FLOWS]
    for channel in canon.EPOCH_CHANNELS:
        cols += [f"epoch_{channel.lower()}_kwh", f"epoch_{channel.lower()}_cost"]
    cols += [f"rate_{flow}" for flow in canon.FLOWS]
    cols += [f"cost_{name}" for name in canon.COST_BINDINGS]
    return cols


def to_records(
    rows: Sequence[UsageRow],
    *,
    scale: int = canon.COST_SCALE,
    places: int = 2,
) -> List[Dict[str, Any]]:
    """
    Rows as flat dicts in display units.

      - energies in kWh (epoch Wh converted exactly via Decimal)
      - source costs (milli-units) and computed costs in display units;
        computed costs are strings rounded to `places`
      - anything not reported is None, never 0
    """
    counters = _register_counters(rows)
    out: List[Dict[str, Any]] = []
    for row in rows:
        rec: Dict[str, Any] = {canon.INDEX_NAME: row.t_start}
        for counter in counters:
            rec[f"register_{counter}"] = row.registers.get(counter)
            rec[f"register_{counter}_kwh"] = row.register_deltas.get(counter)
        for flow in canon.FLOWS:
            rec[f"interval_{flow}_kwh"] = row.interval_kwh.get(flow)
        for channel in canon.EPOCH_CHANNELS:
            rec[f"epoch_{channel.lower()}_kwh"] = costs.wh_to_kwh(row.epoch_wh.get(channel))
            rec[f"epoch_{channel.lower()}_cost"] = costs.milli_to_display(
                row.epoch_cost_milli.get(channel)
            )
        for flow in canon.FLOWS:
            rec[f"rate_{flow}"] = row.rates.get(flow)
        for name in canon.COST_BINDINGS:
            rec[f"cost_{name}"] = costs.format_amount(
                row.costs.get(name), places=places, scale=scale
            )
        out.append(rec)
    return out


def to_frame(
    rows: Sequence[UsageRow],
    *,
    scale: int = canon.COST_SCALE,
    places: int = 2,
) -> pd.DataFrame:
    """
    Rows as a DataFrame indexed by tz-aware 't_start'.

    Numeric columns use the nullable Float64 dtype and computed costs the
    nullable string dtype, so missing values stay <NA>.
    """
    cols = columns(rows)
    records = to_records(rows, scale=scale, places=places)
    df = pd.DataFrame.from_records(records, columns=[canon.INDEX_NAME, *cols])
    df = df.set_index(canon.INDEX_NAME)
    if len(rows):
        df.index = pd.DatetimeIndex(df.index, name=canon.INDEX_NAME)

    cost_cols = [f"cost_{name}" for name in canon.COST_BINDINGS]
    numeric = [c for c in cols if c not in cost_cols]
    for col in numeric:
        values = [None if pd.isna(v) else float(v) for v in df[col]]
        df[col] = pd.array(values, dtype="Float64")
    df[cost_cols] = df[cost_cols].astype("string")
    validate.assert_frame(df)
    return df


def totals(rows: Iterable[UsageRow]) -> Dict[str, Any]:
    """Per-cost sums over rows (exact, scaled ints); None where nothing was costed."""
    rows = list(rows)
    return {
        name: costs.total(row.costs.get(name) for row in rows)
        for name in canon.COST_BINDINGS
    }
