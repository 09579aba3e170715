"""Run orchestration: sources -> shared store -> tariffs/costs -> ordered rows."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from . import canon, costs, feeds, formats, schema, tariffs, validate
from .buckets import Bucketizer
from .config import ReconcileConfig, default_config
from .cumulative import CumulativeRegisterReconciler, RegisterAccumulator
from .epochs import EpochAccumulator, IntervalEpochAggregator
from .interval import IntervalConsumptionReconciler
from .store import UsageRowStore
from .types import RejectCounts, TariffInterval, TimeRange, UsageRow

logger = logging.getLogger(__name__)


@dataclass
class Feeds:
    """Raw inputs for one run. Any iterable works; records may be dicts or raw types."""

    interval: Mapping[str, Iterable[Any]] = field(default_factory=dict)  # flow -> feed
    epoch: Iterable[Any] = ()
    cumulative: Iterable[Any] = ()


@dataclass
class ReconcileResult:
    rows: List[UsageRow]
    dropped: Optional[UsageRow]
    counts: Dict[str, RejectCounts]
    register_state: RegisterAccumulator
    epoch_state: EpochAccumulator
    config: ReconcileConfig

    def to_frame(self) -> pd.DataFrame:
        return formats.to_frame(
            self.rows, scale=self.config.cost_scale, places=self.config.display_places
        )


class ReconciliationOrchestrator:
    """
    Sequences the sources against one store, in a fixed order:
    interval consumption, sub-metering epochs, cumulative registers, then
    tariff resolution and costs once every energy source has reported.
    """

    def __init__(self, window: TimeRange, config: Optional[ReconcileConfig] = None):
        self.config = config or default_config()
        self.bucketizer = Bucketizer(self.config.tz, self.config.zone_mode)
        self.window = window

    def run(
        self,
        sources: Feeds,
        tariff_feeds: Optional[Mapping[str, Iterable[Any]]] = None,
        *,
        register_state: Optional[RegisterAccumulator] = None,
        epoch_state: Optional[EpochAccumulator] = None,
    ) -> ReconcileResult:
        tz = self.config.tz
        store = UsageRowStore(self.bucketizer)
        counts: Dict[str, RejectCounts] = {}
        logger.info(
            "Reconciling %s .. %s (%s, %s buckets)",
            self.window.start.isoformat(),
            self.window.end.isoformat(),
            tz,
            self.config.zone_mode,
        )

        for flow, feed in sources.interval.items():
            rec = IntervalConsumptionReconciler(self.window, self.bucketizer, flow)
            counts[f"interval_{flow}"] = feeds.drain(
                f"interval_{flow}", feed, rec.ingest, partial(schema.to_interval, tz=tz)
            )
            rec.write(store, rec.finalize())

        agg = IntervalEpochAggregator(self.window, self.bucketizer)
        counts["epoch"] = feeds.drain(
            "epoch", sources.epoch, agg.ingest, partial(schema.to_epochs, tz=tz)
        )
        epoch_totals, epoch_state = agg.finalize(epoch_state)
        agg.write(store, epoch_totals)

        reg = CumulativeRegisterReconciler(self.window, self.bucketizer)
        counts["register"] = feeds.drain(
            "register", sources.cumulative, reg.ingest, partial(schema.to_cumulative, tz=tz)
        )
        readings, register_state = reg.finalize(register_state)
        reg.write(store, readings)

        store.seal()
        intervals = self._load_tariffs(tariff_feeds or {}, counts)
        self._price(store, intervals)

        rows = store.rows()
        dropped = None
        if self.config.drop_first_row and rows:
            dropped, rows = rows[0], rows[1:]
        validate.assert_rows(rows, self.bucketizer)
        logger.info("Reconciled %d rows", len(rows))

        return ReconcileResult(
            rows=rows,
            dropped=dropped,
            counts=counts,
            register_state=register_state,
            epoch_state=epoch_state,
            config=self.config,
        )

    def _load_tariffs(
        self, tariff_feeds: Mapping[str, Iterable[Any]], counts: Dict[str, RejectCounts]
    ) -> Dict[str, List[TariffInterval]]:
        intervals: Dict[str, List[TariffInterval]] = {}
        for flow, feed in tariff_feeds.items():
            loaded: List[TariffInterval] = []
            counts[f"tariff_{flow}"] = feeds.drain(
                f"tariff_{flow}",
                feed,
                loaded.append,
                partial(schema.to_tariff, tz=self.config.tz),
            )
            intervals[flow] = loaded
        return intervals

    def _price(
        self, store: UsageRowStore, intervals: Mapping[str, List[TariffInterval]]
    ) -> None:
        index = store.buckets()
        resolved = {flow: tariffs.resolve_rates(index, ivs) for flow, ivs in intervals.items()}
        unresolved = 0

        for i, bucket in enumerate(index):
            row = store.get(bucket)
            rates: Dict[str, Optional[float]] = {}
            for flow, series in resolved.items():
                value = series.iloc[i]
                rates[flow] = None if pd.isna(value) else float(value)

            row_costs: Dict[str, Optional[int]] = {}
            for name, (field_name, key, flow) in canon.COST_BINDINGS.items():
                if flow not in rates:
                    continue
                energy = getattr(row, field_name).get(key)
                if energy is None:
                    continue
                if field_name in canon.WH_FIELDS:
                    energy = costs.wh_to_kwh(energy)
                rate = rates[flow]
                if rate is None:
                    unresolved += 1
                    row_costs[name] = 0 if self.config.zero_cost_when_unresolved else None
                else:
                    row_costs[name] = costs.cost(energy, rate, self.config.cost_scale)

            store.enrich(bucket, "tariff", rates=rates, costs=row_costs)

        if unresolved:
            logger.warning("%d costs without a matching tariff interval", unresolved)


def reconcile(
    window: TimeRange,
    sources: Feeds,
    tariff_feeds: Optional[Mapping[str, Iterable[Any]]] = None,
    *,
    config: Optional[ReconcileConfig] = None,
    register_state: Optional[RegisterAccumulator] = None,
    epoch_state: Optional[EpochAccumulator] = None,
) -> ReconcileResult:
    """Reconcile every source over `window` into ordered, priced half-hour rows."""
    return ReconciliationOrchestrator(window, config).run(
        sources,
        tariff_feeds,
        register_state=register_state,
        epoch_state=epoch_state,
    )
