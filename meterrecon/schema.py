from __future__ import annotations
from dataclasses import replace
from datetime import datetime
from typing import Any, List, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from . import canon, utils
from .exceptions import MalformedRecord
from .types import (
    RawCumulativeSample,
    RawEpochReading,
    RawIntervalSample,
    TariffInterval,
)


class FeedRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class CumulativeSampleIn(FeedRecord):
    instant: datetime
    counter_name: str = Field(alias="counterName", min_length=1)
    value: float = Field(allow_inf_nan=False)


class IntervalSampleIn(FeedRecord):
    interval_start: datetime = Field(alias="intervalStart")
    consumption: float = Field(allow_inf_nan=False)


class EpochReadingIn(FeedRecord):
    channel: str
    energy_amount: int = Field(alias="energyAmount")
    cost_amount_milli_units: int = Field(alias="costAmountMilliUnits")
    # per-reading override of the group duration
    duration_seconds: Optional[int] = Field(default=None, alias="durationSeconds", gt=0)


class EpochGroupIn(FeedRecord):
    group_start: datetime = Field(alias="groupStart")
    duration_seconds: int = Field(alias="durationSeconds", gt=0)
    readings: List[EpochReadingIn]


class TariffIn(FeedRecord):
    rate: float = Field(allow_inf_nan=False)
    valid_from: Optional[datetime] = Field(default=None, alias="validFrom")
    valid_to: Optional[datetime] = Field(default=None, alias="validTo")


def _parse(model: type[FeedRecord], record: Any) -> FeedRecord:
    if isinstance(record, model):
        return record
    try:
        return model.model_validate(record)
    except ValidationError as exc:
        raise MalformedRecord(
            f"Invalid {model.__name__}: {exc.errors(include_url=False)}"
        ) from exc


def _instant(value: Any, tz: str) -> pd.Timestamp:
    try:
        return utils.to_timestamp(value, tz)
    except (TypeError, ValueError) as exc:
        raise MalformedRecord(f"Invalid instant {value!r}: {exc}") from exc


def _optional_instant(value: Any, tz: str) -> Optional[pd.Timestamp]:
    return None if value is None else _instant(value, tz)


def to_cumulative(record: Any, tz: str = canon.DEFAULT_TZ) -> list[RawCumulativeSample]:
    if isinstance(record, RawCumulativeSample):
        return [replace(record, instant=_instant(record.instant, tz))]
    rec = _parse(CumulativeSampleIn, record)
    return [
        RawCumulativeSample(
            instant=_instant(rec.instant, tz),
            counter=rec.counter_name,
            value=rec.value,
        )
    ]


def to_interval(record: Any, tz: str = canon.DEFAULT_TZ) -> list[RawIntervalSample]:
    if isinstance(record, RawIntervalSample):
        return [replace(record, bucket_start=_instant(record.bucket_start, tz))]
    rec = _parse(IntervalSampleIn, record)
    return [
        RawIntervalSample(
            bucket_start=_instant(rec.interval_start, tz),
            consumption=rec.consumption,
        )
    ]


def to_epochs(record: Any, tz: str = canon.DEFAULT_TZ) -> list[RawEpochReading]:
    """One epoch group -> one RawEpochReading per channel reading."""
    if isinstance(record, RawEpochReading):
        return [replace(record, group_start=_instant(record.group_start, tz))]
    group = _parse(EpochGroupIn, record)
    start = _instant(group.group_start, tz)
    return [
        RawEpochReading(
            group_start=start,
            duration_s=r.duration_seconds or group.duration_seconds,
            channel=r.channel,
            energy_wh=r.energy_amount,
            cost_milli=r.cost_amount_milli_units,
        )
        for r in group.readings
    ]


def to_tariff(record: Any, tz: str = canon.DEFAULT_TZ) -> list[TariffInterval]:
    """
    Tariff interval with both bounds in the run's zone.

    Bounds are compared only once localised, so a naive and an aware bound
    are still checked against each other.
    """
    if isinstance(record, TariffInterval):
        rate, valid_from, valid_to = record.rate, record.valid_from, record.valid_to
    else:
        rec = _parse(TariffIn, record)
        rate, valid_from, valid_to = rec.rate, rec.valid_from, rec.valid_to

    start = _optional_instant(valid_from, tz)
    end = _optional_instant(valid_to, tz)
    if start is not None and end is not None and end <= start:
        raise MalformedRecord(f"Tariff validTo {end} is not after validFrom {start}")
    return [TariffInterval(rate=rate, valid_from=start, valid_to=end)]
