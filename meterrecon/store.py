"""Bucket-keyed store shared by every source of one run."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Iterator, Mapping, Optional

import pandas as pd

from . import canon
from .exceptions import OwnershipError, StoreError, WriteOnceError
from .types import UsageRow

logger = logging.getLogger(__name__)


class UsageRowStore:
    """
    Mapping of bucket start -> UsageRow, enriched in place by each source.

    - Rows are created on first contribution and never deleted.
    - A source may only write the fields registered for it in
      canon.SOURCE_FIELDS, and every (field, key) is written once.
    - Energy sources write before `seal()`, tariffs/costs only after it.
    - Writes are serialised, so sources may be drained from several threads.
    """

    def __init__(self, bucketizer: Optional[Callable[[pd.Timestamp], pd.Timestamp]] = None):
        self._rows: Dict[pd.Timestamp, UsageRow] = {}
        self._lock = threading.Lock()
        self._sealed = False
        self._bucketizer = bucketizer

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, bucket: pd.Timestamp) -> bool:
        return bucket in self._rows

    def __iter__(self) -> Iterator[pd.Timestamp]:
        return iter(sorted(self._rows))

    @property
    def sealed(self) -> bool:
        return self._sealed

    def get(self, bucket: pd.Timestamp) -> Optional[UsageRow]:
        with self._lock:
            return self._rows.get(bucket)

    def enrich(
        self, bucket: pd.Timestamp, source: str, **fields: Mapping[str, object]
    ) -> UsageRow:
        """Create the row for `bucket` if absent and merge `fields` into it."""
        owned = canon.SOURCE_FIELDS.get(source)
        if owned is None:
            raise OwnershipError(f"Unknown source {source!r}.")
        foreign = [name for name in fields if name not in owned]
        if foreign:
            raise OwnershipError(f"Source {source!r} may not write {foreign}.")
        if self._bucketizer is not None and self._bucketizer(bucket) != bucket:
            raise StoreError(f"{bucket} is not a bucket boundary.")

        with self._lock:
            if source in canon.ENERGY_SOURCES and self._sealed:
                raise WriteOnceError(f"Store is sealed; {source!r} reported too late.")
            if source not in canon.ENERGY_SOURCES and not self._sealed:
                raise WriteOnceError(f"{source!r} fields are written after all energy sources.")
            row = self._rows.get(bucket)
            if row is None:
                row = UsageRow(t_start=bucket)
                self._rows[bucket] = row
            for name, values in fields.items():
                clash = getattr(row, name).keys() & values.keys()
                if clash:
                    raise WriteOnceError(f"{bucket}: {name}{sorted(clash)} already written.")
            for name, values in fields.items():
                getattr(row, name).update(values)
        return row

    def seal(self) -> None:
        """Close the store to energy sources and open it to tariff resolution."""
        with self._lock:
            self._sealed = True
            count = len(self._rows)
        logger.debug("Store sealed with %d rows", count)

    def buckets(self) -> pd.DatetimeIndex:
        with self._lock:
            keys = sorted(self._rows)
        return pd.DatetimeIndex(keys, name=canon.INDEX_NAME)

    def rows(self) -> list[UsageRow]:
        """All rows, ascending by bucket."""
        with self._lock:
            return [self._rows[b] for b in sorted(self._rows)]
