"""Draining of source feeds into reconcilers.

A feed is any iterable of records. An exception raised while pulling from it
is a fetch failure and aborts the run; a bad record is logged and skipped.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional, Sequence

from .exceptions import MalformedRecord, OutOfRangeSample, ReconError, SourceFetchError
from .types import RejectCounts

logger = logging.getLogger(__name__)


def _pull(source: str, feed: Iterable[Any]):
    iterator = iter(feed)
    while True:
        try:
            yield next(iterator)
        except StopIteration:
            return
        except ReconError:
            raise
        except Exception as exc:
            raise SourceFetchError(source, f"fetch failed: {exc}") from exc


def drain(
    source: str,
    feed: Iterable[Any],
    ingest: Callable[[Any], None],
    convert: Optional[Callable[[Any], Sequence[Any]]] = None,
) -> RejectCounts:
    """Feed every record through `convert` then `ingest`; return per-outcome counts."""
    counts: RejectCounts = {"accepted": 0, "out_of_range": 0, "malformed": 0}

    for record in _pull(source, feed):
        try:
            items = convert(record) if convert is not None else [record]
        except MalformedRecord as exc:
            logger.warning("Skipped malformed %s record: %s", source, exc)
            counts["malformed"] += 1
            continue

        for item in items:
            try:
                ingest(item)
            except OutOfRangeSample as exc:
                logger.warning("Discarded %s", exc)
                counts["out_of_range"] += 1
            except MalformedRecord as exc:
                logger.warning("Skipped malformed %s record: %s", source, exc)
                counts["malformed"] += 1
            else:
                counts["accepted"] += 1

    logger.info(
        "%s: %d accepted, %d out of range, %d malformed",
        source,
        counts["accepted"],
        counts["out_of_range"],
        counts["malformed"],
    )
    return counts
