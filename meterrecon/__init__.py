from . import (
    canon,
    exceptions,
    types,
    utils,
    buckets,
    tariffs,
    costs,
    store,
    interval,
    epochs,
    cumulative,
    schema,
    feeds,
    validate,
    formats,
    config,
    reconcile,
)
from .reconcile import Feeds, ReconcileResult, ReconciliationOrchestrator
from .reconcile import reconcile as run

__all__ = [
    "canon",
    "exceptions",
    "types",
    "utils",
    "buckets",
    "tariffs",
    "costs",
    "store",
    "interval",
    "epochs",
    "cumulative",
    "schema",
    "feeds",
    "validate",
    "formats",
    "config",
    "reconcile",
    "Feeds",
    "ReconcileResult",
    "ReconciliationOrchestrator",
    "run",
]
