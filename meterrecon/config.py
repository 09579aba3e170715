from __future__ import annotations

from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from . import canon
from .exceptions import ConfigError
from .types import ZoneMode


@dataclass
class ReconcileConfig:
    # Zone and bucketing mode shared by every bucketing call in a run
    tz: str = canon.DEFAULT_TZ
    zone_mode: ZoneMode = "local"

    # Fixed-point scale for all cost arithmetic in the run
    cost_scale: int = canon.COST_SCALE
    display_places: int = 2

    # The first bucket has no predecessor, so its deltas are not valid
    drop_first_row: bool = True

    # With no matching tariff interval the rate is always unset; this only
    # decides whether the dependent cost is unset (False) or zero (True)
    zero_cost_when_unresolved: bool = False

    def __post_init__(self):
        try:
            ZoneInfo(self.tz)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigError(f"Unknown time zone: {self.tz!r}") from exc
        if self.zone_mode not in canon.ZONE_MODES:
            raise ConfigError(
                f"zone_mode must be one of {canon.ZONE_MODES}, got {self.zone_mode!r}"
            )
        if self.cost_scale <= 0 or str(self.cost_scale).rstrip("0") != "1":
            raise ConfigError("cost_scale must be a positive power of ten.")
        if not 0 <= self.display_places <= len(str(self.cost_scale)) - 1:
            raise ConfigError("display_places cannot exceed the cost_scale precision.")


def default_config() -> ReconcileConfig:
    return ReconcileConfig()
