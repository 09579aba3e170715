from __future__ import annotations
from typing import Final, Dict, Tuple

INDEX_NAME: Final[str] = "t_start"
DEFAULT_TZ: Final[str] = "Europe/London"
BUCKET_MINUTES: Final[int] = 30
ZONE_MODES: Final[tuple[str, ...]] = ("local", "absolute")

# Fixed-point precision for every cost computed in a run (4 decimals)
COST_SCALE: Final[int] = 10_000
# Sub-metering costs arrive in thousandths of the display unit
MILLI: Final[int] = 1_000
WH_PER_KWH: Final[int] = 1_000

FLOWS: Final[tuple[str, ...]] = ("import", "export")

# Register counter names as reported by the inverter feed
REGISTER_IMPORT: Final[str] = "import"
REGISTER_EXPORT: Final[str] = "export"

# Sub-metering channel -> flow it is priced against (None: source cost only)
EPOCH_CHANNELS: Dict[str, str | None] = {
    "IMPORT": "import",
    "GAS_ENERGY": None,
}

# Source name -> UsageRow fields that source may write
SOURCE_FIELDS: Dict[str, Tuple[str, ...]] = {
    "interval": ("interval_kwh",),
    "epoch": ("epoch_wh", "epoch_cost_milli"),
    "register": ("registers", "register_deltas"),
    "tariff": ("rates", "costs"),
}
ENERGY_SOURCES: Final[tuple[str, ...]] = ("interval", "epoch", "register")

# cost name -> (row field, key within that field, tariff flow)
COST_BINDINGS: Dict[str, Tuple[str, str, str]] = {
    "register_import": ("register_deltas", REGISTER_IMPORT, "import"),
    "register_export": ("register_deltas", REGISTER_EXPORT, "export"),
    "interval_import": ("interval_kwh", "import", "import"),
    "interval_export": ("interval_kwh", "export", "export"),
    "epoch_import": ("epoch_wh", "IMPORT", "import"),
}
# Fields holding Wh rather than kWh
WH_FIELDS: Final[tuple[str, ...]] = ("epoch_wh",)
