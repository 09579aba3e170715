import pandas as pd
import pytest

from meterrecon import buckets, utils

TZ = "Europe/London"


@pytest.fixture
def bucketizer():
    return buckets.Bucketizer(TZ, "local")


@pytest.fixture
def hour_window():
    # 02:00-03:00 UTC, which is also London wall time in December
    return utils.make_range("2024-12-09T02:00:00Z", "2024-12-09T03:00:00Z", TZ)


@pytest.fixture
def two_hour_window():
    return utils.make_range("2025-01-01T00:00:00Z", "2025-01-01T02:00:00Z", TZ)


@pytest.fixture
def epoch_groups():
    """Three consecutive 15-minute sub-metering groups starting 02:00 UTC."""
    return [
        {
            "groupStart": 1733709600,
            "durationSeconds": 900,
            "readings": [
                {"channel": "IMPORT", "energyAmount": 1470, "costAmountMilliUnits": 34559},
                {"channel": "GAS_ENERGY", "energyAmount": 500, "costAmountMilliUnits": 12000},
            ],
        },
        {
            "groupStart": 1733710500,
            "durationSeconds": 900,
            "readings": [
                {"channel": "IMPORT", "energyAmount": 1541, "costAmountMilliUnits": 36228},
                {"channel": "GAS_ENERGY", "energyAmount": 600, "costAmountMilliUnits": 15000},
            ],
        },
        {
            "groupStart": 1733711400,
            "durationSeconds": 900,
            "readings": [
                {"channel": "IMPORT", "energyAmount": 1358, "costAmountMilliUnits": 31926},
                {"channel": "GAS_ENERGY", "energyAmount": 700, "costAmountMilliUnits": 18000},
            ],
        },
    ]


@pytest.fixture
def register_samples():
    """Inverter register samples (kWh) over 2025-01-01 00:00-02:00 UTC."""
    return [
        {"instant": "2025-01-01T00:05:00Z", "counterName": "import", "value": 10.0},
        {"instant": "2025-01-01T00:05:00Z", "counterName": "export", "value": 5.0},
        {"instant": "2025-01-01T00:35:00Z", "counterName": "import", "value": 10.5},
        {"instant": "2025-01-01T01:05:00Z", "counterName": "import", "value": 11.0},
        {"instant": "2025-01-01T01:35:00Z", "counterName": "import", "value": 11.25},
        {"instant": "2025-01-01T01:35:00Z", "counterName": "export", "value": 5.5},
    ]


@pytest.fixture
def import_epochs():
    """Eight 15-minute IMPORT epochs of 100 Wh / 2.5p each over 00:00-02:00 UTC."""
    start = pd.Timestamp("2025-01-01T00:00:00Z")
    return [
        {
            "groupStart": (start + pd.Timedelta(minutes=15 * i)).isoformat(),
            "durationSeconds": 900,
            "readings": [
                {"channel": "IMPORT", "energyAmount": 100, "costAmountMilliUnits": 2500}
            ],
        }
        for i in range(8)
    ]
