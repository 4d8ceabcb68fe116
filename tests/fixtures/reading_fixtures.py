"""
Reading history fixtures for testing
"""

from datetime import datetime, timedelta
from typing import List, Optional

import pytest

from tankwatch.models.readings import Reading
from tankwatch.settings import EngineSettings

# A Sunday
BASE_TIME = datetime(2025, 3, 2, 0, 0, 0)
NOON = BASE_TIME + timedelta(hours=12)


def make_reading(
    timestamp: datetime,
    pct: float,
    raw: Optional[float] = None,
    online: bool = True,
    voltage: Optional[float] = None,
    temperature: Optional[float] = None,
) -> Reading:
    return Reading(
        timestamp=timestamp,
        calibrated_fill_pct=pct,
        raw_fill_pct=raw,
        device_online=online,
        battery_voltage=voltage,
        temperature=temperature,
    )


def daily_history(
    levels: List[float],
    start: datetime = NOON,
    **kwargs,
) -> List[Reading]:
    """One reading per day at the same time of day."""
    return [
        make_reading(start + timedelta(days=i), level, **kwargs)
        for i, level in enumerate(levels)
    ]


def hourly_history(
    hours: int,
    start_pct: float = 100.0,
    rate_per_hour: float = 0.0,
    start: datetime = BASE_TIME,
    **kwargs,
) -> List[Reading]:
    """``hours`` readings one hour apart, falling by ``rate_per_hour``."""
    return [
        make_reading(start + timedelta(hours=i), start_pct - i * rate_per_hour, **kwargs)
        for i in range(hours)
    ]


@pytest.fixture
def engine_settings():
    """Default engine settings"""
    return EngineSettings()


@pytest.fixture
def steady_daily_readings():
    """Three daily readings consuming 2% per day"""
    return daily_history([100.0, 98.0, 96.0])


@pytest.fixture
def refill_readings():
    """A single +15% jump"""
    return daily_history([50.0, 65.0])


@pytest.fixture
def hourly_week_readings():
    """A week of hourly readings consuming 0.55% per hour"""
    return hourly_history(168, start_pct=100.0, rate_per_hour=0.55, voltage=4.1, temperature=21.0)


@pytest.fixture
def declining_battery_readings():
    """Voltage falling 0.1V per day"""
    return [
        make_reading(NOON + timedelta(days=i), 80.0, voltage=v)
        for i, v in enumerate([4.0, 3.9, 3.8, 3.7])
    ]
