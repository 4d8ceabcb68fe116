"""
Tankwatch Settings v1.0.0
Thresholds and constants for the tank analytics engine

Every constant the formulas depend on lives here, grouped per component.
Defaults are the documented values; each can be overridden through an
environment variable (TANKWATCH_*) that is read when the settings object is
constructed. Settings objects are passed explicitly into every engine call,
so there is no process-wide mutable state to reset between tests.
"""

import math
import os
from dataclasses import dataclass, field
from typing import Tuple

from dotenv import load_dotenv

from tankwatch.exceptions import InvalidConfigurationError

# Load environment variables
load_dotenv()


def _get_env_int(key: str, default: int) -> int:
    """Get integer environment variable."""
    return int(os.getenv(key, str(default)))


def _get_env_float(key: str, default: float) -> float:
    """Get float environment variable."""
    return float(os.getenv(key, str(default)))


def _get_env_float_tuple(
    key: str, default: Tuple[float, ...], separator: str = ","
) -> Tuple[float, ...]:
    """Get tuple of floats from comma-separated environment variable."""
    value = os.getenv(key)
    if not value:
        return default
    return tuple(float(item.strip()) for item in value.split(separator) if item.strip())


def _require_non_negative(name: str, value: float) -> None:
    if not math.isfinite(value) or value < 0:
        raise InvalidConfigurationError(
            f"{name} must be a finite, non-negative number (got {value})", setting=name
        )


def _require_positive(name: str, value: float) -> None:
    if not math.isfinite(value) or value <= 0:
        raise InvalidConfigurationError(
            f"{name} must be a finite, positive number (got {value})", setting=name
        )


# =============================================================================
# SIGNAL CLASSIFICATION
# =============================================================================
@dataclass(frozen=True)
class SignalThresholds:
    """Noise / refill thresholds, in percentage points."""

    noise_threshold: float = field(
        default_factory=lambda: _get_env_float("TANKWATCH_NOISE_THRESHOLD", 0.5)
    )
    refill_threshold: float = field(
        default_factory=lambda: _get_env_float("TANKWATCH_REFILL_THRESHOLD", 10.0)
    )

    def __post_init__(self):
        _require_non_negative("noise_threshold", self.noise_threshold)
        _require_positive("refill_threshold", self.refill_threshold)


# =============================================================================
# CONSUMPTION ANALYTICS
# =============================================================================
@dataclass(frozen=True)
class AnalyticsSettings:
    """Consumption analytics thresholds."""

    critical_threshold: float = field(
        default_factory=lambda: _get_env_float("TANKWATCH_CRITICAL_THRESHOLD", 20.0)
    )
    baseline_rate: float = field(
        default_factory=lambda: _get_env_float("TANKWATCH_BASELINE_RATE", 2.0)
    )

    # Reliability: hourly reporting expected
    gap_threshold_hours: float = 2.0
    max_gap_penalty: float = 10.0
    connectivity_alert_below: float = 80.0

    # Alerts
    unusual_multiplier: float = 1.5
    leak_multiplier: float = 2.0
    leak_window_hours: float = 72.0
    leak_min_samples: int = 24

    trend_stable_band: float = 0.1
    weekly_min_readings: int = 7
    velocity_min_readings: int = 4

    def __post_init__(self):
        _require_non_negative("critical_threshold", self.critical_threshold)
        _require_non_negative("baseline_rate", self.baseline_rate)
        _require_positive("gap_threshold_hours", self.gap_threshold_hours)
        _require_positive("leak_window_hours", self.leak_window_hours)


# =============================================================================
# BATTERY
# =============================================================================
@dataclass(frozen=True)
class BatteryThresholds:
    """Voltage bands for the device's Li-ion cell (volts, volts/day)."""

    dead: float = 3.0  # Device stops reporting
    critical: float = 3.3  # Replace immediately
    warning: float = 3.6  # Plan replacement
    good: float = 4.2  # Fully healthy

    stable_decline_rate: float = 0.01
    declining_rate: float = 0.05

    # Health score when there is no voltage data at all
    unknown_health_score: int = 50

    def __post_init__(self):
        if not (self.dead < self.critical <= self.warning < self.good):
            raise InvalidConfigurationError(
                "battery thresholds must satisfy dead < critical <= warning < good",
                setting="battery",
            )


# =============================================================================
# DEVICE HEALTH
# =============================================================================
@dataclass(frozen=True)
class DeviceHealthSettings:
    """Failure probability scoring for the monitoring device."""

    drift_window: int = 10
    min_drift_readings: int = 1

    # Battery factor (40% weight)
    battery_critical_points: float = 40
    battery_warning_points: float = 20
    battery_rapid_decline_points: float = 15

    # Connectivity factor (30% weight), offline events per week
    offline_high_per_week: float = 5
    offline_medium_per_week: float = 2
    offline_low_per_week: float = 1
    offline_high_points: float = 30
    offline_medium_points: float = 15
    offline_low_points: float = 5

    # Sensor drift factor (20% weight), percentage points
    drift_high: float = 10
    drift_medium: float = 5
    drift_high_points: float = 20
    drift_medium_points: float = 10

    # Temperature factor (10% weight), std deviation
    temperature_high: float = 20
    temperature_medium: float = 15
    temperature_high_points: float = 10
    temperature_medium_points: float = 5

    critical_above: float = 50
    warning_above: float = 25

    def __post_init__(self):
        if self.drift_window < 1 or self.min_drift_readings < 1:
            raise InvalidConfigurationError(
                "drift window sizes must be >= 1", setting="drift_window"
            )


# =============================================================================
# FORECAST
# =============================================================================
@dataclass(frozen=True)
class ForecastSettings:
    """Depletion forecast parameters."""

    window_samples: int = field(
        default_factory=lambda: _get_env_int("TANKWATCH_FORECAST_WINDOW", 168)
    )
    min_window_samples: int = 48
    # Most recent sub-period first
    period_weights: Tuple[float, ...] = field(
        default_factory=lambda: _get_env_float_tuple(
            "TANKWATCH_FORECAST_WEIGHTS", (0.35, 0.25, 0.20, 0.12, 0.08)
        )
    )

    safe_level: float = field(
        default_factory=lambda: _get_env_float("TANKWATCH_SAFE_LEVEL", 30.0)
    )
    delivery_buffer_days: float = field(
        default_factory=lambda: _get_env_float("TANKWATCH_DELIVERY_BUFFER_DAYS", 4.0)
    )
    min_interval_rate: float = 0.1

    # Urgency bands: (level <=, days_remaining <=)
    critical_level: float = 20
    critical_days: float = 3
    warning_level: float = 30
    warning_days: float = 7
    normal_level: float = 50
    normal_days: float = 14

    def __post_init__(self):
        if self.window_samples < 1 or self.min_window_samples < 1:
            raise InvalidConfigurationError(
                "forecast window sizes must be >= 1", setting="window_samples"
            )
        if not self.period_weights:
            raise InvalidConfigurationError(
                "at least one period weight is required", setting="period_weights"
            )
        for weight in self.period_weights:
            _require_non_negative("period_weights", weight)
        if abs(sum(self.period_weights) - 1.0) > 1e-6:
            raise InvalidConfigurationError(
                f"period weights must sum to 1 (got {sum(self.period_weights):.3f})",
                setting="period_weights",
            )
        _require_non_negative("delivery_buffer_days", self.delivery_buffer_days)
        _require_positive("min_interval_rate", self.min_interval_rate)


# =============================================================================
# ANOMALY DETECTION
# =============================================================================
@dataclass(frozen=True)
class AnomalySettings:
    """Anomaly detector thresholds."""

    min_readings: int = 10
    max_interval_hours: float = 48.0

    z_score_threshold: float = field(
        default_factory=lambda: _get_env_float("TANKWATCH_Z_SCORE_THRESHOLD", 2.5)
    )
    z_score_high: float = 3.0

    sudden_drop_pct: float = 15.0
    sudden_drop_high_pct: float = 30.0
    sudden_drop_window_hours: float = 24.0

    drift_min_readings: int = 20
    drift_window: int = 10
    drift_increase: float = 5.0
    drift_increase_high: float = 10.0

    # Business hours are 06:00-22:00
    night_start_hour: int = 22
    night_end_hour: int = 6
    night_ratio: float = 0.5
    night_min_rate: float = 1.0

    max_anomalies: int = 10

    # Probability weights per anomaly
    leak_per_unusual_rate: float = 20
    leak_per_sudden_drop: float = 10
    theft_per_sudden_drop: float = 25
    theft_per_night: float = 30
    malfunction_per_drift: float = 40
    malfunction_per_unusual_rate: float = 10

    high_risk_medium_count: int = 3
    medium_risk_total_count: int = 2

    def __post_init__(self):
        _require_positive("max_interval_hours", self.max_interval_hours)
        if not (0 <= self.night_start_hour <= 23 and 0 <= self.night_end_hour <= 23):
            raise InvalidConfigurationError(
                "night hours must be within 0-23", setting="night_start_hour"
            )
        if self.max_anomalies < 0:
            raise InvalidConfigurationError(
                "max_anomalies must be >= 0", setting="max_anomalies"
            )


# =============================================================================
# MAIN SETTINGS CLASS
# =============================================================================
@dataclass(frozen=True)
class EngineSettings:
    """All engine settings in one object."""

    signal: SignalThresholds = field(default_factory=SignalThresholds)
    analytics: AnalyticsSettings = field(default_factory=AnalyticsSettings)
    battery: BatteryThresholds = field(default_factory=BatteryThresholds)
    device_health: DeviceHealthSettings = field(default_factory=DeviceHealthSettings)
    forecast: ForecastSettings = field(default_factory=ForecastSettings)
    anomaly: AnomalySettings = field(default_factory=AnomalySettings)

    # Fleet orchestration
    min_readings_per_asset: int = 5
    max_workers: int = field(
        default_factory=lambda: _get_env_int("TANKWATCH_MAX_WORKERS", 8)
    )

    def to_dict(self) -> dict:
        """Summary for diagnostics (logged at startup)."""
        return {
            "noise_threshold": self.signal.noise_threshold,
            "refill_threshold": self.signal.refill_threshold,
            "critical_threshold": self.analytics.critical_threshold,
            "baseline_rate": self.analytics.baseline_rate,
            "forecast_window": self.forecast.window_samples,
            "forecast_weights": list(self.forecast.period_weights),
            "z_score_threshold": self.anomaly.z_score_threshold,
            "max_workers": self.max_workers,
        }


def load_settings() -> EngineSettings:
    """Build a fresh EngineSettings from defaults and environment overrides."""
    return EngineSettings()
