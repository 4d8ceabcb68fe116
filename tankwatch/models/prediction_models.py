"""
Tank Analytics Data Models
==========================

All dataclasses and enums produced by the analytics engine. Every result is
computed fresh from an immutable reading history and never mutated after
construction; ``to_dict()`` gives the JSON-ready form the dashboard layer
stores or renders.

Author: Tankwatch Team
Version: 1.0.0
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from tankwatch.models.readings import Reading


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# ══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════════════════════


class SignalType(str, Enum):
    """Classification of the change between two adjacent readings"""
    NOISE = "noise"
    CONSUMPTION = "consumption"
    REFILL = "refill"


class ConsumptionTrend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class BatteryAlertLevel(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"
    UNKNOWN = "unknown"


class BatteryTrend(str, Enum):
    STABLE = "stable"
    DECLINING = "declining"
    RAPID_DECLINE = "rapid_decline"


class HealthStatus(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


class Urgency(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    NORMAL = "normal"
    GOOD = "good"


class AnomalyType(str, Enum):
    UNUSUAL_RATE = "unusual_rate"
    SUDDEN_DROP = "sudden_drop"
    SENSOR_DRIFT = "sensor_drift"
    NIGHT_CONSUMPTION = "night_consumption"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ══════════════════════════════════════════════════════════════════════════════
# SIGNAL PRIMITIVES
# ══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ConsumptionDelta:
    """
    Signed change between two chronologically adjacent readings.
    delta = older - newer, so a positive delta means the level fell.
    """
    older: Reading
    newer: Reading
    delta: float
    signal: SignalType

    @property
    def timestamp(self) -> datetime:
        return self.newer.timestamp

    @property
    def hours(self) -> float:
        return (self.newer.timestamp - self.older.timestamp).total_seconds() / 3600

    @property
    def consumed(self) -> float:
        """Percentage points consumed; 0 unless classified as consumption."""
        return self.delta if self.signal == SignalType.CONSUMPTION else 0.0

    @property
    def increase(self) -> float:
        return -self.delta


@dataclass(frozen=True)
class RefillEvent:
    """A delivery detected from a level increase above the refill threshold"""
    timestamp: datetime
    percentage_increase: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "percentage_increase": round(self.percentage_increase, 2),
        }


@dataclass
class RefillPattern:
    last_refill_date: Optional[datetime] = None
    refill_frequency_days: Optional[float] = None
    predicted_next_refill: Optional[datetime] = None
    refill_events: List[RefillEvent] = field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════════
# CONSUMPTION ANALYTICS
# ══════════════════════════════════════════════════════════════════════════════


@dataclass
class AnalyticsResult:
    """Composite consumption analytics for one tank"""
    # Core consumption metrics
    rolling_avg_pct_per_day: float
    prev_day_pct_used: float
    prev_day_liters_used: Optional[float]
    days_to_critical_level: Optional[float]

    # Advanced metrics
    consumption_velocity: float
    efficiency_score: float
    data_reliability_score: float

    # Refill analysis
    last_refill_date: Optional[datetime]
    refill_frequency_days: Optional[float]
    predicted_next_refill: Optional[datetime]

    # Pattern analysis
    daily_avg_consumption: float
    weekly_pattern: List[float]  # [Sun, Mon, ..., Sat]
    consumption_trend: ConsumptionTrend

    # Alerts
    unusual_consumption_alert: bool
    potential_leak_alert: bool
    device_connectivity_alert: bool

    refill_events: List[RefillEvent] = field(default_factory=list)

    @property
    def has_alerts(self) -> bool:
        return (
            self.unusual_consumption_alert
            or self.potential_leak_alert
            or self.device_connectivity_alert
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "rolling_avg_pct_per_day": self.rolling_avg_pct_per_day,
            "prev_day_pct_used": self.prev_day_pct_used,
            "prev_day_liters_used": self.prev_day_liters_used,
            "days_to_critical_level": self.days_to_critical_level,
            "consumption_velocity": self.consumption_velocity,
            "efficiency_score": self.efficiency_score,
            "data_reliability_score": self.data_reliability_score,
            "last_refill_date": _iso(self.last_refill_date),
            "refill_frequency_days": self.refill_frequency_days,
            "predicted_next_refill": _iso(self.predicted_next_refill),
            "daily_avg_consumption": self.daily_avg_consumption,
            "weekly_pattern": list(self.weekly_pattern),
            "consumption_trend": self.consumption_trend.value,
            "unusual_consumption_alert": self.unusual_consumption_alert,
            "potential_leak_alert": self.potential_leak_alert,
            "device_connectivity_alert": self.device_connectivity_alert,
            "refill_events": [e.to_dict() for e in self.refill_events],
        }


# ══════════════════════════════════════════════════════════════════════════════
# DEVICE PREDICTIONS
# ══════════════════════════════════════════════════════════════════════════════


@dataclass
class BatteryPrediction:
    current_voltage: Optional[float]
    decline_rate: float  # volts/day, positive = declining
    days_remaining: Optional[int]
    health_score: int  # 0-100
    alert_level: BatteryAlertLevel
    trend: BatteryTrend
    r_squared: float = 0.0
    last_reading: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_voltage": self.current_voltage,
            "decline_rate": self.decline_rate,
            "days_remaining": self.days_remaining,
            "health_score": self.health_score,
            "alert_level": self.alert_level.value,
            "trend": self.trend.value,
            "r_squared": round(self.r_squared, 3),
            "last_reading": _iso(self.last_reading),
        }


@dataclass
class DeviceHealthPrediction:
    asset_id: str
    location_name: str
    battery: BatteryPrediction
    offline_frequency: float  # events per week
    avg_offline_duration: float  # hours
    temperature_variance: float
    sensor_drift: float
    failure_probability: int  # 0-100
    predicted_issues: List[str]
    overall_health: HealthStatus
    temperature_avg: Optional[float] = None
    last_online: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "location_name": self.location_name,
            "battery": self.battery.to_dict(),
            "offline_frequency": self.offline_frequency,
            "avg_offline_duration": self.avg_offline_duration,
            "temperature_variance": self.temperature_variance,
            "temperature_avg": self.temperature_avg,
            "sensor_drift": self.sensor_drift,
            "failure_probability": self.failure_probability,
            "predicted_issues": list(self.predicted_issues),
            "overall_health": self.overall_health.value,
            "last_online": _iso(self.last_online),
        }


# ══════════════════════════════════════════════════════════════════════════════
# FORECAST
# ══════════════════════════════════════════════════════════════════════════════


@dataclass
class ConfidenceInterval:
    """Empty-date range: low = faster consumption (sooner)"""
    low: Optional[datetime] = None
    high: Optional[datetime] = None


@dataclass
class ConsumptionForecast:
    asset_id: str
    location_name: str
    current_level: float
    avg_daily_consumption: float
    weekday_pattern: List[float]  # [Sun, Mon, ..., Sat]
    predicted_empty_date: Optional[datetime]
    confidence_interval: ConfidenceInterval
    optimal_refill_date: Optional[datetime]
    days_remaining: Optional[float]
    urgency: Urgency
    recommended_refill_level: float = 30.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "location_name": self.location_name,
            "current_level": self.current_level,
            "avg_daily_consumption": self.avg_daily_consumption,
            "weekday_pattern": list(self.weekday_pattern),
            "predicted_empty_date": _iso(self.predicted_empty_date),
            "confidence_interval": {
                "low": _iso(self.confidence_interval.low),
                "high": _iso(self.confidence_interval.high),
            },
            "optimal_refill_date": _iso(self.optimal_refill_date),
            "recommended_refill_level": self.recommended_refill_level,
            "days_remaining": self.days_remaining,
            "urgency": self.urgency.value,
        }


# ══════════════════════════════════════════════════════════════════════════════
# ANOMALIES
# ══════════════════════════════════════════════════════════════════════════════


@dataclass
class Anomaly:
    id: str
    asset_id: str
    location_name: str
    type: AnomalyType
    timestamp: datetime
    severity: Severity
    description: str
    recommendation: str
    value: Optional[float] = None
    expected_value: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "asset_id": self.asset_id,
            "location_name": self.location_name,
            "type": self.type.value,
            "timestamp": self.timestamp.isoformat(),
            "severity": self.severity.value,
            "description": self.description,
            "recommendation": self.recommendation,
            "value": round(self.value, 2) if self.value is not None else None,
            "expected_value": (
                round(self.expected_value, 2) if self.expected_value is not None else None
            ),
        }


@dataclass
class AnomalyReport:
    asset_id: str
    anomalies: List[Anomaly] = field(default_factory=list)
    leak_probability: float = 0
    theft_probability: float = 0
    sensor_malfunction_probability: float = 0
    overall_risk_level: RiskLevel = RiskLevel.LOW

    @property
    def anomaly_count(self) -> int:
        return len(self.anomalies)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "anomalies": [a.to_dict() for a in self.anomalies],
            "leak_probability": self.leak_probability,
            "theft_probability": self.theft_probability,
            "sensor_malfunction_probability": self.sensor_malfunction_probability,
            "overall_risk_level": self.overall_risk_level.value,
        }


# ══════════════════════════════════════════════════════════════════════════════
# FLEET
# ══════════════════════════════════════════════════════════════════════════════


@dataclass
class FleetHealthScore:
    """Fleet-wide aggregate of per-asset predictions"""
    overall_score: int  # 0-100
    devices_healthy: int = 0
    devices_at_risk: int = 0
    devices_critical: int = 0
    average_battery_health: int = 100
    average_data_reliability: int = 100
    active_anomalies: int = 0
    refills_due_this_week: int = 0

    @property
    def total_devices(self) -> int:
        return self.devices_healthy + self.devices_at_risk + self.devices_critical

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_score": self.overall_score,
            "devices_healthy": self.devices_healthy,
            "devices_at_risk": self.devices_at_risk,
            "devices_critical": self.devices_critical,
            "total_devices": self.total_devices,
            "average_battery_health": self.average_battery_health,
            "average_data_reliability": self.average_data_reliability,
            "active_anomalies": self.active_anomalies,
            "refills_due_this_week": self.refills_due_this_week,
        }
