"""Reading input models and analytics result models."""

from .prediction_models import (
    AnalyticsResult,
    Anomaly,
    AnomalyReport,
    AnomalyType,
    BatteryAlertLevel,
    BatteryPrediction,
    BatteryTrend,
    ConfidenceInterval,
    ConsumptionDelta,
    ConsumptionForecast,
    ConsumptionTrend,
    DeviceHealthPrediction,
    FleetHealthScore,
    HealthStatus,
    RefillEvent,
    RefillPattern,
    RiskLevel,
    Severity,
    SignalType,
    Urgency,
)
from .readings import (
    Reading,
    ReadingHistory,
    parse_reading,
    parse_readings,
    prepare_readings,
    readings_from_frame,
)

__all__ = [
    "AnalyticsResult",
    "Anomaly",
    "AnomalyReport",
    "AnomalyType",
    "BatteryAlertLevel",
    "BatteryPrediction",
    "BatteryTrend",
    "ConfidenceInterval",
    "ConsumptionDelta",
    "ConsumptionForecast",
    "ConsumptionTrend",
    "DeviceHealthPrediction",
    "FleetHealthScore",
    "HealthStatus",
    "Reading",
    "ReadingHistory",
    "RefillEvent",
    "RefillPattern",
    "RiskLevel",
    "Severity",
    "SignalType",
    "Urgency",
    "parse_reading",
    "parse_readings",
    "prepare_readings",
    "readings_from_frame",
]
