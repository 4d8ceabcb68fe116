"""Service layer: per-asset analytics and fleet aggregation."""

from .anomaly_detector import detect_anomalies
from .battery_predictor import predict_battery_life
from .consumption_analytics import compute_consumption_analytics
from .consumption_forecaster import forecast_consumption
from .device_health import predict_device_health
from .fleet_health import calculate_fleet_health
from .signal_classifier import classify_change, classify_history, detect_refill_events

__all__ = [
    "calculate_fleet_health",
    "classify_change",
    "classify_history",
    "compute_consumption_analytics",
    "detect_anomalies",
    "detect_refill_events",
    "forecast_consumption",
    "predict_battery_life",
    "predict_device_health",
]
