"""
Tankwatch Analytics
Consumption analytics and predictive maintenance for remotely monitored tanks
"""

from tankwatch.exceptions import (
    InvalidConfigurationError,
    InvalidReadingError,
    TankwatchError,
)
from tankwatch.logging_config import setup_logging
from tankwatch.models import (
    AnalyticsResult,
    AnomalyReport,
    BatteryPrediction,
    ConsumptionForecast,
    DeviceHealthPrediction,
    FleetHealthScore,
    Reading,
    prepare_readings,
    readings_from_frame,
)
from tankwatch.orchestrators import FleetOrchestrator, FleetPredictionResult
from tankwatch.services import (
    calculate_fleet_health,
    compute_consumption_analytics,
    detect_anomalies,
    forecast_consumption,
    predict_battery_life,
    predict_device_health,
)
from tankwatch.settings import EngineSettings, load_settings

__version__ = "1.0.0"

__all__ = [
    "AnalyticsResult",
    "AnomalyReport",
    "BatteryPrediction",
    "ConsumptionForecast",
    "DeviceHealthPrediction",
    "EngineSettings",
    "FleetHealthScore",
    "FleetOrchestrator",
    "FleetPredictionResult",
    "InvalidConfigurationError",
    "InvalidReadingError",
    "Reading",
    "TankwatchError",
    "calculate_fleet_health",
    "compute_consumption_analytics",
    "detect_anomalies",
    "forecast_consumption",
    "load_settings",
    "predict_battery_life",
    "predict_device_health",
    "prepare_readings",
    "readings_from_frame",
    "setup_logging",
]
