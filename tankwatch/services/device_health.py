"""
Device Health Predictor

Scores the likelihood that a tank monitor fails soon, from four factors:

    Factor          Weight  Trigger
    battery          40%    alert critical / warning, or rapid decline
    connectivity     30%    offline events per week > 5 / > 2 / > 1
    sensor drift     20%    drift increase > 10 / > 5 percentage points
    temperature      10%    temperature std deviation > 20 / > 15

Points are additive and capped at 100. Each triggered condition also
produces a human-readable issue for the dashboard.
"""

from typing import List, Optional, Sequence, Tuple

import structlog

from tankwatch.models.prediction_models import (
    BatteryAlertLevel,
    BatteryPrediction,
    BatteryTrend,
    DeviceHealthPrediction,
    HealthStatus,
)
from tankwatch.models.readings import Reading, ReadingInput, prepare_readings
from tankwatch.services.battery_predictor import predict_battery_life
from tankwatch.settings import DeviceHealthSettings, EngineSettings
from tankwatch.stats import mean, round_half_up, standard_deviation

logger = structlog.get_logger(__name__)

ISSUE_BATTERY_CRITICAL = "Battery replacement needed immediately"
ISSUE_BATTERY_WARNING = "Battery replacement recommended within 30 days"
ISSUE_CONNECTIVITY = "Frequent connectivity issues - check signal strength"
ISSUE_TEMPERATURE = "High temperature fluctuations - may affect sensor accuracy"
ISSUE_SENSOR_DRIFT = "Increasing sensor drift - calibration may be needed"


# ═══════════════════════════════════════════════════════════════════════════════
# FACTORS
# ═══════════════════════════════════════════════════════════════════════════════


def offline_statistics(readings: Sequence[Reading]) -> Tuple[float, float]:
    """
    Offline events per week and average offline duration (hours).

    An event starts at the first offline reading after an online one (or at
    the start of the history) and ends at the next online reading. An event
    still open at the end of the history counts but adds no duration.
    """
    if not readings:
        return 0.0, 0.0

    events = 0
    offline_hours = 0.0
    offline_since = None

    for reading in readings:
        if not reading.device_online and offline_since is None:
            offline_since = reading.timestamp
            events += 1
        elif reading.device_online and offline_since is not None:
            offline_hours += (reading.timestamp - offline_since).total_seconds() / 3600
            offline_since = None

    days_span = (readings[-1].timestamp - readings[0].timestamp).total_seconds() / 86400
    weeks_span = max(1.0, days_span / 7)

    frequency = events / weeks_span
    avg_duration = offline_hours / events if events else 0.0
    return frequency, avg_duration


def drift_increase(readings: Sequence[Reading], window: int = 10, min_readings: int = 1) -> float:
    """
    Mean |raw - calibrated| over the most recent ``window`` drift-eligible
    readings minus the same over the earliest ``window`` (the two windows
    overlap on short histories). 0 with fewer than
    ``min_readings`` eligible readings.
    """
    drift = [r.sensor_drift for r in readings if r.has_drift_data]
    if len(drift) < min_readings:
        return 0.0
    return mean(drift[-window:]) - mean(drift[:window])


def failure_probability(
    battery: BatteryPrediction,
    offline_frequency: float,
    sensor_drift: float,
    temperature_variance: float,
    settings: Optional[DeviceHealthSettings] = None,
) -> Tuple[int, List[str]]:
    """Additive failure probability (0-100) and the issues that raised it."""
    settings = settings or DeviceHealthSettings()
    points = 0.0
    issues: List[str] = []

    # Battery
    if battery.alert_level == BatteryAlertLevel.CRITICAL:
        points += settings.battery_critical_points
        issues.append(ISSUE_BATTERY_CRITICAL)
    elif battery.alert_level == BatteryAlertLevel.WARNING:
        points += settings.battery_warning_points
        issues.append(ISSUE_BATTERY_WARNING)
    elif battery.trend == BatteryTrend.RAPID_DECLINE:
        points += settings.battery_rapid_decline_points

    # Connectivity
    if offline_frequency > settings.offline_high_per_week:
        points += settings.offline_high_points
    elif offline_frequency > settings.offline_medium_per_week:
        points += settings.offline_medium_points
    elif offline_frequency > settings.offline_low_per_week:
        points += settings.offline_low_points
    if offline_frequency > settings.offline_medium_per_week:
        issues.append(ISSUE_CONNECTIVITY)

    # Temperature
    if temperature_variance > settings.temperature_high:
        points += settings.temperature_high_points
    elif temperature_variance > settings.temperature_medium:
        points += settings.temperature_medium_points
    if temperature_variance > settings.temperature_medium:
        issues.append(ISSUE_TEMPERATURE)

    # Sensor drift
    if sensor_drift > settings.drift_high:
        points += settings.drift_high_points
    elif sensor_drift > settings.drift_medium:
        points += settings.drift_medium_points
    if sensor_drift > settings.drift_medium:
        issues.append(ISSUE_SENSOR_DRIFT)

    return min(100, round_half_up(points)), issues


def overall_health(
    probability: float,
    battery_alert: BatteryAlertLevel,
    settings: Optional[DeviceHealthSettings] = None,
) -> HealthStatus:
    settings = settings or DeviceHealthSettings()
    if probability > settings.critical_above or battery_alert == BatteryAlertLevel.CRITICAL:
        return HealthStatus.CRITICAL
    if probability > settings.warning_above or battery_alert == BatteryAlertLevel.WARNING:
        return HealthStatus.WARNING
    return HealthStatus.GOOD


# ═══════════════════════════════════════════════════════════════════════════════
# ENTRY POINT
# ═══════════════════════════════════════════════════════════════════════════════


def predict_device_health(
    readings: Sequence[ReadingInput],
    asset_id: str,
    location_name: str,
    settings: Optional[EngineSettings] = None,
) -> DeviceHealthPrediction:
    """
    Predict device health for one tank monitor.

    Args:
        readings: Reading history (any order)
        asset_id: Monitored asset identifier
        location_name: Display name of the tank location
        settings: Engine settings (defaults if None)

    Returns:
        DeviceHealthPrediction
    """
    settings = settings or EngineSettings()
    health = settings.device_health

    ordered = prepare_readings(readings)
    battery = predict_battery_life(ordered, settings.battery)

    offline_frequency, avg_offline_duration = offline_statistics(ordered)

    temperatures = [r.temperature for r in ordered if r.temperature is not None]
    temperature_variance = standard_deviation(temperatures)
    temperature_avg = round(mean(temperatures), 1) if temperatures else None

    sensor_drift = drift_increase(ordered, health.drift_window, health.min_drift_readings)

    probability, issues = failure_probability(
        battery, offline_frequency, sensor_drift, temperature_variance, health
    )
    status = overall_health(probability, battery.alert_level, health)

    last_online = next((r.timestamp for r in reversed(ordered) if r.device_online), None)

    prediction = DeviceHealthPrediction(
        asset_id=asset_id,
        location_name=location_name,
        battery=battery,
        offline_frequency=round(offline_frequency, 2),
        avg_offline_duration=round(avg_offline_duration, 1),
        temperature_variance=round(temperature_variance, 1),
        sensor_drift=round(sensor_drift, 2),
        failure_probability=probability,
        predicted_issues=issues,
        overall_health=status,
        temperature_avg=temperature_avg,
        last_online=last_online,
    )

    logger.debug(
        "Device health predicted",
        asset_id=asset_id,
        failure_probability=probability,
        overall_health=status.value,
        issues=len(issues),
    )
    return prediction
