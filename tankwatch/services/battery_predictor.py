"""
Battery Life Predictor

Fits a straight line to the device battery voltage over time and
extrapolates to the voltage at which the monitor stops reporting.

Voltage bands for the monitor's Li-ion cell:
- ≥ 4.2V  fully healthy (health 100)
- ≤ 3.6V  plan replacement (warning)
- ≤ 3.3V  replace immediately (critical)
- 3.0V    device stops working (health 0)
"""

from typing import Iterable, Optional

import structlog

from tankwatch.models.prediction_models import (
    BatteryAlertLevel,
    BatteryPrediction,
    BatteryTrend,
)
from tankwatch.models.readings import ReadingInput, prepare_readings
from tankwatch.settings import BatteryThresholds
from tankwatch.stats import clamp, linear_regression, round_half_up

logger = structlog.get_logger(__name__)

SECONDS_PER_DAY = 86400


def battery_health_score(voltage: float, thresholds: Optional[BatteryThresholds] = None) -> int:
    """Linear 0-100 scale between the dead and good voltages."""
    thresholds = thresholds or BatteryThresholds()
    span = thresholds.good - thresholds.dead
    return round_half_up(clamp((voltage - thresholds.dead) / span * 100, 0, 100))


def battery_alert_level(
    voltage: float, thresholds: Optional[BatteryThresholds] = None
) -> BatteryAlertLevel:
    thresholds = thresholds or BatteryThresholds()
    if voltage <= thresholds.critical:
        return BatteryAlertLevel.CRITICAL
    if voltage <= thresholds.warning:
        return BatteryAlertLevel.WARNING
    return BatteryAlertLevel.GOOD


def battery_trend(
    decline_rate: float, thresholds: Optional[BatteryThresholds] = None
) -> BatteryTrend:
    thresholds = thresholds or BatteryThresholds()
    if decline_rate <= thresholds.stable_decline_rate:
        return BatteryTrend.STABLE
    if decline_rate <= thresholds.declining_rate:
        return BatteryTrend.DECLINING
    return BatteryTrend.RAPID_DECLINE


def predict_battery_life(
    readings: Iterable[ReadingInput],
    thresholds: Optional[BatteryThresholds] = None,
) -> BatteryPrediction:
    """
    Predict remaining battery life from the voltage history.

    Only readings with a positive voltage are used. With fewer than 2 of
    them no trend can be fitted: the current voltage (if any) is scored
    directly, the trend is stable and the alert level unknown.

    Args:
        readings: Reading history for one device (any order)
        thresholds: Voltage bands (defaults if None)

    Returns:
        BatteryPrediction
    """
    thresholds = thresholds or BatteryThresholds()
    voltage_readings = [
        r for r in prepare_readings(readings)
        if r.battery_voltage is not None and r.battery_voltage > 0
    ]

    if len(voltage_readings) < 2:
        latest = voltage_readings[0] if voltage_readings else None
        if latest is None:
            logger.debug("No battery voltage data")
        return BatteryPrediction(
            current_voltage=latest.battery_voltage if latest else None,
            decline_rate=0.0,
            days_remaining=None,
            health_score=(
                battery_health_score(latest.battery_voltage, thresholds)
                if latest
                else thresholds.unknown_health_score
            ),
            alert_level=BatteryAlertLevel.UNKNOWN,
            trend=BatteryTrend.STABLE,
            last_reading=latest.timestamp if latest else None,
        )

    # x = days since the first voltage reading, y = volts
    start = voltage_readings[0].timestamp
    days = [(r.timestamp - start).total_seconds() / SECONDS_PER_DAY for r in voltage_readings]
    volts = [r.battery_voltage for r in voltage_readings]
    fit = linear_regression(days, volts)

    current = voltage_readings[-1]
    decline_rate = -fit.slope

    days_remaining = None
    if decline_rate > 0:
        days_remaining = round_half_up(
            max(0.0, (current.battery_voltage - thresholds.dead) / decline_rate)
        )

    prediction = BatteryPrediction(
        current_voltage=current.battery_voltage,
        # rounded for reporting only; bands and days use the fitted rate
        decline_rate=round(decline_rate, 4),
        days_remaining=days_remaining,
        health_score=battery_health_score(current.battery_voltage, thresholds),
        alert_level=battery_alert_level(current.battery_voltage, thresholds),
        trend=battery_trend(decline_rate, thresholds),
        r_squared=fit.r_squared,
        last_reading=current.timestamp,
    )

    if prediction.alert_level != BatteryAlertLevel.GOOD:
        logger.warning(
            "Battery voltage low",
            voltage=prediction.current_voltage,
            alert_level=prediction.alert_level.value,
            days_remaining=days_remaining,
        )
    return prediction
