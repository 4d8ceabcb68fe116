"""
Fleet Health Aggregator

Pure aggregation over per-asset results that were already computed; raw
readings are never revisited here.

    overall = 100 x healthy_fraction
            - 100 x 0.3 x at_risk_fraction
            - 100 x 0.6 x critical_fraction
            - 100 x min(0.2, active_anomalies x 0.02)

clamped to 0-100.
"""

from typing import Sequence

import structlog

from tankwatch.models.prediction_models import (
    AnomalyReport,
    ConsumptionForecast,
    DeviceHealthPrediction,
    FleetHealthScore,
    HealthStatus,
)
from tankwatch.stats import clamp, mean, round_half_up

logger = structlog.get_logger(__name__)

AT_RISK_PENALTY = 0.3
CRITICAL_PENALTY = 0.6
ANOMALY_PENALTY_EACH = 0.02
ANOMALY_PENALTY_MAX = 0.2
REFILL_DUE_DAYS = 7


def calculate_fleet_health(
    device_predictions: Sequence[DeviceHealthPrediction],
    forecasts: Sequence[ConsumptionForecast],
    anomaly_reports: Sequence[AnomalyReport],
) -> FleetHealthScore:
    """
    Fleet-wide health score.

    Args:
        device_predictions: One DeviceHealthPrediction per asset
        forecasts: Consumption forecasts (refills due this week)
        anomaly_reports: Anomaly reports (active anomaly count)

    Returns:
        FleetHealthScore; a perfect, empty score when there are no devices
    """
    total = len(device_predictions)
    if total == 0:
        return FleetHealthScore(overall_score=100)

    healthy = sum(1 for d in device_predictions if d.overall_health == HealthStatus.GOOD)
    at_risk = sum(1 for d in device_predictions if d.overall_health == HealthStatus.WARNING)
    critical = sum(1 for d in device_predictions if d.overall_health == HealthStatus.CRITICAL)

    battery_scores = [
        d.battery.health_score for d in device_predictions if d.battery.health_score > 0
    ]
    avg_battery = mean(battery_scores) if battery_scores else 100
    avg_reliability = 100 - mean([d.failure_probability for d in device_predictions])

    active_anomalies = sum(r.anomaly_count for r in anomaly_reports)
    refills_due = sum(
        1 for f in forecasts
        if f.days_remaining is not None and f.days_remaining <= REFILL_DUE_DAYS
    )

    score = (
        healthy / total * 100
        - at_risk / total * AT_RISK_PENALTY * 100
        - critical / total * CRITICAL_PENALTY * 100
        - min(ANOMALY_PENALTY_MAX, active_anomalies * ANOMALY_PENALTY_EACH) * 100
    )

    result = FleetHealthScore(
        overall_score=round_half_up(clamp(score, 0, 100)),
        devices_healthy=healthy,
        devices_at_risk=at_risk,
        devices_critical=critical,
        average_battery_health=round_half_up(avg_battery),
        average_data_reliability=round_half_up(avg_reliability),
        active_anomalies=active_anomalies,
        refills_due_this_week=refills_due,
    )

    logger.info(
        "Fleet health calculated",
        devices=total,
        overall_score=result.overall_score,
        critical=critical,
        active_anomalies=active_anomalies,
    )
    return result
