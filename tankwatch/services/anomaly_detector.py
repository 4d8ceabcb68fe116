"""
Anomaly Detector

Statistical anomaly detection over one tank's reading history.

Detection runs on daily-equivalent consumption rates, one per
non-refill interval shorter than 48h:

    rate = consumed / hours * 24

Detectors, in discovery order:
1. unusual_rate       z-score of an interval rate vs the asset's own mean
2. sudden_drop        single-interval drop > 15 points within 24h
3. sensor_drift       raw vs calibrated divergence growing over the history
4. night_consumption  22:00-06:00 rates comparable to daytime rates

Leak / theft / sensor-malfunction probabilities and the overall risk level
are derived from the counts of each anomaly type.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

import structlog

from tankwatch.models.prediction_models import (
    Anomaly,
    AnomalyReport,
    AnomalyType,
    ConsumptionDelta,
    RiskLevel,
    Severity,
    SignalType,
)
from tankwatch.models.readings import Reading, ReadingInput, prepare_readings
from tankwatch.services.signal_classifier import classify_history
from tankwatch.settings import AnomalySettings, EngineSettings
from tankwatch.stats import mean, standard_deviation, z_score

logger = structlog.get_logger(__name__)

RECOMMENDATIONS = {
    AnomalyType.UNUSUAL_RATE: "Investigate for potential leak or unauthorized usage",
    AnomalyType.SUDDEN_DROP: "Check for large withdrawal, theft, or meter malfunction",
    AnomalyType.SENSOR_DRIFT: "Sensor calibration may be required",
    AnomalyType.NIGHT_CONSUMPTION: "Verify if after-hours operations are expected",
}


@dataclass(frozen=True)
class IntervalRate:
    """Daily-equivalent consumption rate of one interval, dated by its newer reading"""
    timestamp: datetime
    rate: float


def _anomaly_id(prefix: str, asset_id: str, timestamp: Optional[datetime] = None) -> str:
    if timestamp is None:
        return f"{prefix}-{asset_id}"
    return f"{prefix}-{asset_id}-{timestamp.isoformat()}"


def interval_rates(
    deltas: Sequence[ConsumptionDelta],
    max_interval_hours: float = 48.0,
) -> List[IntervalRate]:
    """Rates of every non-refill interval with 0 < hours < max_interval_hours."""
    rates = []
    for d in deltas:
        if d.signal == SignalType.REFILL:
            continue
        hours = d.hours
        if 0 < hours < max_interval_hours:
            rates.append(IntervalRate(timestamp=d.timestamp, rate=d.consumed / hours * 24))
    return rates


# ═══════════════════════════════════════════════════════════════════════════════
# DETECTORS
# ═══════════════════════════════════════════════════════════════════════════════


def detect_unusual_rates(
    rates: Sequence[IntervalRate],
    asset_id: str,
    location_name: str,
    settings: AnomalySettings,
) -> List[Anomaly]:
    values = [r.rate for r in rates]
    mu = mean(values)
    sigma = standard_deviation(values)

    anomalies = []
    for entry in rates:
        z = z_score(entry.rate, mu, sigma)
        if z <= settings.z_score_threshold:
            continue
        anomalies.append(
            Anomaly(
                id=_anomaly_id("unusual", asset_id, entry.timestamp),
                asset_id=asset_id,
                location_name=location_name,
                type=AnomalyType.UNUSUAL_RATE,
                timestamp=entry.timestamp,
                severity=Severity.HIGH if z > settings.z_score_high else Severity.MEDIUM,
                description=(
                    f"Consumption rate {entry.rate:.1f}% per day is "
                    f"{z:.1f} standard deviations above normal"
                ),
                recommendation=RECOMMENDATIONS[AnomalyType.UNUSUAL_RATE],
                value=entry.rate,
                expected_value=mu,
            )
        )
    return anomalies


def detect_sudden_drops(
    deltas: Sequence[ConsumptionDelta],
    asset_id: str,
    location_name: str,
    settings: AnomalySettings,
) -> List[Anomaly]:
    anomalies = []
    for d in deltas:
        hours = d.hours
        if d.delta <= settings.sudden_drop_pct or hours >= settings.sudden_drop_window_hours:
            continue
        anomalies.append(
            Anomaly(
                id=_anomaly_id("sudden-drop", asset_id, d.timestamp),
                asset_id=asset_id,
                location_name=location_name,
                type=AnomalyType.SUDDEN_DROP,
                timestamp=d.timestamp,
                severity=(
                    Severity.HIGH if d.delta > settings.sudden_drop_high_pct else Severity.MEDIUM
                ),
                description=f"Sudden {d.delta:.1f}% drop in {hours:.1f} hours",
                recommendation=RECOMMENDATIONS[AnomalyType.SUDDEN_DROP],
                value=d.delta,
            )
        )
    return anomalies


def detect_sensor_drift(
    readings: Sequence[Reading],
    asset_id: str,
    location_name: str,
    settings: AnomalySettings,
) -> Optional[Anomaly]:
    eligible = [r for r in readings if r.has_drift_data]
    if len(eligible) < settings.drift_min_readings:
        return None

    recent_avg = mean([r.sensor_drift for r in eligible[-settings.drift_window:]])
    older_avg = mean([r.sensor_drift for r in eligible[:settings.drift_window]])
    increase = recent_avg - older_avg
    if increase <= settings.drift_increase:
        return None

    return Anomaly(
        id=_anomaly_id("sensor-drift", asset_id),
        asset_id=asset_id,
        location_name=location_name,
        type=AnomalyType.SENSOR_DRIFT,
        timestamp=eligible[-1].timestamp,
        severity=Severity.HIGH if increase > settings.drift_increase_high else Severity.MEDIUM,
        description=f"Sensor drift increased by {increase:.1f} percentage points",
        recommendation=RECOMMENDATIONS[AnomalyType.SENSOR_DRIFT],
        value=recent_avg,
        expected_value=older_avg,
    )


def is_night_hour(hour: int, settings: AnomalySettings) -> bool:
    if settings.night_start_hour > settings.night_end_hour:
        return hour >= settings.night_start_hour or hour < settings.night_end_hour
    return settings.night_start_hour <= hour < settings.night_end_hour


def detect_night_consumption(
    rates: Sequence[IntervalRate],
    asset_id: str,
    location_name: str,
    settings: AnomalySettings,
) -> Optional[Anomaly]:
    night = [r for r in rates if is_night_hour(r.timestamp.hour, settings)]
    if not night:
        return None
    day = [r for r in rates if not is_night_hour(r.timestamp.hour, settings)]

    night_avg = mean([r.rate for r in night])
    day_avg = mean([r.rate for r in day]) if day else mean([r.rate for r in rates])

    if night_avg <= day_avg * settings.night_ratio or night_avg <= settings.night_min_rate:
        return None

    if day_avg > 0:
        description = (
            f"Night-time consumption ({night_avg:.1f}%/day) is "
            f"{night_avg / day_avg * 100:.0f}% of daytime rate"
        )
    else:
        description = f"Night-time consumption ({night_avg:.1f}%/day) with no daytime consumption"

    return Anomaly(
        id=_anomaly_id("night-consumption", asset_id),
        asset_id=asset_id,
        location_name=location_name,
        type=AnomalyType.NIGHT_CONSUMPTION,
        timestamp=night[-1].timestamp,
        severity=Severity.HIGH if night_avg > day_avg else Severity.MEDIUM,
        description=description,
        recommendation=RECOMMENDATIONS[AnomalyType.NIGHT_CONSUMPTION],
        value=night_avg,
        expected_value=0.0,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# RISK
# ═══════════════════════════════════════════════════════════════════════════════


def risk_level(anomalies: Sequence[Anomaly], settings: Optional[AnomalySettings] = None) -> RiskLevel:
    settings = settings or AnomalySettings()
    high = sum(1 for a in anomalies if a.severity == Severity.HIGH)
    medium = sum(1 for a in anomalies if a.severity == Severity.MEDIUM)

    if high > 0 or medium >= settings.high_risk_medium_count:
        return RiskLevel.HIGH
    if medium > 0 or len(anomalies) >= settings.medium_risk_total_count:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def detect_anomalies(
    readings: Iterable[ReadingInput],
    asset_id: str,
    location_name: str,
    settings: Optional[EngineSettings] = None,
) -> AnomalyReport:
    """
    Detect consumption and sensor anomalies for one tank.

    Args:
        readings: Reading history (any order)
        asset_id: Monitored asset identifier
        location_name: Display name of the tank location
        settings: Engine settings (defaults if None)

    Returns:
        AnomalyReport with at most ``max_anomalies`` anomalies, in discovery
        order. Probabilities and risk level reflect every anomaly found.
    """
    settings = settings or EngineSettings()
    anomaly_settings = settings.anomaly

    ordered = prepare_readings(readings)
    if len(ordered) < anomaly_settings.min_readings:
        logger.debug(
            "Not enough readings for anomaly detection",
            asset_id=asset_id,
            readings=len(ordered),
        )
        return AnomalyReport(asset_id=asset_id)

    deltas = classify_history(ordered, settings.signal)
    rates = interval_rates(deltas, anomaly_settings.max_interval_hours)

    anomalies: List[Anomaly] = []
    anomalies.extend(detect_unusual_rates(rates, asset_id, location_name, anomaly_settings))
    anomalies.extend(detect_sudden_drops(deltas, asset_id, location_name, anomaly_settings))
    for single in (
        detect_sensor_drift(ordered, asset_id, location_name, anomaly_settings),
        detect_night_consumption(rates, asset_id, location_name, anomaly_settings),
    ):
        if single is not None:
            anomalies.append(single)

    counts = {kind: 0 for kind in AnomalyType}
    for anomaly in anomalies:
        counts[anomaly.type] += 1

    s = anomaly_settings
    leak = (
        counts[AnomalyType.UNUSUAL_RATE] * s.leak_per_unusual_rate
        + counts[AnomalyType.SUDDEN_DROP] * s.leak_per_sudden_drop
    )
    theft = (
        counts[AnomalyType.SUDDEN_DROP] * s.theft_per_sudden_drop
        + counts[AnomalyType.NIGHT_CONSUMPTION] * s.theft_per_night
    )
    malfunction = (
        counts[AnomalyType.SENSOR_DRIFT] * s.malfunction_per_drift
        + counts[AnomalyType.UNUSUAL_RATE] * s.malfunction_per_unusual_rate
    )

    report = AnomalyReport(
        asset_id=asset_id,
        anomalies=anomalies[: s.max_anomalies],
        leak_probability=min(100, leak),
        theft_probability=min(100, theft),
        sensor_malfunction_probability=min(100, malfunction),
        overall_risk_level=risk_level(anomalies, s),
    )

    if anomalies:
        logger.warning(
            "Anomalies detected",
            asset_id=asset_id,
            found=len(anomalies),
            reported=report.anomaly_count,
            risk=report.overall_risk_level.value,
        )
    return report
