"""
Consumption Analytics Engine

Percentage-based consumption analytics for one monitored tank:

- Rolling average (pct/day) from intraday and cross-midnight consumption
- Previous 24h usage, in percentage points and liters
- Days until the critical level
- Consumption velocity and trend (second half vs first half of history)
- Refill pattern (last refill, mean interval, predicted next)
- Data reliability (uptime minus reporting-gap penalty)
- Efficiency against a baseline rate
- Weekly pattern (Sun..Sat)
- Rule-based alerts (unusual consumption, potential leak, connectivity)

The history is validated and sorted exactly once in
``compute_consumption_analytics``; the helpers below all expect an
already-sorted sequence and never re-sort it.

Example Usage:
    result = compute_consumption_analytics(
        readings,
        current_pct=64.0,
        capacity_liters=10000,
    )
    print(result.rolling_avg_pct_per_day, result.days_to_critical_level)
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

import structlog

from tankwatch.models.prediction_models import (
    AnalyticsResult,
    ConsumptionDelta,
    ConsumptionTrend,
    RefillEvent,
    RefillPattern,
    SignalType,
)
from tankwatch.models.readings import Reading, ReadingInput, prepare_readings
from tankwatch.services.signal_classifier import classify_history, refill_events_from_deltas
from tankwatch.settings import AnalyticsSettings, EngineSettings, SignalThresholds
from tankwatch.stats import clamp, mean

logger = structlog.get_logger(__name__)

DAYS_IN_WEEK = 7


# ═══════════════════════════════════════════════════════════════════════════════
# ROLLING AVERAGE
# ═══════════════════════════════════════════════════════════════════════════════


def daily_consumption_totals(deltas: Iterable[ConsumptionDelta]) -> Dict[date, float]:
    """
    Consumption per calendar day of the newer reading.

    Intraday decreases are summed per day; the pair spanning midnight
    (previous day's last reading -> this day's first reading) is attributed
    to the later day. Noise and refills contribute nothing.
    """
    totals: Dict[date, float] = defaultdict(float)
    for d in deltas:
        if d.signal == SignalType.CONSUMPTION:
            totals[d.timestamp.date()] += d.delta
    return dict(totals)


def rolling_average_from_deltas(deltas: Iterable[ConsumptionDelta]) -> float:
    totals = [total for total in daily_consumption_totals(deltas).values() if total > 0]
    if not totals:
        return 0.0
    return round(sum(totals) / len(totals), 2)


def rolling_average(
    readings: Sequence[Reading],
    thresholds: Optional[SignalThresholds] = None,
) -> float:
    """Mean percentage points consumed per day with detected consumption."""
    if len(readings) < 2:
        return 0.0
    return rolling_average_from_deltas(classify_history(readings, thresholds))


# ═══════════════════════════════════════════════════════════════════════════════
# PREVIOUS DAY / DAYS TO CRITICAL
# ═══════════════════════════════════════════════════════════════════════════════


def previous_day_usage(
    readings: Sequence[Reading],
    fallback_rate: float,
    now: datetime,
    thresholds: Optional[SignalThresholds] = None,
) -> float:
    """
    Percentage points consumed in the 24h window ending at ``now``.

    With fewer than 2 readings in the window the rolling average stands in
    as an estimate.
    """
    window_start = now - timedelta(hours=24)
    window = [r for r in readings if window_start <= r.timestamp <= now]

    if len(window) < 2:
        logger.debug(
            "Previous-day window too sparse, using rolling average",
            readings_in_window=len(window),
            fallback_rate=fallback_rate,
        )
        return fallback_rate

    used = sum(d.consumed for d in classify_history(window, thresholds))
    return round(used, 2)


def pct_to_liters(pct: float, capacity_liters: Optional[float]) -> Optional[float]:
    if capacity_liters is None or capacity_liters <= 0:
        return None
    return round((pct / 100) * capacity_liters, 2)


def days_to_critical(
    current_pct: float,
    avg_daily_consumption: float,
    critical_threshold: float = 20.0,
) -> Optional[float]:
    """Days until the critical level; None when not consuming or already there."""
    if avg_daily_consumption <= 0 or current_pct <= critical_threshold:
        return None
    return round((current_pct - critical_threshold) / avg_daily_consumption, 1)


# ═══════════════════════════════════════════════════════════════════════════════
# VELOCITY / TREND
# ═══════════════════════════════════════════════════════════════════════════════


def consumption_velocity(
    readings: Sequence[Reading],
    thresholds: Optional[SignalThresholds] = None,
    min_readings: int = 4,
) -> float:
    """
    Change in consumption rate: rolling average of the second half of the
    history minus that of the first half. Positive = accelerating.
    """
    if len(readings) < max(2, min_readings):
        return 0.0
    midpoint = len(readings) // 2
    first_half = rolling_average(readings[:midpoint], thresholds)
    second_half = rolling_average(readings[midpoint:], thresholds)
    return round(second_half - first_half, 2)


def consumption_trend(velocity: float, stable_band: float = 0.1) -> ConsumptionTrend:
    if abs(velocity) < stable_band:
        return ConsumptionTrend.STABLE
    if velocity > 0:
        return ConsumptionTrend.INCREASING
    return ConsumptionTrend.DECREASING


# ═══════════════════════════════════════════════════════════════════════════════
# REFILLS
# ═══════════════════════════════════════════════════════════════════════════════


def analyze_refill_pattern(refill_events: Sequence[RefillEvent]) -> RefillPattern:
    """Last refill, mean days between refills, and the predicted next one."""
    if not refill_events:
        return RefillPattern()

    last_refill = refill_events[-1].timestamp
    if len(refill_events) < 2:
        return RefillPattern(
            last_refill_date=last_refill,
            refill_events=list(refill_events),
        )

    gaps = [
        (refill_events[i].timestamp - refill_events[i - 1].timestamp).total_seconds() / 86400
        for i in range(1, len(refill_events))
    ]
    frequency = mean(gaps)

    return RefillPattern(
        last_refill_date=last_refill,
        refill_frequency_days=round(frequency, 1),
        predicted_next_refill=last_refill + timedelta(days=frequency),
        refill_events=list(refill_events),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# SCORES
# ═══════════════════════════════════════════════════════════════════════════════


def data_reliability_score(
    readings: Sequence[Reading],
    settings: Optional[AnalyticsSettings] = None,
) -> float:
    """
    Uptime percentage minus a penalty for reporting gaps.

    Hourly reporting is expected: each gap above ``gap_threshold_hours``
    costs ``min(max_gap_penalty, gap_hours - 1)`` points.
    """
    settings = settings or AnalyticsSettings()
    if not readings:
        return 0.0

    online = sum(1 for r in readings if r.device_online)
    uptime = online / len(readings) * 100

    gap_penalty = 0.0
    for i in range(1, len(readings)):
        hours = (readings[i].timestamp - readings[i - 1].timestamp).total_seconds() / 3600
        if hours > settings.gap_threshold_hours:
            gap_penalty += min(settings.max_gap_penalty, hours - 1)

    return round(max(0.0, uptime - gap_penalty), 1)


def efficiency_score(device_rate: float, baseline_rate: float = 2.0) -> float:
    """
    Baseline rate relative to the device rate, as a percentage (0-200).
    100 = consuming at baseline, above 100 = more frugal than baseline.
    """
    if device_rate <= 0:
        return 100.0
    return round(clamp((baseline_rate / device_rate) * 100, 0, 200), 1)


# ═══════════════════════════════════════════════════════════════════════════════
# PATTERNS
# ═══════════════════════════════════════════════════════════════════════════════


def weekday_index(moment: datetime) -> int:
    """Sunday=0 ... Saturday=6"""
    return (moment.weekday() + 1) % DAYS_IN_WEEK


def weekly_pattern_from_deltas(
    deltas: Sequence[ConsumptionDelta],
    reading_count: int,
    min_readings: int = 7,
) -> List[float]:
    """Average consumption-delta magnitude per day of week (Sun..Sat)."""
    if reading_count < min_readings:
        return [0.0] * DAYS_IN_WEEK

    totals = [0.0] * DAYS_IN_WEEK
    counts = [0] * DAYS_IN_WEEK
    for d in deltas:
        if d.signal != SignalType.CONSUMPTION:
            continue
        day = weekday_index(d.timestamp)
        totals[day] += d.delta
        counts[day] += 1

    return [
        round(totals[i] / counts[i], 2) if counts[i] else 0.0
        for i in range(DAYS_IN_WEEK)
    ]


def weekly_pattern(
    readings: Sequence[Reading],
    thresholds: Optional[SignalThresholds] = None,
    min_readings: int = 7,
) -> List[float]:
    return weekly_pattern_from_deltas(
        classify_history(readings, thresholds), len(readings), min_readings
    )


def average_daily_consumption(deltas: Sequence[ConsumptionDelta]) -> float:
    """Total consumption spread over every calendar day spanned, idle days included."""
    if not deltas:
        return 0.0
    first_day = deltas[0].older.timestamp.date()
    last_day = deltas[-1].newer.timestamp.date()
    span_days = (last_day - first_day).days + 1
    return round(sum(d.consumed for d in deltas) / span_days, 2)


# ═══════════════════════════════════════════════════════════════════════════════
# ALERTS
# ═══════════════════════════════════════════════════════════════════════════════


def generate_alerts(
    rolling_avg: float,
    reliability_score: float,
    readings: Sequence[Reading],
    baseline_rate: float,
    settings: Optional[AnalyticsSettings] = None,
    thresholds: Optional[SignalThresholds] = None,
) -> Dict[str, bool]:
    """
    Rule-based alerts.

    - unusual consumption: rolling average above baseline x 1.5
    - potential leak: unusual AND the trailing 72h (with enough samples)
      averages above baseline x 2
    - connectivity: reliability score below 80
    """
    settings = settings or AnalyticsSettings()

    unusual = rolling_avg > baseline_rate * settings.unusual_multiplier

    recent_high = False
    if readings:
        window_start = readings[-1].timestamp - timedelta(hours=settings.leak_window_hours)
        recent = [r for r in readings if r.timestamp >= window_start]
        recent_high = (
            len(recent) >= settings.leak_min_samples
            and rolling_average(recent, thresholds) > baseline_rate * settings.leak_multiplier
        )

    return {
        "unusual_consumption_alert": unusual,
        "potential_leak_alert": unusual and recent_high,
        "device_connectivity_alert": reliability_score < settings.connectivity_alert_below,
    }


# ═══════════════════════════════════════════════════════════════════════════════
# COMPOSITE ENTRY POINT
# ═══════════════════════════════════════════════════════════════════════════════


def compute_consumption_analytics(
    readings: Iterable[ReadingInput],
    current_pct: float,
    critical_threshold: Optional[float] = None,
    baseline_rate: Optional[float] = None,
    capacity_liters: Optional[float] = None,
    settings: Optional[EngineSettings] = None,
    now: Optional[datetime] = None,
) -> AnalyticsResult:
    """
    Full consumption analytics for one tank.

    Args:
        readings: Reading history for one asset (any order)
        current_pct: Current calibrated fill level (0-100)
        critical_threshold: Critical level, default 20%
        baseline_rate: Reference consumption rate, default 2%/day
        capacity_liters: Tank capacity, enables liters conversion
        settings: Engine settings (defaults if None)
        now: End of the previous-day window; defaults to the latest reading

    Returns:
        AnalyticsResult

    Raises:
        InvalidReadingError: A reading fails domain validation
    """
    settings = settings or EngineSettings()
    analytics = settings.analytics
    thresholds = settings.signal
    if critical_threshold is None:
        critical_threshold = analytics.critical_threshold
    if baseline_rate is None:
        baseline_rate = analytics.baseline_rate

    ordered = prepare_readings(readings)
    deltas = classify_history(ordered, thresholds)

    rolling_avg = rolling_average_from_deltas(deltas)

    if now is None:
        now = ordered[-1].timestamp if ordered else datetime.now()
    prev_day_pct = previous_day_usage(ordered, rolling_avg, now, thresholds)

    velocity = consumption_velocity(ordered, thresholds, analytics.velocity_min_readings)
    refills = analyze_refill_pattern(refill_events_from_deltas(deltas))
    reliability = data_reliability_score(ordered, analytics)
    alerts = generate_alerts(
        rolling_avg, reliability, ordered, baseline_rate, analytics, thresholds
    )

    result = AnalyticsResult(
        rolling_avg_pct_per_day=rolling_avg,
        prev_day_pct_used=prev_day_pct,
        prev_day_liters_used=pct_to_liters(prev_day_pct, capacity_liters),
        days_to_critical_level=days_to_critical(current_pct, rolling_avg, critical_threshold),
        consumption_velocity=velocity,
        efficiency_score=efficiency_score(rolling_avg, baseline_rate),
        data_reliability_score=reliability,
        last_refill_date=refills.last_refill_date,
        refill_frequency_days=refills.refill_frequency_days,
        predicted_next_refill=refills.predicted_next_refill,
        daily_avg_consumption=average_daily_consumption(deltas),
        weekly_pattern=weekly_pattern_from_deltas(
            deltas, len(ordered), analytics.weekly_min_readings
        ),
        consumption_trend=consumption_trend(velocity, analytics.trend_stable_band),
        refill_events=refills.refill_events,
        **alerts,
    )

    logger.debug(
        "Consumption analytics computed",
        readings=len(ordered),
        rolling_avg=rolling_avg,
        days_to_critical=result.days_to_critical_level,
        refills=len(result.refill_events),
        alerts=result.has_alerts,
    )
    return result
