"""
Consumption Forecaster

Predicts when a tank runs empty and when to order the next delivery.

The base rate is the rolling average over the full history. When the
trailing week of (hourly) samples is dense enough, the rate is refined by
splitting that window into equal sub-periods and weighting recent periods
more heavily:

    period:  newest  ->  oldest
    weight:  0.35  0.25  0.20  0.12  0.08

The confidence interval widens the rate by one standard deviation of the
historical per-interval rates (faster consumption gives the earlier date).
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

import structlog

from tankwatch.models.prediction_models import (
    ConfidenceInterval,
    ConsumptionForecast,
    SignalType,
    Urgency,
)
from tankwatch.models.readings import Reading, ReadingInput, prepare_readings
from tankwatch.services.consumption_analytics import rolling_average, weekly_pattern
from tankwatch.services.signal_classifier import classify_history
from tankwatch.settings import EngineSettings, ForecastSettings, SignalThresholds
from tankwatch.stats import standard_deviation

logger = structlog.get_logger(__name__)


def weighted_consumption_rate(
    readings: Sequence[Reading],
    base_rate: float,
    settings: Optional[ForecastSettings] = None,
    thresholds: Optional[SignalThresholds] = None,
) -> float:
    """
    Recency-weighted consumption rate over the trailing window.

    Falls back to ``base_rate`` when the window holds fewer than
    ``min_window_samples`` readings or a sub-period is too short to
    produce a rate.
    """
    settings = settings or ForecastSettings()
    recent = readings[-settings.window_samples:]
    if len(recent) < settings.min_window_samples:
        return base_rate

    weights = settings.period_weights
    periods = len(weights)
    rates: List[float] = []
    for i in range(periods):
        start = len(recent) * i // periods
        end = len(recent) * (i + 1) // periods
        period = recent[start:end]
        if len(period) < 2:
            return base_rate
        rates.append(rolling_average(period, thresholds))

    # rates are oldest first; weights are newest first
    return sum(rate * weight for rate, weight in zip(reversed(rates), weights))


def interval_rates(
    readings: Sequence[Reading],
    thresholds: Optional[SignalThresholds] = None,
) -> List[float]:
    """Daily-equivalent rate of every non-refill interval with a level drop."""
    rates = []
    for d in classify_history(readings, thresholds):
        if d.signal == SignalType.REFILL:
            continue
        days = d.hours / 24
        if days > 0 and d.delta > 0:
            rates.append(d.delta / days)
    return rates


def forecast_urgency(
    level: float,
    days_remaining: Optional[float],
    settings: Optional[ForecastSettings] = None,
) -> Urgency:
    settings = settings or ForecastSettings()

    def within(level_limit: float, days_limit: float) -> bool:
        return level <= level_limit or (
            days_remaining is not None and days_remaining <= days_limit
        )

    if within(settings.critical_level, settings.critical_days):
        return Urgency.CRITICAL
    if within(settings.warning_level, settings.warning_days):
        return Urgency.WARNING
    if within(settings.normal_level, settings.normal_days):
        return Urgency.NORMAL
    return Urgency.GOOD


def forecast_consumption(
    readings: Iterable[ReadingInput],
    asset_id: str,
    location_name: str,
    settings: Optional[EngineSettings] = None,
    now: Optional[datetime] = None,
) -> ConsumptionForecast:
    """
    Forecast depletion and the optimal reorder date for one tank.

    Args:
        readings: Reading history (any order)
        asset_id: Monitored asset identifier
        location_name: Display name of the tank location
        settings: Engine settings (defaults if None)
        now: Reference time for projected dates; defaults to the latest reading

    Returns:
        ConsumptionForecast
    """
    settings = settings or EngineSettings()
    forecast = settings.forecast
    thresholds = settings.signal

    ordered = prepare_readings(readings)

    if len(ordered) < 2:
        level = ordered[0].calibrated_fill_pct if ordered else 0.0
        logger.warning(
            "Not enough readings to forecast", asset_id=asset_id, readings=len(ordered)
        )
        return ConsumptionForecast(
            asset_id=asset_id,
            location_name=location_name,
            current_level=round(level, 1),
            avg_daily_consumption=0.0,
            weekday_pattern=[0.0] * 7,
            predicted_empty_date=None,
            confidence_interval=ConfidenceInterval(),
            optimal_refill_date=None,
            days_remaining=None,
            urgency=forecast_urgency(level, None, forecast),
            recommended_refill_level=forecast.safe_level,
        )

    if now is None:
        now = ordered[-1].timestamp

    current_level = ordered[-1].calibrated_fill_pct
    base_rate = rolling_average(ordered, thresholds)
    rate = weighted_consumption_rate(ordered, base_rate, forecast, thresholds)

    days_remaining = None
    predicted_empty = None
    interval = ConfidenceInterval()
    optimal_refill = None

    if rate > 0:
        days_remaining = max(0.0, current_level / rate)
        predicted_empty = now + timedelta(days=days_remaining)

        spread = standard_deviation(interval_rates(ordered, thresholds))
        # the floor never lifts low_rate above the rate itself, so the
        # interval stays ordered and contains the predicted empty date
        low_rate = min(rate, max(forecast.min_interval_rate, rate - spread))
        high_rate = rate + spread
        interval = ConfidenceInterval(
            low=now + timedelta(days=current_level / high_rate),
            high=now + timedelta(days=current_level / low_rate),
        )

        if current_level > forecast.safe_level:
            days_to_safe = (current_level - forecast.safe_level) / rate
            optimal_refill = now + timedelta(
                days=max(0.0, days_to_safe - forecast.delivery_buffer_days)
            )

    result = ConsumptionForecast(
        asset_id=asset_id,
        location_name=location_name,
        current_level=round(current_level, 1),
        avg_daily_consumption=round(rate, 2),
        weekday_pattern=weekly_pattern(
            ordered, thresholds, settings.analytics.weekly_min_readings
        ),
        predicted_empty_date=predicted_empty,
        confidence_interval=interval,
        optimal_refill_date=optimal_refill,
        days_remaining=round(days_remaining, 1) if days_remaining is not None else None,
        urgency=forecast_urgency(current_level, days_remaining, forecast),
        recommended_refill_level=forecast.safe_level,
    )

    logger.debug(
        "Consumption forecast computed",
        asset_id=asset_id,
        rate=result.avg_daily_consumption,
        days_remaining=result.days_remaining,
        urgency=result.urgency.value,
    )
    return result
