"""
Signal Classifier

Turns a pair of consecutive readings into one of noise / consumption /
refill. Every other component builds on this primitive; refills are
excluded from all consumption figures, which keeps rolling averages robust
to deliveries.

    delta = older.pct - newer.pct
    delta  >  noise_threshold   -> consumption (magnitude delta)
    -delta >= refill_threshold  -> refill
    otherwise                   -> noise (ignored)
"""

from typing import List, Optional, Sequence

import structlog

from tankwatch.models.prediction_models import ConsumptionDelta, RefillEvent, SignalType
from tankwatch.models.readings import Reading
from tankwatch.settings import SignalThresholds

logger = structlog.get_logger(__name__)


def classify_change(
    older: Reading,
    newer: Reading,
    thresholds: Optional[SignalThresholds] = None,
) -> ConsumptionDelta:
    """
    Classify the change between two chronologically adjacent readings.

    Args:
        older: Earlier reading
        newer: Later reading
        thresholds: Noise / refill thresholds (defaults if None)

    Returns:
        ConsumptionDelta tagged with its SignalType
    """
    thresholds = thresholds or SignalThresholds()
    delta = older.calibrated_fill_pct - newer.calibrated_fill_pct

    if delta > thresholds.noise_threshold:
        signal = SignalType.CONSUMPTION
    elif -delta >= thresholds.refill_threshold:
        signal = SignalType.REFILL
    else:
        signal = SignalType.NOISE

    return ConsumptionDelta(older=older, newer=newer, delta=delta, signal=signal)


def classify_history(
    readings: Sequence[Reading],
    thresholds: Optional[SignalThresholds] = None,
) -> List[ConsumptionDelta]:
    """Classify every adjacent pair of an already-sorted history."""
    thresholds = thresholds or SignalThresholds()
    return [
        classify_change(readings[i - 1], readings[i], thresholds)
        for i in range(1, len(readings))
    ]


def refill_events_from_deltas(deltas: Sequence[ConsumptionDelta]) -> List[RefillEvent]:
    return [
        RefillEvent(timestamp=d.timestamp, percentage_increase=d.increase)
        for d in deltas
        if d.signal == SignalType.REFILL
    ]


def detect_refill_events(
    readings: Sequence[Reading],
    thresholds: Optional[SignalThresholds] = None,
) -> List[RefillEvent]:
    """Refill events of an already-sorted history, oldest first."""
    events = refill_events_from_deltas(classify_history(readings, thresholds))
    if events:
        logger.debug("Refill events detected", count=len(events))
    return events
