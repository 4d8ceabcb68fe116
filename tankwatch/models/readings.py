"""
Tank Reading Models
===================

A Reading is one report from a cellular tank monitor: the fill level
(calibrated and raw), whether the device was online, and the optional
device telemetry (battery voltage, internal temperature).

Readings are validated on construction (pydantic v2). The ingestion layer
hands over histories that may be unsorted or contain duplicate timestamps;
``prepare_readings`` is the single place that turns such a history into a
validated, chronologically sorted, stable-ordered copy.
"""

import math
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

import pandas as pd
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from tankwatch.exceptions import InvalidReadingError


# ============================================
# Reading model
# ============================================


class Reading(BaseModel):
    """One tank-monitor report. Immutable."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp: datetime = Field(
        ...,
        validation_alias=AliasChoices("timestamp", "reading_timestamp", "reading_at"),
    )
    calibrated_fill_pct: float = Field(
        ...,
        ge=0,
        le=100,
        allow_inf_nan=False,
        validation_alias=AliasChoices(
            "calibrated_fill_pct", "calibrated_fill_percentage", "level_percent"
        ),
    )
    raw_fill_pct: Optional[float] = Field(
        default=None,
        ge=0,
        le=100,
        allow_inf_nan=False,
        validation_alias=AliasChoices(
            "raw_fill_pct", "raw_fill_percentage", "raw_percent"
        ),
    )
    device_online: bool = Field(
        default=True,
        validation_alias=AliasChoices("device_online", "is_online"),
    )
    battery_voltage: Optional[float] = Field(
        default=None,
        ge=0,
        allow_inf_nan=False,
        validation_alias=AliasChoices(
            "battery_voltage", "device_battery_voltage"
        ),
    )
    temperature: Optional[float] = Field(
        default=None,
        allow_inf_nan=False,
        validation_alias=AliasChoices(
            "temperature", "device_temperature", "temperature_c"
        ),
    )

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        # pandas.Timestamp is a datetime subclass; keep plain datetimes only
        if type(v) is not datetime:
            v = datetime(
                v.year, v.month, v.day, v.hour, v.minute, v.second,
                v.microsecond, tzinfo=v.tzinfo,
            )
        return v

    @property
    def has_drift_data(self) -> bool:
        """Both raw and calibrated levels are known."""
        return self.raw_fill_pct is not None

    @property
    def sensor_drift(self) -> Optional[float]:
        """Absolute raw vs calibrated difference, percentage points."""
        if self.raw_fill_pct is None:
            return None
        return abs(self.raw_fill_pct - self.calibrated_fill_pct)

    @property
    def is_timezone_aware(self) -> bool:
        return self.timestamp.tzinfo is not None and self.timestamp.utcoffset() is not None


ReadingInput = Union[Reading, Mapping[str, Any]]


# ============================================
# Parsing / preparation
# ============================================


def _describe_validation_error(exc: ValidationError) -> Tuple[str, Optional[str]]:
    first = exc.errors()[0] if exc.errors() else {}
    loc = first.get("loc") or ()
    field = str(loc[0]) if loc else None
    message = first.get("msg", str(exc))
    return message, field


def parse_reading(record: ReadingInput, index: Optional[int] = None) -> Reading:
    """
    Validate one reading.

    Args:
        record: A Reading (returned as-is) or a mapping of reading fields
        index: Position in the caller's sequence, for error reporting

    Returns:
        Validated Reading

    Raises:
        InvalidReadingError: The record fails domain validation
    """
    if isinstance(record, Reading):
        return record
    if not isinstance(record, Mapping):
        raise InvalidReadingError(
            f"Reading must be a Reading or a mapping, got {type(record).__name__}",
            index=index,
        )
    try:
        return Reading.model_validate(dict(record))
    except ValidationError as exc:
        message, field = _describe_validation_error(exc)
        where = f" at index {index}" if index is not None else ""
        raise InvalidReadingError(
            f"Invalid reading{where}: {field}: {message}",
            index=index,
            field=field,
        ) from exc


def parse_readings(records: Iterable[ReadingInput]) -> List[Reading]:
    """Validate every record, preserving the caller's order."""
    return [parse_reading(record, index=i) for i, record in enumerate(records)]


class ReadingHistory(tuple):
    """Validated, sorted readings as returned by ``prepare_readings``."""

    __slots__ = ()


def prepare_readings(records: Iterable[ReadingInput]) -> ReadingHistory:
    """
    Validated, chronologically sorted copy of a reading history.

    The sort is stable, so readings sharing a timestamp keep the caller's
    relative order. The caller's sequence is never modified. A
    ReadingHistory is already prepared and is returned as-is, so services
    can hand one history to each other without re-sorting it.

    Raises:
        InvalidReadingError: A record is invalid, or the history mixes
            timezone-aware and naive timestamps
    """
    if isinstance(records, ReadingHistory):
        return records

    readings = parse_readings(records)

    if readings:
        aware = {r.is_timezone_aware for r in readings}
        if len(aware) > 1:
            first_mismatch = next(
                i for i, r in enumerate(readings)
                if r.is_timezone_aware != readings[0].is_timezone_aware
            )
            raise InvalidReadingError(
                "Reading history mixes timezone-aware and naive timestamps",
                index=first_mismatch,
                field="timestamp",
            )

    return ReadingHistory(sorted(readings, key=lambda r: r.timestamp))


# ============================================
# pandas adapter
# ============================================


def _clean_value(value: Any) -> Any:
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        # numpy scalar -> python scalar
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def readings_from_frame(
    frame: pd.DataFrame,
    column_map: Optional[Mapping[str, str]] = None,
) -> List[Reading]:
    """
    Convert a DataFrame of readings into validated Readings.

    Args:
        frame: One row per reading. Column names may be the Reading field
            names or the ingestion record names (reading_timestamp,
            calibrated_fill_percentage, ...)
        column_map: Optional {frame column: Reading field} renames

    Returns:
        Readings in row order (use ``prepare_readings`` to sort)
    """
    if column_map:
        frame = frame.rename(columns=dict(column_map))

    records = [
        {key: _clean_value(value) for key, value in row.items()}
        for row in frame.to_dict(orient="records")
    ]

    return parse_readings(records)


