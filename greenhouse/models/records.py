"""
Typed records exchanged between the storage layer and the engine.

ORM rows never leave greenhouse.services.storage: they are converted into these
immutable records right after they are read.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Literal

Status = Literal["Normal", "Warning", "Alert"]

# Status thresholds
WARNING_TEMP = 27.0
WARNING_HUMIDITY = 65.0
ALERT_TEMP = 28.5
ALERT_HUMIDITY = 68.0


def classify_status(temperature: float, air_humidity: float) -> Status:
    """Map temperature / air humidity to a dashboard status."""
    if temperature > ALERT_TEMP or air_humidity > ALERT_HUMIDITY:
        return "Alert"
    if temperature > WARNING_TEMP or air_humidity > WARNING_HUMIDITY:
        return "Warning"
    return "Normal"


@dataclass(frozen=True, slots=True)
class Reading:
    """Point-in-time environmental snapshot."""

    temperature: float  # Celsius
    air_humidity: float  # %
    soil_humidity: float  # %
    co2_level: float  # ppm
    light_lux: float  # lux
    timestamp: datetime
    status: Status = "Normal"
    id: int | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ForecastPoint:
    """Future-dated synthetic reading produced by the forecast generator."""

    predicted_temp: float
    predicted_air_humidity: float
    predicted_soil_humidity: float
    timestamp: datetime
    predicted_co2_level: float | None = None
    predicted_light_lux: float | None = None
    id: int | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class TimeRange:
    """Half-open query window [start, end); either side may be unbounded."""

    start: datetime | None = None
    end: datetime | None = None

    @classmethod
    def last_hours(cls, hours: float, now: datetime) -> "TimeRange":
        return cls(start=now - timedelta(hours=hours), end=None)

    @classmethod
    def next_hours(cls, hours: float, now: datetime) -> "TimeRange":
        return cls(start=now, end=now + timedelta(hours=hours))
