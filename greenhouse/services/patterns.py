"""
Pattern Model - shared periodic vocabulary for synthetic greenhouse data

A synthetic value is a seed value plus five superposed components:
day/night cycle, seasonal factor, multi-day weather pattern, slow pattern
transition and bounded random jitter. The light curve used by both the live
synthesizer and the forecast lives here as well.
"""

import math
import random
from dataclasses import dataclass
from datetime import datetime, timedelta

# Realistic greenhouse ranges (min, max)
TEMP_RANGE = (18.0, 30.0)
AIR_HUMIDITY_RANGE = (40.0, 80.0)
SOIL_HUMIDITY_RANGE = (35.0, 70.0)
CO2_RANGE = (400.0, 1500.0)

# Light curve
LIGHT_BASE = 2000.0  # lux at the edge of daylight
LIGHT_MAX = 10000.0  # lux at full daylight
LIGHT_VARIATION = 1000.0  # intraday sinusoidal swing
NIGHT_LIGHT_RANGE = (500.0, 1000.0)  # grow-light fallback
NIGHT_FLOOR = 0.1
SUNRISE = (6.0, 8.0)
SUNSET = (16.0, 18.0)


@dataclass(frozen=True)
class ChannelWeights:
    """Per-channel weight of each component."""

    day_night: float
    seasonal: float
    weather: float
    transition: float
    jitter: float


TEMP_WEIGHTS = ChannelWeights(day_night=2.5, seasonal=0.5, weather=0.8, transition=0.4, jitter=0.2)
# Humidity moves in anti-phase with temperature
AIR_HUMIDITY_WEIGHTS = ChannelWeights(day_night=-4.0, seasonal=1.0, weather=2.0, transition=-0.7, jitter=0.4)
# Soil reacts slowest
SOIL_HUMIDITY_WEIGHTS = ChannelWeights(day_night=-0.8, seasonal=0.7, weather=1.2, transition=-0.5, jitter=0.2)
CO2_WEIGHTS = ChannelWeights(day_night=-100.0, seasonal=20.0, weather=30.0, transition=15.0, jitter=15.0)


@dataclass(frozen=True)
class PatternValues:
    """One synthesized value set, rounded to one decimal."""

    temperature: float
    air_humidity: float
    soil_humidity: float
    co2_level: float
    light_lux: float


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def hour_of_day(timestamp: datetime) -> float:
    """Fractional hour of the wall clock (09:30 -> 9.5)."""
    return timestamp.hour + timestamp.minute / 60 + timestamp.second / 3600


def day_of_year(timestamp: datetime) -> int:
    return timestamp.timetuple().tm_yday


def day_night_cycle(hour: float) -> float:
    """Cosine peaking at 14:00 and bottoming out at 02:00."""
    return math.cos(((hour - 14) / 24) * 2 * math.pi)


def seasonal_factor(day: int) -> float:
    return math.sin((day / 365) * 2 * math.pi) * 0.3


def weather_pattern_cycle(hour_offset: float) -> float:
    """Three-day oscillation of synthetic weather fronts."""
    day_number = math.floor(hour_offset / 24)
    return math.sin((day_number / 3) * math.pi) * 0.7


def pattern_transition(hour_offset: float, trend_impact: float) -> float:
    return math.sin((hour_offset / 72) * math.pi) * trend_impact


def day_factor(hour: float) -> float:
    """
    How much "daytime" an hour is, 0..1.

    Linear ramp 0 -> 1 over sunrise, 1 through the day, 1 -> 0 over sunset,
    NIGHT_FLOOR otherwise.
    """
    if SUNRISE[0] <= hour < SUNRISE[1]:
        return (hour - SUNRISE[0]) / (SUNRISE[1] - SUNRISE[0])
    if SUNRISE[1] <= hour < SUNSET[0]:
        return 1.0
    if SUNSET[0] <= hour < SUNSET[1]:
        return 1.0 - (hour - SUNSET[0]) / (SUNSET[1] - SUNSET[0])
    return NIGHT_FLOOR


def light_level(hour: float, rng: random.Random | None = None) -> float:
    """Light in lux for a wall-clock hour."""
    rng = rng or random
    factor = day_factor(hour)
    if factor > NIGHT_FLOOR:
        return (
            LIGHT_BASE
            + (LIGHT_MAX - LIGHT_BASE) * factor
            + math.sin((hour / 24) * 2 * math.pi) * LIGHT_VARIATION
        )
    return rng.uniform(*NIGHT_LIGHT_RANGE)


def _channel(
    base: float,
    weights: ChannelWeights,
    day_night: float,
    seasonal: float,
    weather: float,
    transition: float,
    noise: float,
) -> float:
    return (
        base
        + day_night * weights.day_night
        + seasonal * weights.seasonal
        + weather * weights.weather
        + transition * weights.transition
        + noise * weights.jitter
    )


def compute_pattern_point(
    base_temp: float,
    base_air_humidity: float,
    base_soil_humidity: float,
    timestamp: datetime,
    hour_offset: float,
    random_factor: float = 0.5,
    trend_impact: float = 3.0,
    *,
    base_co2_level: float = 800.0,
    rng: random.Random | None = None,
) -> PatternValues:
    """
    Synthesize one value set `hour_offset` hours after the seed was taken.

    The diurnal and seasonal terms are measured relative to the origin
    (timestamp - hour_offset), so at hour_offset 0 with no jitter or trend the
    result equals the seed values. Every channel is clamped to its greenhouse
    range and rounded to one decimal.

    Because the diurnal term is relative, it does not swing around the seed:
    for a batch seeded at the 14:00 peak it only pulls temperature down
    (by up to 2 * 2.5 at 02:00), and for one seeded at 02:00 it only pushes up.
    """
    rng = rng or random
    origin = timestamp - timedelta(hours=hour_offset)

    hour = hour_of_day(timestamp)
    day_night = day_night_cycle(hour) - day_night_cycle(hour_of_day(origin))
    seasonal = seasonal_factor(day_of_year(timestamp)) - seasonal_factor(day_of_year(origin))
    weather = weather_pattern_cycle(hour_offset)
    transition = pattern_transition(hour_offset, trend_impact)

    def noise() -> float:
        return rng.uniform(-1, 1) * random_factor

    components = (day_night, seasonal, weather, transition)
    temperature = _channel(base_temp, TEMP_WEIGHTS, *components, noise())
    air_humidity = _channel(base_air_humidity, AIR_HUMIDITY_WEIGHTS, *components, noise())
    soil_humidity = _channel(base_soil_humidity, SOIL_HUMIDITY_WEIGHTS, *components, noise())
    co2_level = _channel(base_co2_level, CO2_WEIGHTS, *components, noise())

    return PatternValues(
        temperature=round(clamp(temperature, *TEMP_RANGE), 1),
        air_humidity=round(clamp(air_humidity, *AIR_HUMIDITY_RANGE), 1),
        soil_humidity=round(clamp(soil_humidity, *SOIL_HUMIDITY_RANGE), 1),
        co2_level=round(clamp(co2_level, *CO2_RANGE), 1),
        light_lux=round(max(0.0, light_level(hour, rng)), 1),
    )
