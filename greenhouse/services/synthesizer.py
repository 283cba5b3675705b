"""
Live Telemetry Synthesizer - simulated sensor feed

Emits one reading per tick while no physical sensor drives the system.
Every reading continues from the previous one (random walk with clamping);
soil humidity and CO2 are derived from temperature / humidity, light follows
the day-factor curve of the wall clock.
"""

import asyncio
import logging
import math
import random
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable
from zoneinfo import ZoneInfo

from greenhouse.core.config import Settings, settings
from greenhouse.models.records import Reading, classify_status
from greenhouse.services.patterns import clamp, hour_of_day, light_level
from greenhouse.services.storage import StorageError

logger = logging.getLogger(__name__)

# Largest step between two consecutive ticks
MAX_TEMP_DELTA = 0.5
MAX_HUMIDITY_DELTA = 2.0

SOIL_HUMIDITY_RANGE = (30.0, 90.0)
SOIL_JITTER = 5.0
CO2_BASELINE = 400.0
CO2_PER_DEGREE = 15.0
CO2_JITTER = 25.0

BACKFILL_BATCH_SIZE = 1000

# Demo history offsets: day/night swing plus a weekend bump
DAILY_TEMP_SWING = 1.5
DAILY_HUMIDITY_SWING = 0.8
WEEKEND_TEMP_OFFSET = 0.5


@dataclass
class SynthesizerState:
    """Seed for the next tick plus the fixed bounds of the walk."""

    last_temperature: float = 23.0
    last_air_humidity: float = 55.0
    temp_min: float = 18.0
    temp_max: float = 30.0
    humidity_min: float = 45.0
    humidity_max: float = 70.0
    tick_interval: float = 30.0  # seconds

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "SynthesizerState":
        return cls(
            temp_min=config.synthesizer_temp_min,
            temp_max=config.synthesizer_temp_max,
            humidity_min=config.synthesizer_humidity_min,
            humidity_max=config.synthesizer_humidity_max,
            tick_interval=config.synthesizer_interval_seconds,
            last_temperature=clamp(23.0, config.synthesizer_temp_min, config.synthesizer_temp_max),
            last_air_humidity=clamp(55.0, config.synthesizer_humidity_min, config.synthesizer_humidity_max),
        )

    def advance(self, rng: random.Random) -> tuple[float, float]:
        """Take one bounded step and store it as the new seed."""
        temperature = round(self.last_temperature + rng.uniform(-MAX_TEMP_DELTA, MAX_TEMP_DELTA), 1)
        air_humidity = round(self.last_air_humidity + rng.uniform(-MAX_HUMIDITY_DELTA, MAX_HUMIDITY_DELTA), 1)

        self.last_temperature = clamp(temperature, self.temp_min, self.temp_max)
        self.last_air_humidity = clamp(air_humidity, self.humidity_min, self.humidity_max)
        return self.last_temperature, self.last_air_humidity


def synthesize_reading(state: SynthesizerState, timestamp: datetime, rng: random.Random) -> Reading:
    """Advance `state` by one tick and build the reading for `timestamp`."""
    temperature, air_humidity = state.advance(rng)

    soil_humidity = clamp(air_humidity * 0.9 + rng.uniform(-SOIL_JITTER, SOIL_JITTER), *SOIL_HUMIDITY_RANGE)
    co2_level = CO2_BASELINE + (temperature - 20) * CO2_PER_DEGREE + rng.uniform(-CO2_JITTER, CO2_JITTER)
    light_lux = light_level(hour_of_day(timestamp), rng)

    return Reading(
        temperature=temperature,
        air_humidity=air_humidity,
        soil_humidity=round(soil_humidity, 1),
        co2_level=round(co2_level, 1),
        light_lux=round(light_lux, 1),
        status=classify_status(temperature, air_humidity),
        timestamp=timestamp,
    )


class LiveTelemetrySynthesizer:
    """Periodic task persisting one synthesized reading per tick."""

    def __init__(
        self,
        store,
        state: SynthesizerState | None = None,
        *,
        tz: ZoneInfo | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.state = state or SynthesizerState.from_settings()
        self._tz = tz or settings.zone
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(self._tz))
        self._task: asyncio.Task | None = None
        self._ticks: set[asyncio.Task] = set()
        self._in_flight = False
        self.skipped_ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        """Start ticking now and then every tick_interval. Must run inside an event loop."""
        if self.running:
            return

        self._task = asyncio.create_task(self._run())
        logger.info(f"🌱 Telemetry synthesizer started (every {self.state.tick_interval}s)")

    def stop(self):
        """Stop scheduling ticks. State is kept so start() resumes from the last reading."""
        if not self.running:
            return

        self._task.cancel()
        self._task = None
        logger.info("🌱 Telemetry synthesizer stopped")

    async def shutdown(self):
        """Stop scheduling and wait for a tick that is still writing."""
        self.stop()
        pending = list(self._ticks)
        if pending:
            logger.info(f"Waiting for {len(pending)} pending synthesizer tick(s)")
            await asyncio.gather(*pending, return_exceptions=True)

    async def generate_once(self) -> Reading | None:
        """Run one extra tick; None if it was skipped or could not be stored."""
        return await self._tick()

    async def _run(self):
        while True:
            tick = asyncio.create_task(self._tick())
            self._ticks.add(tick)
            tick.add_done_callback(self._tick_done)
            await asyncio.sleep(self.state.tick_interval)

    def _tick_done(self, tick: asyncio.Task):
        self._ticks.discard(tick)
        if not tick.cancelled() and tick.exception() is not None:
            logger.error(f"Synthesizer tick crashed: {tick.exception()!r}")

    async def _tick(self) -> Reading | None:
        # Dropped, not queued, while the previous write is pending
        if self._in_flight:
            self.skipped_ticks += 1
            logger.debug("Previous tick still persisting, skipping")
            return None

        self._in_flight = True
        try:
            reading = synthesize_reading(self.state, self._clock(), self._rng)
            reading_id = await self.store.insert_reading(reading)
        except StorageError as e:
            logger.error(f"Failed to store synthesized reading: {e}")
            return None
        finally:
            self._in_flight = False

        return replace(reading, id=reading_id)


def daily_cycle(timestamp: datetime) -> tuple[float, float]:
    """Temperature / air humidity offsets for demo history at `timestamp`."""
    # Peaks at noon, bottoms out at midnight
    factor = math.sin((hour_of_day(timestamp) - 6) * math.pi / 12)
    weekend = WEEKEND_TEMP_OFFSET if timestamp.weekday() >= 5 else 0.0
    return factor * DAILY_TEMP_SWING + weekend, -factor * DAILY_HUMIDITY_SWING


def _with_daily_cycle(reading: Reading, state: SynthesizerState) -> Reading:
    # Applied on top of the walk; the walk itself stays unshifted
    temp_offset, humidity_offset = daily_cycle(reading.timestamp)
    temperature = round(clamp(reading.temperature + temp_offset, state.temp_min, state.temp_max), 1)
    air_humidity = round(clamp(reading.air_humidity + humidity_offset, state.humidity_min, state.humidity_max), 1)
    co2_level = reading.co2_level + (temperature - reading.temperature) * CO2_PER_DEGREE

    return replace(
        reading,
        temperature=temperature,
        air_humidity=air_humidity,
        co2_level=round(co2_level, 1),
        status=classify_status(temperature, air_humidity),
    )


async def backfill_history(
    store,
    days: float = 30,
    interval_seconds: float = 30,
    *,
    now: datetime | None = None,
    state: SynthesizerState | None = None,
    rng: random.Random | None = None,
    batch_size: int = BACKFILL_BATCH_SIZE,
) -> int:
    """
    Replace all readings with `days` of synthetic history ending at `now`.

    Uses its own state so a running synthesizer is not disturbed. Unlike live
    ticks, every reading carries the daily_cycle() offsets so history charts
    show day/night structure.
    """
    now = now or datetime.now(settings.zone)
    state = state or SynthesizerState.from_settings()
    rng = rng or random.Random()
    total = int(days * 24 * 3600 // interval_seconds)
    start = now - timedelta(days=days)

    await store.clear_readings()
    logger.info(f"Generating {total} demo readings spanning {days} days...")

    written = 0
    batch: list[Reading] = []
    for i in range(total):
        timestamp = start + timedelta(seconds=i * interval_seconds)
        batch.append(_with_daily_cycle(synthesize_reading(state, timestamp, rng), state))

        if len(batch) >= batch_size:
            written += await store.insert_readings_batch(batch)
            batch = []

    if batch:
        written += await store.insert_readings_batch(batch)

    logger.info(f"Generated {written} demo readings")
    return written
