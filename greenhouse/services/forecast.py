"""
Forecast Generator - builds and stores the forward-looking prediction curves

One call produces a single batch from one seed reading:
- a "now" point that starts the curve at the seed
- short term: 12 hours at 15-minute resolution
- medium term: 30 days at 1-hour resolution

The batch replaces every stored forecast point dated after the generation
time; past-dated points are kept as history.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable
from zoneinfo import ZoneInfo

from greenhouse.core.config import settings
from greenhouse.models.records import ForecastPoint, Reading
from greenhouse.services.patterns import compute_pattern_point
from greenhouse.services.storage import StorageError

logger = logging.getLogger(__name__)


class ForecastGenerationError(Exception):
    """The forecast batch could not be persisted."""


@dataclass(frozen=True)
class ForecastSeed:
    """Starting values of a forecast batch."""

    temperature: float
    air_humidity: float
    soil_humidity: float
    co2_level: float

    @classmethod
    def from_reading(cls, reading: Reading) -> "ForecastSeed":
        return cls(
            temperature=reading.temperature,
            air_humidity=reading.air_humidity,
            soil_humidity=reading.soil_humidity,
            co2_level=reading.co2_level,
        )


DEFAULT_SEED = ForecastSeed(temperature=23.5, air_humidity=55.0, soil_humidity=48.0, co2_level=800.0)


@dataclass(frozen=True)
class ForecastHorizon:
    """One resolution band of a forecast batch."""

    name: str
    steps: int
    step: timedelta
    random_factor: float
    trend_impact: float


# Minimal jitter/trend so the curve joins the seed smoothly
NOW_HORIZON = ForecastHorizon("now", steps=1, step=timedelta(0), random_factor=0.1, trend_impact=0.1)
SHORT_TERM = ForecastHorizon("short", steps=12 * 4, step=timedelta(minutes=15), random_factor=0.2, trend_impact=1.5)
MEDIUM_TERM = ForecastHorizon("medium", steps=30 * 24, step=timedelta(hours=1), random_factor=0.5, trend_impact=3.0)

DEFAULT_HORIZONS = (SHORT_TERM, MEDIUM_TERM)


class ForecastGenerator:
    """Generates forecast batches and swaps them into storage."""

    def __init__(
        self,
        store,
        *,
        horizons: tuple[ForecastHorizon, ...] = DEFAULT_HORIZONS,
        tz: ZoneInfo | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.horizons = horizons
        self._tz = tz or settings.zone
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(self._tz))
        # One regeneration at a time per process; the store serializes across processes
        self._replace_lock = asyncio.Lock()

    @property
    def batch_size(self) -> int:
        return NOW_HORIZON.steps + sum(h.steps for h in self.horizons)

    async def generate(self) -> int:
        """Generate from the latest reading (defaults if there is none)."""
        seed = await self.resolve_seed()
        return await self._replace_future(seed)

    async def generate_with_defaults(self) -> int:
        """Generate from the fixed default seed."""
        return await self._replace_future(DEFAULT_SEED)

    async def generate_with_fallback(self) -> int:
        """Try the latest-reading seed first, then the defaults path."""
        try:
            return await self.generate()
        except ForecastGenerationError as e:
            logger.warning(f"Forecast generation failed ({e}), retrying with default seed")
            return await self.generate_with_defaults()

    async def resolve_seed(self) -> ForecastSeed:
        """Seed from the most recent reading; never fails."""
        try:
            latest = await self.store.get_latest_reading()
        except StorageError as e:
            logger.warning(f"Could not load latest reading, using default seed: {e}")
            return DEFAULT_SEED

        if latest is None:
            logger.warning("No sensor data found, using default seed")
            return DEFAULT_SEED

        return ForecastSeed.from_reading(latest)

    def build_batch(self, seed: ForecastSeed, origin: datetime) -> list[ForecastPoint]:
        """All forecast points for one seed, starting at `origin`."""
        origin_utc = origin.astimezone(timezone.utc)
        batch = [self._point(seed, origin_utc, timedelta(0), NOW_HORIZON)]

        # Each band picks up where the previous one stopped
        elapsed = timedelta(0)
        for horizon in self.horizons:
            for _ in range(horizon.steps):
                elapsed += horizon.step
                batch.append(self._point(seed, origin_utc, elapsed, horizon))

        return batch

    def _point(
        self,
        seed: ForecastSeed,
        origin_utc: datetime,
        elapsed: timedelta,
        horizon: ForecastHorizon,
    ) -> ForecastPoint:
        # Absolute arithmetic in UTC, wall clock in the reference zone
        timestamp = (origin_utc + elapsed).astimezone(self._tz)
        values = compute_pattern_point(
            seed.temperature,
            seed.air_humidity,
            seed.soil_humidity,
            timestamp,
            hour_offset=elapsed.total_seconds() / 3600,
            random_factor=horizon.random_factor,
            trend_impact=horizon.trend_impact,
            base_co2_level=seed.co2_level,
            rng=self._rng,
        )
        return ForecastPoint(
            predicted_temp=values.temperature,
            predicted_air_humidity=values.air_humidity,
            predicted_soil_humidity=values.soil_humidity,
            predicted_co2_level=values.co2_level,
            predicted_light_lux=values.light_lux,
            timestamp=timestamp,
        )

    async def _replace_future(self, seed: ForecastSeed) -> int:
        async with self._replace_lock:
            now = self._clock()
            origin = now.replace(second=0, microsecond=0)
            batch = self.build_batch(seed, origin)

            try:
                count = await self.store.replace_forecasts_after(now, batch)
            except StorageError as e:
                logger.error(f"Failed to store forecast batch: {e}")
                raise ForecastGenerationError(f"Failed to store forecast batch: {e}") from e

        logger.info(
            f"🔮 Stored {count} forecast points from seed "
            f"{seed.temperature}°C / {seed.air_humidity}% / {seed.soil_humidity}%"
        )
        return count
