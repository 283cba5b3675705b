"""
Pytest configuration and fixtures for Greenhouse Telemetry tests.
"""

import os
import random
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["SYNTHESIZER_ENABLED"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"

from greenhouse.models.records import Reading  # noqa: E402
from greenhouse.services.storage import StorageError  # noqa: E402

ZONE = ZoneInfo("Europe/Copenhagen")


class FakeStore:
    """In-memory stand-in for TelemetryStore with failure injection."""

    def __init__(self):
        self.readings = []
        self.forecasts = []
        self.fail_reads = False
        self.fail_writes = False
        self.insert_calls = 0
        self._next_id = 1

    def _check(self, failing: bool):
        if failing:
            raise StorageError("database is down")

    def _with_id(self, record):
        record = replace(record, id=self._next_id)
        self._next_id += 1
        return record

    @staticmethod
    def _in_range(timestamp, time_range):
        if time_range is None:
            return True
        if time_range.start is not None and timestamp < time_range.start:
            return False
        if time_range.end is not None and timestamp >= time_range.end:
            return False
        return True

    async def get_latest_reading(self):
        self._check(self.fail_reads)
        if not self.readings:
            return None
        return max(self.readings, key=lambda r: (r.timestamp, r.id))

    async def insert_reading(self, reading):
        self.insert_calls += 1
        self._check(self.fail_writes)
        stored = self._with_id(reading)
        self.readings.append(stored)
        return stored.id

    async def insert_readings_batch(self, readings):
        self._check(self.fail_writes)
        for reading in readings:
            self.readings.append(self._with_id(reading))
        return len(readings)

    async def query_readings(self, time_range=None, limit=None):
        self._check(self.fail_reads)
        rows = sorted(
            (r for r in self.readings if self._in_range(r.timestamp, time_range)),
            key=lambda r: (r.timestamp, r.id),
        )
        return rows[-limit:] if limit else rows

    async def count_readings(self):
        return len(self.readings)

    async def clear_readings(self):
        self._check(self.fail_writes)
        deleted = len(self.readings)
        self.readings = []
        return deleted

    async def delete_forecasts_after(self, cutoff):
        self._check(self.fail_writes)
        kept = [p for p in self.forecasts if p.timestamp <= cutoff]
        deleted = len(self.forecasts) - len(kept)
        self.forecasts = kept
        return deleted

    async def insert_forecast_batch(self, points):
        self._check(self.fail_writes)
        self.forecasts.extend(self._with_id(p) for p in points)
        return len(points)

    async def replace_forecasts_after(self, cutoff, points):
        self._check(self.fail_writes)
        self.forecasts = [p for p in self.forecasts if p.timestamp <= cutoff]
        self.forecasts.extend(self._with_id(p) for p in points)
        return len(points)

    async def query_forecasts(self, time_range=None, limit=None):
        self._check(self.fail_reads)
        rows = sorted(
            (p for p in self.forecasts if self._in_range(p.timestamp, time_range)),
            key=lambda p: (p.timestamp, p.id),
        )
        return rows[:limit] if limit else rows

    async def clear_forecasts(self):
        self._check(self.fail_writes)
        deleted = len(self.forecasts)
        self.forecasts = []
        return deleted


@pytest.fixture
def fake_store():
    """Empty in-memory store."""
    return FakeStore()


@pytest.fixture
def rng():
    """Seeded random source for reproducible synthesis."""
    return random.Random(1234)


@pytest.fixture
def zone():
    return ZONE


@pytest.fixture
def fixed_now():
    """A summer morning in the reference timezone."""
    return datetime(2026, 6, 15, 10, 7, 42, tzinfo=ZONE)


@pytest.fixture
def sample_reading(fixed_now):
    """Reading as the synthesizer would emit it."""
    return Reading(
        temperature=24.2,
        air_humidity=58.4,
        soil_humidity=51.0,
        co2_level=463.0,
        light_lux=9876.5,
        timestamp=fixed_now,
    )
