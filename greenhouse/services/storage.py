"""
Telemetry Store - persistence for readings and forecast points

Timestamps are written in UTC and handed back in the reference timezone.
ORM rows are converted to Reading / ForecastPoint before leaving this module.
"""

import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import delete, func, insert, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from greenhouse.core.config import settings
from greenhouse.core.database import async_session_maker
from greenhouse.models.prediction import PredictionData
from greenhouse.models.records import ForecastPoint, Reading, TimeRange
from greenhouse.models.sensor_data import SensorData

logger = logging.getLogger(__name__)

# Advisory lock key guarding forecast replacement on PostgreSQL
FORECAST_REPLACE_LOCK_KEY = 0x6772_6E68  # "grnh"


def forecast_lock_statement(dialect_name: str):
    """
    Statement serializing concurrent forecast replacements, or None.

    Under READ COMMITTED a second DELETE does not see rows the first transaction
    has inserted but not yet committed, so both batches would survive. The
    transaction-scoped advisory lock is released on commit or rollback. SQLite
    takes a database write lock for the whole transaction and needs nothing.
    """
    if dialect_name == "postgresql":
        return text("SELECT pg_advisory_xact_lock(:key)").bindparams(key=FORECAST_REPLACE_LOCK_KEY)
    return None


class StorageError(Exception):
    """The database rejected a read or a write."""


class TelemetryStore:
    """Data access for the sensor_data and prediction_data tables."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession] = async_session_maker,
        tz: ZoneInfo | None = None,
    ):
        self._session_maker = session_maker
        self._tz = tz or settings.zone

    # ==================== CONVERSION ====================

    def _to_storage(self, value: datetime) -> datetime:
        """Normalize to UTC; naive values are taken to be in the reference zone."""
        if value.tzinfo is None:
            value = value.replace(tzinfo=self._tz)
        return value.astimezone(timezone.utc)

    def _from_storage(self, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        # SQLite drops the offset; everything is stored as UTC
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(self._tz)

    def _to_reading(self, row: SensorData) -> Reading:
        return Reading(
            id=row.id,
            temperature=row.temperature,
            air_humidity=row.air_humidity,
            soil_humidity=row.soil_humidity,
            co2_level=row.co2_level,
            light_lux=row.light_lux,
            status=row.status,
            timestamp=self._from_storage(row.timestamp),
        )

    def _to_forecast(self, row: PredictionData) -> ForecastPoint:
        return ForecastPoint(
            id=row.id,
            predicted_temp=row.predicted_temp,
            predicted_air_humidity=row.predicted_air_humidity,
            predicted_soil_humidity=row.predicted_soil_humidity,
            predicted_co2_level=row.predicted_co2_level,
            predicted_light_lux=row.predicted_light_lux,
            timestamp=self._from_storage(row.timestamp),
            created_at=self._from_storage(row.created_at),
        )

    def _reading_values(self, reading: Reading) -> dict:
        return {
            "temperature": reading.temperature,
            "air_humidity": reading.air_humidity,
            "soil_humidity": reading.soil_humidity,
            "co2_level": reading.co2_level,
            "light_lux": reading.light_lux,
            "status": reading.status,
            "timestamp": self._to_storage(reading.timestamp),
        }

    def _forecast_values(self, point: ForecastPoint, created_at: datetime) -> dict:
        return {
            "predicted_temp": point.predicted_temp,
            "predicted_air_humidity": point.predicted_air_humidity,
            "predicted_soil_humidity": point.predicted_soil_humidity,
            "predicted_co2_level": point.predicted_co2_level,
            "predicted_light_lux": point.predicted_light_lux,
            "timestamp": self._to_storage(point.timestamp),
            "created_at": created_at,
        }

    def _apply_range(self, stmt, column, time_range: TimeRange | None):
        if time_range is None:
            return stmt
        if time_range.start is not None:
            stmt = stmt.where(column >= self._to_storage(time_range.start))
        if time_range.end is not None:
            stmt = stmt.where(column < self._to_storage(time_range.end))
        return stmt

    # ==================== READINGS ====================

    async def get_latest_reading(self) -> Reading | None:
        """Most recent reading, or None when the table is empty."""
        async with self._session_maker() as session:
            try:
                result = await session.execute(
                    select(SensorData)
                    .order_by(SensorData.timestamp.desc(), SensorData.id.desc())
                    .limit(1)
                )
                row = result.scalar_one_or_none()
            except SQLAlchemyError as e:
                raise StorageError(f"Failed to fetch latest reading: {e}") from e

            return self._to_reading(row) if row else None

    async def insert_reading(self, reading: Reading) -> int:
        """Persist one reading and return its id."""
        async with self._session_maker() as session:
            row = SensorData(**self._reading_values(reading))
            try:
                session.add(row)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError(f"Failed to save reading: {e}") from e

            return row.id

    async def insert_readings_batch(self, readings: list[Reading]) -> int:
        """Bulk insert readings, returns the number written."""
        if not readings:
            return 0

        async with self._session_maker() as session:
            try:
                await session.execute(
                    insert(SensorData),
                    [self._reading_values(r) for r in readings],
                )
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError(f"Failed to save reading batch: {e}") from e

        return len(readings)

    async def query_readings(
        self, time_range: TimeRange | None = None, limit: int | None = None
    ) -> list[Reading]:
        """
        Readings inside `time_range`, oldest first.

        With a limit, the newest `limit` readings of the window are returned.
        """
        stmt = self._apply_range(select(SensorData), SensorData.timestamp, time_range)
        if limit is not None:
            stmt = stmt.order_by(SensorData.timestamp.desc(), SensorData.id.desc()).limit(limit)
        else:
            stmt = stmt.order_by(SensorData.timestamp, SensorData.id)

        async with self._session_maker() as session:
            try:
                result = await session.execute(stmt)
                rows = result.scalars().all()
            except SQLAlchemyError as e:
                raise StorageError(f"Failed to query readings: {e}") from e

        readings = [self._to_reading(row) for row in rows]
        if limit is not None:
            readings.reverse()
        return readings

    async def count_readings(self) -> int:
        async with self._session_maker() as session:
            try:
                result = await session.execute(select(func.count()).select_from(SensorData))
            except SQLAlchemyError as e:
                raise StorageError(f"Failed to count readings: {e}") from e
            return result.scalar_one()

    async def clear_readings(self) -> int:
        """Delete every reading."""
        return await self._delete(delete(SensorData), "readings")

    # ==================== FORECASTS ====================

    async def delete_forecasts_after(self, cutoff: datetime) -> int:
        """Delete forecast points dated strictly after `cutoff`."""
        stmt = delete(PredictionData).where(PredictionData.timestamp > self._to_storage(cutoff))
        return await self._delete(stmt, "future forecasts")

    async def insert_forecast_batch(self, points: list[ForecastPoint]) -> int:
        """Bulk insert forecast points, returns the number written."""
        if not points:
            return 0

        created_at = datetime.now(timezone.utc)
        async with self._session_maker() as session:
            try:
                await session.execute(
                    insert(PredictionData),
                    [self._forecast_values(p, created_at) for p in points],
                )
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError(f"Failed to save forecast batch: {e}") from e

        return len(points)

    async def replace_forecasts_after(self, cutoff: datetime, points: list[ForecastPoint]) -> int:
        """
        Swap the future: delete points after `cutoff` and insert `points`.

        Both statements run in one transaction, so readers see either the old
        or the new future and never a partial one. Concurrent replacements
        queue on forecast_lock_statement() and run one after the other.
        """
        created_at = datetime.now(timezone.utc)
        async with self._session_maker() as session:
            try:
                async with session.begin():
                    lock = forecast_lock_statement(session.get_bind().dialect.name)
                    if lock is not None:
                        await session.execute(lock)
                    result = await session.execute(
                        delete(PredictionData).where(
                            PredictionData.timestamp > self._to_storage(cutoff)
                        )
                    )
                    if points:
                        await session.execute(
                            insert(PredictionData),
                            [self._forecast_values(p, created_at) for p in points],
                        )
            except SQLAlchemyError as e:
                raise StorageError(f"Failed to replace forecasts: {e}") from e

        logger.debug(f"Replaced {result.rowcount} future forecast points with {len(points)}")
        return len(points)

    async def query_forecasts(
        self, time_range: TimeRange | None = None, limit: int | None = None
    ) -> list[ForecastPoint]:
        """Forecast points inside `time_range`, earliest first."""
        stmt = self._apply_range(select(PredictionData), PredictionData.timestamp, time_range)
        stmt = stmt.order_by(PredictionData.timestamp, PredictionData.id)
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._session_maker() as session:
            try:
                result = await session.execute(stmt)
                rows = result.scalars().all()
            except SQLAlchemyError as e:
                raise StorageError(f"Failed to query forecasts: {e}") from e

        return [self._to_forecast(row) for row in rows]

    async def clear_forecasts(self) -> int:
        """Delete every forecast point, past and future."""
        return await self._delete(delete(PredictionData), "forecasts")

    async def _delete(self, stmt, what: str) -> int:
        async with self._session_maker() as session:
            try:
                result = await session.execute(stmt)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError(f"Failed to delete {what}: {e}") from e

        logger.info(f"🗑️ Deleted {result.rowcount} {what}")
        return result.rowcount
