"""
Greenhouse Telemetry - API Server

Provides endpoints for:
- Current and historical sensor readings (downsampled for display)
- Forecast curves and their regeneration
- Simulated telemetry (single tick, demo history backfill)
- PNG charts of history and forecasts
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI, Query
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from greenhouse.core.config import settings
from greenhouse.core.database import init_db
from greenhouse.core.logging import configure_logging
from greenhouse.models.records import Reading, TimeRange, classify_status
from greenhouse.services.charts import generate_forecast_chart, generate_history_chart
from greenhouse.services.downsample import downsample
from greenhouse.services.forecast import ForecastGenerationError, ForecastGenerator
from greenhouse.services.storage import StorageError, TelemetryStore
from greenhouse.services.synthesizer import LiveTelemetrySynthesizer, backfill_history

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# Range presets accepted by ?range=
RANGE_HOURS = {
    "1h": 1,
    "6h": 6,
    "12h": 12,
    "24h": 24,
    "3d": 72,
    "7d": 168,
    "14d": 336,
    "30d": 720,
}
DEFAULT_RANGE = "24h"


def parse_range(value: str | None) -> tuple[str, int]:
    """Resolve a range preset to hours; unknown presets mean 24h."""
    if value in RANGE_HOURS:
        return value, RANGE_HOURS[value]
    return DEFAULT_RANGE, RANGE_HOURS[DEFAULT_RANGE]


# ==================== SERVICES ====================

store = TelemetryStore()
synthesizer = LiveTelemetrySynthesizer(store)
forecast_generator = ForecastGenerator(store)


def get_store() -> TelemetryStore:
    return store


def get_synthesizer() -> LiveTelemetrySynthesizer:
    return synthesizer


def get_forecast_generator() -> ForecastGenerator:
    return forecast_generator


def _now() -> datetime:
    return datetime.now(settings.zone)


# ==================== SCHEMAS ====================

class ReadingIn(BaseModel):
    """Reading posted by a sensor or a test client."""

    temperature: float = Field(..., ge=-40, le=80)
    air_humidity: float = Field(..., ge=0, le=100)
    soil_humidity: float = Field(..., ge=0, le=100)
    co2_level: float = Field(..., ge=0)
    light_lux: float = Field(..., ge=0)
    timestamp: datetime | None = None


# ==================== APP ====================

@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging()
    if settings.auto_create_tables:
        await init_db()
    if settings.synthesizer_enabled:
        synthesizer.start()
    try:
        yield
    finally:
        await synthesizer.shutdown()


app = FastAPI(
    title="Greenhouse Telemetry API",
    description="Sensor readings, synthetic telemetry and forecasts for the greenhouse dashboard",
    version=API_VERSION,
    lifespan=lifespan,
)


# ==================== SENSORS ====================

@app.get("/api/sensors")
async def get_current_reading(store: TelemetryStore = Depends(get_store)):
    """Most recent reading."""
    reading = await store.get_latest_reading()
    if reading is None:
        return JSONResponse({"error": "No sensor data available"}, status_code=404)
    return reading.to_dict()


@app.get("/api/sensors/history")
async def get_history(
    range_: str = Query(DEFAULT_RANGE, alias="range"),
    limit: int | None = Query(None, ge=0),
    store: TelemetryStore = Depends(get_store),
):
    """Readings of the requested window, downsampled to `limit` points."""
    range_name, hours = parse_range(range_)
    limit = settings.history_default_limit if limit is None else limit

    readings = await store.query_readings(TimeRange.last_hours(hours, _now()))
    data = downsample(readings, limit)

    return {
        "data": [r.to_dict() for r in data],
        "range": range_name,
        "hours": hours,
        "count": len(data),
        "total": len(readings),
    }


@app.get("/api/sensors/history/chart")
async def get_history_chart(
    range_: str = Query(DEFAULT_RANGE, alias="range"),
    store: TelemetryStore = Depends(get_store),
):
    """History chart as PNG."""
    range_name, hours = parse_range(range_)
    readings = await store.query_readings(TimeRange.last_hours(hours, _now()))
    buf = generate_history_chart(readings, f"Greenhouse - last {range_name}", settings.zone)
    return StreamingResponse(buf, media_type="image/png")


@app.post("/api/sensors", status_code=201)
async def create_reading(payload: ReadingIn, store: TelemetryStore = Depends(get_store)):
    """Store a reading posted by a client."""
    timestamp = payload.timestamp or _now()
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=settings.zone)

    reading = Reading(
        temperature=payload.temperature,
        air_humidity=payload.air_humidity,
        soil_humidity=payload.soil_humidity,
        co2_level=payload.co2_level,
        light_lux=payload.light_lux,
        status=classify_status(payload.temperature, payload.air_humidity),
        timestamp=timestamp.astimezone(settings.zone),
    )
    reading_id = await store.insert_reading(reading)
    return {**reading.to_dict(), "id": reading_id}


@app.post("/api/sensors/generate")
async def generate_reading(synth: LiveTelemetrySynthesizer = Depends(get_synthesizer)):
    """Trigger one extra synthesizer tick."""
    reading = await synth.generate_once()
    if reading is None:
        return JSONResponse(
            {"success": False, "message": "Tick skipped, previous reading still being stored"},
            status_code=409,
        )
    return {"success": True, "reading": reading.to_dict()}


@app.post("/api/sensors/generate-demo")
async def generate_demo_data(
    days: float = Query(30, gt=0, le=90),
    store: TelemetryStore = Depends(get_store),
):
    """Replace all readings with synthetic history."""
    count = await backfill_history(store, days=days, interval_seconds=settings.synthesizer_interval_seconds)
    return {
        "success": True,
        "message": f"Successfully generated {count} demo records spanning {days:g} days",
        "count": count,
    }


@app.delete("/api/sensors")
async def clear_readings(store: TelemetryStore = Depends(get_store)):
    deleted = await store.clear_readings()
    return {"success": True, "deleted": deleted}


# ==================== PREDICTIONS ====================

@app.get("/api/predictions")
async def get_predictions(
    range_: str = Query(DEFAULT_RANGE, alias="range"),
    limit: int | None = Query(None, ge=1),
    store: TelemetryStore = Depends(get_store),
    generator: ForecastGenerator = Depends(get_forecast_generator),
):
    """Future forecast points; a batch is generated on demand when none exist."""
    range_name, hours = parse_range(range_)
    limit = settings.prediction_default_limit if limit is None else limit
    window = TimeRange.next_hours(hours, _now())
    source = "database"

    points = await store.query_forecasts(window, limit)
    if not points:
        logger.info("No forecast in database, generating a new batch")
        try:
            await generator.generate_with_fallback()
        except ForecastGenerationError as e:
            return JSONResponse({"error": f"Forecast unavailable: {e}", "retryable": True}, status_code=503)
        # The new batch starts at the current minute
        points = await store.query_forecasts(TimeRange.next_hours(hours, _now().replace(second=0, microsecond=0)), limit)
        source = "database (newly generated)"

    return {
        "data": [p.to_dict() for p in points],
        "range": range_name,
        "hours": hours,
        "count": len(points),
        "_source": source,
    }


@app.get("/api/predictions/chart")
async def get_prediction_chart(
    range_: str = Query("30d", alias="range"),
    store: TelemetryStore = Depends(get_store),
):
    """Forecast chart as PNG."""
    range_name, hours = parse_range(range_)
    points = await store.query_forecasts(TimeRange.next_hours(hours, _now()), settings.prediction_default_limit)
    buf = generate_forecast_chart(points, f"Greenhouse forecast - next {range_name}", settings.zone)
    return StreamingResponse(buf, media_type="image/png")


@app.post("/api/predictions/generate")
async def generate_predictions(generator: ForecastGenerator = Depends(get_forecast_generator)):
    """Regenerate the forecast from the latest reading (defaults as fallback)."""
    try:
        count = await generator.generate_with_fallback()
    except ForecastGenerationError as e:
        return JSONResponse(
            {"success": False, "error": f"Failed to generate predictions: {e}", "retryable": True},
            status_code=503,
        )

    return {
        "success": True,
        "message": f"Successfully generated {count} prediction records",
        "count": count,
    }


@app.delete("/api/predictions")
async def clear_predictions(store: TelemetryStore = Depends(get_store)):
    deleted = await store.clear_forecasts()
    return {"success": True, "deleted": deleted}


# ==================== ERRORS ====================

@app.exception_handler(StorageError)
async def storage_error_handler(_request, exc: StorageError):
    logger.error(f"Storage error: {exc}")
    return JSONResponse({"error": "Database unavailable", "retryable": True}, status_code=503)


# ==================== HEALTH CHECK ====================

@app.get("/health")
async def health_check(synth: LiveTelemetrySynthesizer = Depends(get_synthesizer)):
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": API_VERSION,
        "synthesizer_running": synth.running,
    }


@app.get("/")
async def root():
    """Root endpoint with the endpoint map."""
    return {
        "service": "Greenhouse Telemetry API",
        "version": API_VERSION,
        "timezone": settings.timezone,
        "endpoints": {
            "current": "/api/sensors",
            "history": "/api/sensors/history",
            "history_chart": "/api/sensors/history/chart",
            "generate_reading": "/api/sensors/generate",
            "generate_demo": "/api/sensors/generate-demo",
            "predictions": "/api/predictions",
            "prediction_chart": "/api/predictions/chart",
            "generate_predictions": "/api/predictions/generate",
            "health": "/health",
        }
    }


# ==================== MAIN ====================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
