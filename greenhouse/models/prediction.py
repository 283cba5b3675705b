"""
PredictionData model - one persisted forecast point
"""

from datetime import datetime, timezone
from sqlalchemy import Float, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from greenhouse.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PredictionData(Base):
    """Synthetic future-dated reading."""

    __tablename__ = "prediction_data"

    id: Mapped[int] = mapped_column(primary_key=True)

    predicted_temp: Mapped[float] = mapped_column(Float)
    predicted_air_humidity: Mapped[float] = mapped_column(Float)
    predicted_soil_humidity: Mapped[float] = mapped_column(Float)
    predicted_co2_level: Mapped[float | None] = mapped_column(Float, nullable=True)
    predicted_light_lux: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Timestamps (stored in UTC)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        index=True
    )

    def __repr__(self) -> str:
        return f"<PredictionData {self.timestamp} t={self.predicted_temp}C>"
