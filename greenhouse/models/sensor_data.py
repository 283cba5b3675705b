"""
SensorData model - one persisted live reading
"""

from datetime import datetime
from sqlalchemy import Float, String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from greenhouse.core.database import Base


class SensorData(Base):
    """Reading emitted by the synthesizer or posted by a sensor."""

    __tablename__ = "sensor_data"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Sensor data
    temperature: Mapped[float] = mapped_column(Float)  # Celsius
    air_humidity: Mapped[float] = mapped_column(Float)  # %
    soil_humidity: Mapped[float] = mapped_column(Float)  # %
    co2_level: Mapped[float] = mapped_column(Float)  # ppm
    light_lux: Mapped[float] = mapped_column(Float)  # lux

    # Normal / Warning / Alert
    status: Mapped[str] = mapped_column(String(10), default="Normal")

    # Timestamp (stored in UTC)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)

    def __repr__(self) -> str:
        return f"<SensorData {self.timestamp} t={self.temperature}C rh={self.air_humidity}%>"
