"""
Greenhouse Telemetry - Configuration
All settings loaded from environment variables (or a local .env file)
"""

from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./greenhouse.db"
    auto_create_tables: bool = True

    # Every timestamp is synthesized, stored and queried in this zone
    timezone: str = "Europe/Copenhagen"

    # Logging
    log_level: str = "INFO"

    # Live synthesizer
    synthesizer_enabled: bool = True
    synthesizer_interval_seconds: float = 30.0
    synthesizer_temp_min: float = 18.0
    synthesizer_temp_max: float = 30.0
    synthesizer_humidity_min: float = 45.0
    synthesizer_humidity_max: float = 70.0

    # Query limits
    history_default_limit: int = 100
    prediction_default_limit: int = 5000

    @field_validator("synthesizer_interval_seconds")
    @classmethod
    def _positive_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("synthesizer_interval_seconds must be positive")
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @model_validator(mode="after")
    def _ordered_bounds(self) -> "Settings":
        if self.synthesizer_temp_min > self.synthesizer_temp_max:
            raise ValueError("synthesizer_temp_min must not exceed synthesizer_temp_max")
        if self.synthesizer_humidity_min > self.synthesizer_humidity_max:
            raise ValueError("synthesizer_humidity_min must not exceed synthesizer_humidity_max")
        return self

    @property
    def zone(self) -> ZoneInfo:
        """Reference timezone as a tzinfo object."""
        return ZoneInfo(self.timezone)

    class Config:
        env_file = ".env"  # Fallback for local development
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
