"""
Greenhouse Telemetry - Database Configuration
Async SQLAlchemy (PostgreSQL via asyncpg in production, SQLite via aiosqlite locally)
"""

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from greenhouse.core.config import settings


def build_engine(database_url: str) -> AsyncEngine:
    """Async engine for `database_url`; pool checks only apply to server databases."""
    if make_url(database_url).get_backend_name() == "sqlite":
        return create_async_engine(database_url, echo=False)

    return create_async_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


engine = build_engine(settings.database_url)

# Sessions keep loaded rows usable after commit
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base shared by sensor_data and prediction_data."""


async def init_db(target: AsyncEngine = engine) -> None:
    """Create missing tables (alembic owns the schema in production)."""
    # Import models so they are registered on Base.metadata
    import greenhouse.models  # noqa: F401

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
