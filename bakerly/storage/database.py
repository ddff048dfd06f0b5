"""Async engine and schema bootstrap for the tenant profile, resource and ad tables."""

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel

from bakerly.config.settings import get_settings


@lru_cache
def get_engine() -> AsyncEngine:
    """Return the process-wide engine for DATABASE_URL."""
    settings = get_settings()
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create any missing tables. Existing tables are left as they are."""
    import bakerly.models.database  # noqa: F401  registers tables on the metadata

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
