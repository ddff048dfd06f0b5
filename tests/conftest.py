"""Shared test fixtures."""

from __future__ import annotations

import os
from datetime import UTC, datetime

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel

import bakerly.models.database  # noqa: F401  registers tables on the metadata
from bakerly.billing.service import EntitlementService
from bakerly.config.settings import Settings
from bakerly.realtime.bus import ChangeBus
from bakerly.storage.memory import InMemoryStore

# Route tests must never reach for PostgreSQL
os.environ.setdefault("USE_DATABASE", "false")

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def bus() -> ChangeBus:
    return ChangeBus()


@pytest.fixture()
def service(store: InMemoryStore, settings: Settings, bus: ChangeBus) -> EntitlementService:
    """Entitlement service over an in-memory store with the clock frozen at NOW."""
    return EntitlementService(store, settings=settings, bus=bus, clock=lambda: NOW)


@pytest.fixture()
async def async_engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()
