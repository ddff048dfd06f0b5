"""FastAPI dependency injection and shared state."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from fastapi import Header, HTTPException, Request

from bakerly.billing.service import EntitlementService
from bakerly.realtime.bus import change_bus
from bakerly.storage.memory import InMemoryStore

if TYPE_CHECKING:
    from bakerly.config.settings import Settings
    from bakerly.storage.store import EntitlementStore

logger = structlog.get_logger(__name__)


def _create_store(settings: Settings) -> EntitlementStore:
    """Create the appropriate store based on settings."""
    if settings.use_database:
        from bakerly.storage.database import get_engine
        from bakerly.storage.repositories.db_store import DatabaseStore

        return DatabaseStore(get_engine())
    return InMemoryStore()


def build_service(settings: Settings) -> EntitlementService:
    store = _create_store(settings)
    logger.info("entitlement_service_built", store=type(store).__name__)
    return EntitlementService(store, settings=settings, bus=change_bus)


def get_service(request: Request) -> EntitlementService:
    return request.app.state.entitlements


async def get_tenant_id(x_tenant_id: str | None = Header(default=None)) -> str:
    """Resolve the tenant from the header set by the identity-provider gateway."""
    if not x_tenant_id:
        raise HTTPException(status_code=401, detail="Missing X-Tenant-ID header")
    return x_tenant_id
