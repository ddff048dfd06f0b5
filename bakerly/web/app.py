"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from bakerly.config.logging import setup_logging
from bakerly.config.settings import get_settings
from bakerly.web.dependencies import build_service
from bakerly.web.errors import register_exception_handlers
from bakerly.web.middleware import RequestIDMiddleware
from bakerly.web.routes.plan import router as plan_router
from bakerly.web.routes.records import router as records_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    if settings.use_database:
        from bakerly.storage.database import init_db

        await init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_output=not settings.debug)

    app = FastAPI(
        title="Bakerly",
        description="Plan entitlements and quota enforcement for bakery management",
        version="0.1.0",
        lifespan=_lifespan,
    )
    app.state.entitlements = build_service(settings)

    app.add_middleware(RequestIDMiddleware)
    register_exception_handlers(app)

    @app.get("/api/health")
    async def health_check() -> dict[str, object]:
        return {"status": "healthy", "version": "0.1.0", "use_database": settings.use_database}

    app.include_router(plan_router)
    app.include_router(records_router)

    logger.info("app_created")
    return app
