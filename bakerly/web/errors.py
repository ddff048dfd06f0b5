"""Map domain exceptions to HTTP responses."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bakerly.exceptions import EntitlementDenied, RecordNotFound, StoreIOError

logger = structlog.get_logger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(EntitlementDenied)
    async def entitlement_denied_handler(request: Request, exc: EntitlementDenied) -> JSONResponse:
        return JSONResponse(
            status_code=403,
            content={
                "detail": str(exc),
                "code": "upgrade_required",
                "resource_type": str(exc.resource_type),
                "record_id": exc.record_id,
            },
        )

    @app.exception_handler(RecordNotFound)
    async def record_not_found_handler(request: Request, exc: RecordNotFound) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(StoreIOError)
    async def store_error_handler(request: Request, exc: StoreIOError) -> JSONResponse:
        logger.error("store_io_error", path=request.url.path, error=str(exc))
        return JSONResponse(
            status_code=503,
            content={"detail": "Data store unavailable, try again", "code": "store_unavailable"},
        )
