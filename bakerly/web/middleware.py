"""FastAPI middleware: request and tenant ids for structured logs."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Binds request_id and tenant_id to the log context and echoes X-Request-ID."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        tenant_id = request.headers.get("x-tenant-id")
        if tenant_id:
            structlog.contextvars.bind_contextvars(tenant_id=tenant_id)
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        return response
