"""Tenant record API routes with quota and blocked-record enforcement."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends
from fastapi.responses import Response

from bakerly.billing.service import EntitlementService
from bakerly.types import ResourceType
from bakerly.web.dependencies import get_service, get_tenant_id

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/records", tags=["records"])


@router.get("/{resource_type}")
async def list_records(
    resource_type: ResourceType,
    tenant_id: str = Depends(get_tenant_id),
    service: EntitlementService = Depends(get_service),
) -> dict[str, Any]:
    result = await service.list_partitioned(tenant_id, resource_type)
    return {
        "resource_type": resource_type,
        "allowed": result.allowed,
        "blocked": result.blocked,
    }


@router.post("/{resource_type}", status_code=201)
async def create_record(
    resource_type: ResourceType,
    body: dict[str, Any] = Body(...),
    tenant_id: str = Depends(get_tenant_id),
    service: EntitlementService = Depends(get_service),
) -> dict[str, Any]:
    return await service.create_record(tenant_id, resource_type, body)


@router.patch("/{resource_type}/{record_id}")
async def update_record(
    resource_type: ResourceType,
    record_id: str,
    body: dict[str, Any] = Body(...),
    tenant_id: str = Depends(get_tenant_id),
    service: EntitlementService = Depends(get_service),
) -> dict[str, Any]:
    return await service.update_record(tenant_id, resource_type, record_id, body)


@router.delete("/{resource_type}/{record_id}")
async def delete_record(
    resource_type: ResourceType,
    record_id: str,
    tenant_id: str = Depends(get_tenant_id),
    service: EntitlementService = Depends(get_service),
) -> Response:
    await service.delete_record(tenant_id, resource_type, record_id)
    return Response(status_code=204)
