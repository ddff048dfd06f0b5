"""Plan, feature-gate, quota and ad-unlock API routes."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Literal

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pydantic import BaseModel

from bakerly.billing.bonus import is_unlocked
from bakerly.billing.plans import Unlimited
from bakerly.billing.service import EntitlementService
from bakerly.types import BonusCategory, FeatureKey, ResourceType
from bakerly.web.dependencies import get_service, get_tenant_id

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["plan"])


class UpgradeRequest(BaseModel):
    tier: Literal["basic", "premium"]


def _limits_payload(limits: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for key, value in asdict(limits).items():
        if isinstance(value, bool):
            payload[key] = value
        elif isinstance(getattr(limits, key), Unlimited):
            payload[key] = None  # unlimited
        else:
            payload[key] = value["n"]
    return payload


@router.get("/plan")
async def get_plan(
    tenant_id: str = Depends(get_tenant_id),
    service: EntitlementService = Depends(get_service),
) -> dict[str, Any]:
    ctx = await service.resolve_context(tenant_id)
    ledger = await service.bonus_ledger(tenant_id)
    expires_at = ctx.subscription.subscription_expires_at
    now = service.now()
    return {
        "tenant_id": tenant_id,
        "stored_tier": ctx.stored_tier,
        "effective_tier": ctx.effective_tier,
        "subscription_expires_at": expires_at.isoformat() if expires_at else None,
        "subscription_status": ctx.subscription.subscription_status,
        "degraded": ctx.degraded,
        "limits": _limits_payload(ctx.limits),
        "ads": {
            "watched_today": ledger.watched_today,
            "unlocked": {c.value: is_unlocked(ledger, c, now) for c in BonusCategory},
        },
    }


@router.get("/features/{feature_key}")
async def get_feature(
    feature_key: FeatureKey,
    tenant_id: str = Depends(get_tenant_id),
    service: EntitlementService = Depends(get_service),
) -> dict[str, Any]:
    allowed = await service.can_use_feature(tenant_id, feature_key)
    return {"feature": feature_key, "allowed": allowed}


@router.get("/quota/{resource_type}")
async def get_quota(
    resource_type: ResourceType,
    tenant_id: str = Depends(get_tenant_id),
    service: EntitlementService = Depends(get_service),
) -> dict[str, Any]:
    can_create = await service.can_create_more(tenant_id, resource_type)
    usage = await service.usage(tenant_id, resource_type)
    return {
        "resource_type": resource_type,
        "can_create_more": can_create,
        "current": usage.current,
        "limit": usage.limit,
        "remaining": usage.remaining,
        "near_limit": usage.near_limit,
    }


@router.post("/ads/{category}/watch", status_code=204)
async def watch_ad(
    category: BonusCategory,
    tenant_id: str = Depends(get_tenant_id),
    service: EntitlementService = Depends(get_service),
) -> Response:
    await service.watch_ad(tenant_id, category)
    return Response(status_code=204)


@router.post("/upgrade", status_code=204)
async def upgrade(
    body: UpgradeRequest,
    tenant_id: str = Depends(get_tenant_id),
    service: EntitlementService = Depends(get_service),
) -> Response:
    await service.upgrade(tenant_id, body.tier)
    return Response(status_code=204)
