"""Tenant context for entitlement decisions."""

from __future__ import annotations

from dataclasses import dataclass

from bakerly.billing.plans import PlanLimits, limits_for
from bakerly.billing.subscription import SubscriptionRecord
from bakerly.types import PlanTier


@dataclass(frozen=True, slots=True)
class TenantContext:
    """Immutable plan context carried through each request."""

    tenant_id: str
    stored_tier: PlanTier
    effective_tier: PlanTier
    limits: PlanLimits
    subscription: SubscriptionRecord
    degraded: bool = False  # subscription could not be read; running as free

    @classmethod
    def build(
        cls,
        tenant_id: str,
        subscription: SubscriptionRecord,
        effective_tier: PlanTier,
        degraded: bool = False,
    ) -> TenantContext:
        return cls(
            tenant_id=tenant_id,
            stored_tier=subscription.plan,
            effective_tier=effective_tier,
            limits=limits_for(effective_tier),
            subscription=subscription,
            degraded=degraded,
        )
