"""Entitlement service: plan checks and quota enforcement against a live store.

Wraps the pure rules in ``bakerly.billing`` with the store reads they need.
Subscription read failures fail closed to ``free``; a missing bonus ledger
reads as "no bonus active"; any other store failure propagates as
StoreIOError without retries.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from bakerly.billing import bonus, entitlements
from bakerly.billing.partition import Partition, ensure_mutable, partition
from bakerly.billing.plans import Unlimited, limit_for
from bakerly.billing.subscription import (
    FREE_SUBSCRIPTION,
    SubscriptionRecord,
    add_months,
    effective_tier,
)
from bakerly.billing.tenant_context import TenantContext
from bakerly.config.settings import Settings, get_settings
from bakerly.exceptions import (
    BonusLedgerMissing,
    EntitlementDenied,
    RecordNotFound,
    StoreIOError,
    SubscriptionDataUnavailable,
)
from bakerly.realtime.bus import ChangeBus, ChangeEvent
from bakerly.types import (
    BonusCategory,
    FeatureKey,
    PlanTier,
    Record,
    ResourceType,
    SubscriptionStatus,
)

if TYPE_CHECKING:
    from bakerly.billing.entitlements import UsageSnapshot
    from bakerly.storage.store import EntitlementStore

logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class EntitlementService:
    """Checks and enforces plan entitlements for one store."""

    def __init__(
        self,
        store: EntitlementStore,
        *,
        settings: Settings | None = None,
        bus: ChangeBus | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._settings = settings or get_settings()
        self._bus = bus
        self._clock = clock
        # Per tenant+resource locks serialising count-then-insert
        self._create_locks: dict[str, asyncio.Lock] = {}

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Plan resolution
    # ------------------------------------------------------------------

    async def _fetch_subscription(self, tenant_id: str) -> SubscriptionRecord:
        try:
            record = await self._store.fetch_subscription(tenant_id)
        except StoreIOError as exc:
            raise SubscriptionDataUnavailable(tenant_id) from exc
        return record or FREE_SUBSCRIPTION

    async def resolve_context(self, tenant_id: str) -> TenantContext:
        """Build the tenant's context, demoting expired or unreadable plans to free."""
        try:
            subscription = await self._fetch_subscription(tenant_id)
        except SubscriptionDataUnavailable:
            logger.warning("subscription_data_unavailable", tenant_id=tenant_id)
            return TenantContext.build(
                tenant_id, FREE_SUBSCRIPTION, PlanTier.FREE, degraded=True
            )
        tier = effective_tier(subscription, self._clock())
        if tier != subscription.plan:
            logger.info(
                "subscription_expired",
                tenant_id=tenant_id,
                stored_tier=str(subscription.plan),
                expired_at=str(subscription.subscription_expires_at),
            )
        return TenantContext.build(tenant_id, subscription, tier)

    # ------------------------------------------------------------------
    # Gates and quotas
    # ------------------------------------------------------------------

    async def can_use_feature(self, tenant_id: str, feature_key: FeatureKey | str) -> bool:
        ctx = await self.resolve_context(tenant_id)
        return entitlements.can_use_feature(ctx.effective_tier, feature_key)

    async def _current_count(self, tenant_id: str, resource_type: ResourceType) -> int:
        since = None
        if resource_type == ResourceType.SALES:
            since = entitlements.day_start(self._clock(), self._settings.sales_day_zone)
        return await self._store.count_records(tenant_id, resource_type, since=since)

    async def can_create_more(
        self,
        tenant_id: str,
        resource_type: ResourceType,
        ctx: TenantContext | None = None,
    ) -> bool:
        """Live quota check. Premium and unlimited quotas skip the count query."""
        ctx = ctx or await self.resolve_context(tenant_id)
        if ctx.effective_tier == PlanTier.PREMIUM:
            return True
        if isinstance(limit_for(ctx.limits, resource_type), Unlimited):
            return True
        count = await self._current_count(tenant_id, resource_type)
        return entitlements.can_create_more(ctx.effective_tier, resource_type, count)

    async def usage(self, tenant_id: str, resource_type: ResourceType) -> UsageSnapshot:
        ctx = await self.resolve_context(tenant_id)
        count = await self._current_count(tenant_id, resource_type)
        return entitlements.usage_summary(
            ctx.effective_tier, resource_type, count, self._settings.near_limit_ratio
        )

    # ------------------------------------------------------------------
    # Partitioning and mutation gating
    # ------------------------------------------------------------------

    async def partition(
        self,
        tenant_id: str,
        resource_type: ResourceType,
        records: Sequence[Record],
        ctx: TenantContext | None = None,
    ) -> Partition:
        """Partition already-fetched records; their order must be the store's fetch order."""
        ctx = ctx or await self.resolve_context(tenant_id)
        return partition(
            records,
            ctx.effective_tier,
            resource_type,
            now=self._clock(),
            zone=self._settings.sales_day_zone,
        )

    async def list_partitioned(self, tenant_id: str, resource_type: ResourceType) -> Partition:
        ctx = await self.resolve_context(tenant_id)
        records = await self._store.fetch_records(tenant_id, resource_type)
        return await self.partition(tenant_id, resource_type, records, ctx=ctx)

    async def authorize_mutation(
        self, tenant_id: str, resource_type: ResourceType, record_id: str
    ) -> None:
        """Recompute the partition and reject edits/deletes of blocked records."""
        result = await self.list_partitioned(tenant_id, resource_type)
        try:
            ensure_mutable(result, record_id)
        except EntitlementDenied:
            logger.warning(
                "blocked_record_mutation_denied",
                tenant_id=tenant_id,
                resource_type=str(resource_type),
                record_id=record_id,
            )
            raise

    def _create_lock(self, tenant_id: str, resource_type: ResourceType) -> asyncio.Lock:
        key = f"{tenant_id}:{resource_type}"
        if key not in self._create_locks:
            self._create_locks[key] = asyncio.Lock()
        return self._create_locks[key]

    async def create_record(
        self, tenant_id: str, resource_type: ResourceType, data: dict[str, Any]
    ) -> dict[str, Any]:
        async with self._create_lock(tenant_id, resource_type):
            if not await self.can_create_more(tenant_id, resource_type):
                logger.warning(
                    "quota_exceeded", tenant_id=tenant_id, resource_type=str(resource_type)
                )
                raise EntitlementDenied(
                    resource_type, f"you reached the {resource_type} limit of your plan"
                )
            record = await self._store.insert_record(tenant_id, resource_type, data)
        await self._notify(tenant_id, resource_type, "created", str(record["id"]))
        return record

    async def update_record(
        self,
        tenant_id: str,
        resource_type: ResourceType,
        record_id: str,
        data: dict[str, Any],
    ) -> dict[str, Any]:
        await self.authorize_mutation(tenant_id, resource_type, record_id)
        record = await self._store.update_record(tenant_id, resource_type, record_id, data)
        if record is None:
            raise RecordNotFound(resource_type, record_id)
        await self._notify(tenant_id, resource_type, "updated", record_id)
        return record

    async def delete_record(
        self, tenant_id: str, resource_type: ResourceType, record_id: str
    ) -> None:
        await self.authorize_mutation(tenant_id, resource_type, record_id)
        if not await self._store.delete_record(tenant_id, resource_type, record_id):
            raise RecordNotFound(resource_type, record_id)
        await self._notify(tenant_id, resource_type, "deleted", record_id)

    async def _notify(
        self, tenant_id: str, resource_type: ResourceType, action: str, record_id: str
    ) -> None:
        if self._bus is not None:
            await self._bus.publish(
                ChangeEvent(
                    tenant_id=tenant_id,
                    resource_type=resource_type,
                    action=action,
                    record_id=record_id,
                )
            )

    # ------------------------------------------------------------------
    # Bonus ledger
    # ------------------------------------------------------------------

    async def _ledger(self, tenant_id: str) -> bonus.BonusLedgerEntry:
        try:
            return await self._store.fetch_or_create_bonus_ledger(tenant_id)
        except StoreIOError as exc:
            raise BonusLedgerMissing(tenant_id) from exc

    async def bonus_ledger(self, tenant_id: str) -> bonus.BonusLedgerEntry:
        """Return the tenant's ledger, or an all-locked default if it is unavailable."""
        try:
            return await self._ledger(tenant_id)
        except BonusLedgerMissing:
            logger.warning("bonus_ledger_unavailable", tenant_id=tenant_id)
            return bonus.BonusLedgerEntry(tenant_id=tenant_id)

    async def is_unlocked(self, tenant_id: str, category: BonusCategory) -> bool:
        entry = await self.bonus_ledger(tenant_id)
        return bonus.is_unlocked(entry, category, self._clock())

    async def watch_ad(self, tenant_id: str, category: BonusCategory | str) -> None:
        category = BonusCategory(category)
        try:
            entry = await self._ledger(tenant_id)
        except BonusLedgerMissing:
            # Nothing to credit without a ledger row
            logger.warning("watch_ad_skipped_no_ledger", tenant_id=tenant_id)
            return
        _, patch = bonus.watch_ad(
            entry, category, self._clock(), unlock_hours=self._settings.ad_unlock_hours
        )
        await self._store.update_bonus_ledger(tenant_id, patch)
        logger.info(
            "ad_watched",
            tenant_id=tenant_id,
            category=str(category),
            unlocked_until=patch[f"{category}_unlocked_until"].isoformat(),
        )

    # ------------------------------------------------------------------
    # Subscription changes
    # ------------------------------------------------------------------

    async def upgrade(self, tenant_id: str, target_tier: PlanTier | str) -> None:
        """Move the tenant to a paid tier for one billing period from now."""
        tier = PlanTier(target_tier)
        if tier == PlanTier.FREE:
            msg = "upgrade target must be a paid tier"
            raise ValueError(msg)
        expires_at = add_months(self._clock(), self._settings.subscription_period_months)
        await self._store.update_subscription(
            tenant_id,
            {
                "plan": tier.value,
                "subscription_expires_at": expires_at,
                "subscription_status": SubscriptionStatus.ACTIVE.value,
            },
        )
        logger.info(
            "subscription_upgraded",
            tenant_id=tenant_id,
            tier=str(tier),
            expires_at=expires_at.isoformat(),
        )
