"""Split a tenant's records into allowed and blocked sets.

The split is positional: the first N records in the caller's order are
allowed. Nothing is re-sorted, so the fetch order of each resource type is
part of the contract (see ``bakerly.storage.store.FETCH_ORDER``).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo

from bakerly.billing.entitlements import is_same_day
from bakerly.billing.plans import Quota, Unlimited, limit_for, limits_for
from bakerly.billing.subscription import as_utc
from bakerly.exceptions import EntitlementDenied, RecordNotFound
from bakerly.types import PlanTier, Record, ResourceType


@dataclass(frozen=True, slots=True)
class Partition:
    resource_type: ResourceType
    allowed: list[Record] = field(default_factory=list)
    blocked: list[Record] = field(default_factory=list)

    def is_blocked(self, record_id: str) -> bool:
        return any(_id_of(r) == str(record_id) for r in self.blocked)

    def is_allowed(self, record_id: str) -> bool:
        return any(_id_of(r) == str(record_id) for r in self.allowed)


def _id_of(record: Record) -> str:
    return str(record["id"])


def _split(records: Sequence[Record], quota: Quota) -> tuple[list[Record], list[Record]]:
    if isinstance(quota, Unlimited):
        return list(records), []
    return list(records[: quota.n]), list(records[quota.n :])


def partition(
    records: Sequence[Record],
    tier: PlanTier,
    resource_type: ResourceType,
    *,
    now: datetime | None = None,
    zone: tzinfo = UTC,
) -> Partition:
    """Partition ``records`` by the tier's quota for ``resource_type``.

    Sales are split in two layers: the daily quota applies to today's sales
    and the ``sales_history`` cap to everything older. The result is
    today-allowed + past-allowed and today-blocked + past-blocked.
    """
    limits = limits_for(tier)
    if resource_type != ResourceType.SALES:
        allowed, blocked = _split(records, limit_for(limits, resource_type))
        return Partition(resource_type=resource_type, allowed=allowed, blocked=blocked)

    now = now or datetime.now(UTC)
    today: list[Record] = []
    past: list[Record] = []
    for sale in records:
        sold_at = as_utc(sale.get("sale_date"))
        if sold_at is not None and is_same_day(sold_at, now, zone):
            today.append(sale)
        else:
            past.append(sale)

    today_allowed, today_blocked = _split(today, limits.sales_per_day)
    past_allowed, past_blocked = _split(past, limits.sales_history)
    return Partition(
        resource_type=resource_type,
        allowed=today_allowed + past_allowed,
        blocked=today_blocked + past_blocked,
    )


def ensure_mutable(result: Partition, record_id: str) -> None:
    """Reject edit/delete of a record that falls on the blocked side."""
    if result.is_blocked(record_id):
        raise EntitlementDenied(
            result.resource_type,
            f"this {result.resource_type} record is locked by your current plan",
            record_id=str(record_id),
        )
    if not result.is_allowed(record_id):
        raise RecordNotFound(result.resource_type, str(record_id))
