"""Feature gates and create quotas for an effective plan tier.

Everything here is a pure function of its arguments. Callers fetch the live
record count themselves; for ``sales`` that count must cover only the
current calendar day (see :func:`day_start`).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, tzinfo

from bakerly.billing.plans import Unlimited, feature_value, limit_for, limits_for
from bakerly.types import FeatureKey, PlanTier, ResourceType


@dataclass(frozen=True, slots=True)
class UsageSnapshot:
    """Current usage of a resource against its quota."""

    resource_type: ResourceType
    current: int
    limit: int | None  # None when unlimited
    remaining: int | None
    near_limit: bool

    @property
    def unlimited(self) -> bool:
        return self.limit is None


def can_use_feature(tier: PlanTier, feature_key: FeatureKey | str) -> bool:
    if tier == PlanTier.PREMIUM:
        return True
    try:
        key = FeatureKey(feature_key)
    except ValueError as exc:
        msg = f"Unknown feature: {feature_key!r}"
        raise ValueError(msg) from exc

    value = feature_value(limits_for(tier), key)
    if isinstance(value, bool):
        return value
    if isinstance(value, Unlimited):
        return True
    return value.n != 0


def can_create_more(tier: PlanTier, resource_type: ResourceType, current_count: int) -> bool:
    """Check whether one more record fits under the quota.

    Reaching the limit blocks the *next* create; the limit-th record itself
    was allowed.
    """
    if tier == PlanTier.PREMIUM:
        return True
    quota = limit_for(limits_for(tier), resource_type)
    if isinstance(quota, Unlimited):
        return True
    return current_count < quota.n


def usage_summary(
    tier: PlanTier,
    resource_type: ResourceType,
    current_count: int,
    near_limit_ratio: float = 0.8,
) -> UsageSnapshot:
    quota = limit_for(limits_for(tier), resource_type)
    if isinstance(quota, Unlimited):
        return UsageSnapshot(
            resource_type=resource_type,
            current=current_count,
            limit=None,
            remaining=None,
            near_limit=False,
        )
    return UsageSnapshot(
        resource_type=resource_type,
        current=current_count,
        limit=quota.n,
        remaining=max(quota.n - current_count, 0),
        near_limit=current_count >= quota.n * near_limit_ratio,
    )


def day_start(now: datetime, zone: tzinfo) -> datetime:
    """Return midnight of ``now``'s calendar day in ``zone``."""
    local = now.astimezone(zone)
    return datetime.combine(local.date(), time.min, tzinfo=zone)


def is_same_day(moment: datetime, now: datetime, zone: tzinfo) -> bool:
    return moment.astimezone(zone).date() == now.astimezone(zone).date()
