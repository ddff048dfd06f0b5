"""Effective plan tier derivation from a stored subscription record."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import UTC, datetime

from bakerly.types import PlanTier


@dataclass(frozen=True, slots=True)
class SubscriptionRecord:
    """A tenant's stored plan. Timestamps are timezone-aware UTC."""

    plan: PlanTier = PlanTier.FREE
    subscription_expires_at: datetime | None = None
    subscription_status: str | None = None


FREE_SUBSCRIPTION = SubscriptionRecord()


def is_expired(record: SubscriptionRecord, now: datetime) -> bool:
    """Check whether a paid subscription has lapsed.

    ``free`` never expires. An expiry equal to ``now`` is still in force.
    """
    if record.plan == PlanTier.FREE:
        return False
    if record.subscription_expires_at is None:
        return False
    return record.subscription_expires_at < now


def effective_tier(record: SubscriptionRecord, now: datetime) -> PlanTier:
    """Return the tier in force at ``now``.

    Expired paid plans read as ``free`` until the record is updated.
    Nothing is written back.
    """
    if is_expired(record, now):
        return PlanTier.FREE
    return record.plan


def add_months(moment: datetime, months: int) -> datetime:
    """Shift ``moment`` by calendar months, clamping to the month's last day."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def as_utc(value: datetime | str | None) -> datetime | None:
    """Normalise a stored timestamp (naive UTC, aware, or ISO string) to aware UTC."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
