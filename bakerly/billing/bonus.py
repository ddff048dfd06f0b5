"""Ad-unlock bonus ledger.

Each category is ``locked`` until an ad is watched, then ``unlocked`` for a
fixed window. Watching again restarts the window from now; windows never
stack. The ``*_bonus`` counters only grow and are not read by any quota
check.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any

from bakerly.billing.subscription import as_utc
from bakerly.types import BonusCategory


@dataclass(frozen=True, slots=True)
class CategoryBonus:
    bonus: int = 0
    unlocked_until: datetime | None = None
    ads_watched: int = 0


def _empty_categories() -> dict[BonusCategory, CategoryBonus]:
    return {category: CategoryBonus() for category in BonusCategory}


@dataclass(frozen=True, slots=True)
class BonusLedgerEntry:
    """One row per tenant. Flattens to ``{category}_bonus`` style columns."""

    tenant_id: str
    categories: dict[BonusCategory, CategoryBonus] = field(default_factory=_empty_categories)
    watched_today: int = 0
    last_ad_timestamp: datetime | None = None

    def category(self, category: BonusCategory) -> CategoryBonus:
        return self.categories.get(category, CategoryBonus())

    def to_row(self) -> dict[str, Any]:
        row: dict[str, Any] = {
            "watched_today": self.watched_today,
            "last_ad_timestamp": self.last_ad_timestamp,
        }
        for category in BonusCategory:
            state = self.category(category)
            row[f"{category}_bonus"] = state.bonus
            row[f"{category}_unlocked_until"] = state.unlocked_until
            row[f"{category}_ads_watched"] = state.ads_watched
        return row

    @classmethod
    def from_row(cls, tenant_id: str, row: dict[str, Any]) -> BonusLedgerEntry:
        categories = {
            category: CategoryBonus(
                bonus=int(row.get(f"{category}_bonus") or 0),
                unlocked_until=as_utc(row.get(f"{category}_unlocked_until")),
                ads_watched=int(row.get(f"{category}_ads_watched") or 0),
            )
            for category in BonusCategory
        }
        return cls(
            tenant_id=tenant_id,
            categories=categories,
            watched_today=int(row.get("watched_today") or 0),
            last_ad_timestamp=as_utc(row.get("last_ad_timestamp")),
        )


def is_unlocked(entry: BonusLedgerEntry, category: BonusCategory, now: datetime) -> bool:
    until = entry.category(category).unlocked_until
    return until is not None and until > now


def watch_ad(
    entry: BonusLedgerEntry,
    category: BonusCategory,
    now: datetime,
    unlock_hours: int = 24,
) -> tuple[BonusLedgerEntry, dict[str, Any]]:
    """Apply one ad watch. Returns the new entry and the column patch to persist."""
    current = entry.category(category)
    updated = CategoryBonus(
        bonus=current.bonus + 1,
        unlocked_until=now + timedelta(hours=unlock_hours),
        ads_watched=current.ads_watched + 1,
    )
    categories = {**entry.categories, category: updated}
    new_entry = replace(
        entry,
        categories=categories,
        watched_today=entry.watched_today + 1,
        last_ad_timestamp=now,
    )
    patch = {
        "watched_today": new_entry.watched_today,
        "last_ad_timestamp": now,
        f"{category}_bonus": updated.bonus,
        f"{category}_unlocked_until": updated.unlocked_until,
        f"{category}_ads_watched": updated.ads_watched,
    }
    return new_entry, patch
