"""Tests for the daily ad counter reset job."""

from datetime import UTC, datetime

import pytest

from bakerly.billing.bonus import watch_ad
from bakerly.jobs.reset_ad_counts import reset_daily_ad_counts
from bakerly.storage.memory import InMemoryStore
from bakerly.types import BonusCategory

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


@pytest.mark.unit
class TestResetDailyAdCounts:
    async def test_zeroes_watched_today_only(self) -> None:
        store = InMemoryStore()
        entry = await store.fetch_or_create_bonus_ledger("t1")
        entry, patch = watch_ad(entry, BonusCategory.PRODUCTS, NOW)
        await store.update_bonus_ledger("t1", patch)

        await reset_daily_ad_counts(store)

        entry = await store.fetch_or_create_bonus_ledger("t1")
        assert entry.watched_today == 0
        assert entry.category(BonusCategory.PRODUCTS).ads_watched == 1
        assert entry.category(BonusCategory.PRODUCTS).unlocked_until is not None

    async def test_no_ledgers(self) -> None:
        store = InMemoryStore()
        await reset_daily_ad_counts(store)
        assert await store.reset_watched_today() == 0
