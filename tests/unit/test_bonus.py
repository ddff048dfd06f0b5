"""Unit tests for the ad-unlock bonus ledger."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from bakerly.billing.bonus import BonusLedgerEntry, is_unlocked, watch_ad
from bakerly.types import BonusCategory

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


@pytest.mark.unit
class TestWatchAd:
    def test_new_ledger_is_locked(self) -> None:
        entry = BonusLedgerEntry(tenant_id="t1")
        for category in BonusCategory:
            assert not is_unlocked(entry, category, NOW)

    def test_watch_unlocks_for_24_hours(self) -> None:
        entry, patch = watch_ad(BonusLedgerEntry(tenant_id="t1"), BonusCategory.RECIPES, NOW)
        state = entry.category(BonusCategory.RECIPES)
        assert state.unlocked_until == NOW + timedelta(hours=24)
        assert state.ads_watched == 1
        assert state.bonus == 1
        assert entry.watched_today == 1
        assert entry.last_ad_timestamp == NOW
        assert patch["recipes_unlocked_until"] == NOW + timedelta(hours=24)
        assert is_unlocked(entry, BonusCategory.RECIPES, NOW + timedelta(hours=23))
        assert not is_unlocked(entry, BonusCategory.RECIPES, NOW + timedelta(hours=24))

    def test_rewatch_resets_window_instead_of_stacking(self) -> None:
        entry, _ = watch_ad(BonusLedgerEntry(tenant_id="t1"), BonusCategory.RECIPES, NOW)
        second = NOW + timedelta(minutes=40)
        entry, _ = watch_ad(entry, BonusCategory.RECIPES, second)
        state = entry.category(BonusCategory.RECIPES)
        assert state.unlocked_until == second + timedelta(hours=24)
        assert state.unlocked_until < NOW + timedelta(hours=48)
        assert state.ads_watched == 2
        assert state.bonus == 2
        assert entry.watched_today == 2

    def test_other_categories_untouched(self) -> None:
        entry, patch = watch_ad(BonusLedgerEntry(tenant_id="t1"), BonusCategory.SALES, NOW)
        assert entry.category(BonusCategory.PRODUCTS).ads_watched == 0
        assert not any(key.startswith("products_") for key in patch)

    def test_custom_window(self) -> None:
        entry, _ = watch_ad(
            BonusLedgerEntry(tenant_id="t1"), BonusCategory.REPORTS, NOW, unlock_hours=2
        )
        assert entry.category(BonusCategory.REPORTS).unlocked_until == NOW + timedelta(hours=2)

    def test_original_entry_is_unchanged(self) -> None:
        original = BonusLedgerEntry(tenant_id="t1")
        watch_ad(original, BonusCategory.PRODUCTS, NOW)
        assert original.watched_today == 0


@pytest.mark.unit
class TestLedgerRows:
    def test_row_round_trip_keeps_window(self) -> None:
        entry, _ = watch_ad(BonusLedgerEntry(tenant_id="t1"), BonusCategory.SALES, NOW)
        row = entry.to_row()
        assert row["sales_ads_watched"] == 1
        assert row["reports_bonus"] == 0
        restored = BonusLedgerEntry.from_row("t1", row)
        assert restored == entry

    def test_from_row_defaults_missing_columns(self) -> None:
        entry = BonusLedgerEntry.from_row("t1", {"recipes_bonus": None})
        assert entry.category(BonusCategory.RECIPES).bonus == 0
        assert entry.watched_today == 0

    def test_from_row_parses_iso_strings(self) -> None:
        entry = BonusLedgerEntry.from_row("t1", {"recipes_unlocked_until": "2026-03-16T12:00:00Z"})
        assert entry.category(BonusCategory.RECIPES).unlocked_until == NOW + timedelta(days=1)
