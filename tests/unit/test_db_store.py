"""Tests for the SQLModel-backed store against in-memory SQLite."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from bakerly.billing.bonus import watch_ad
from bakerly.billing.service import EntitlementService
from bakerly.config.settings import Settings
from bakerly.exceptions import EntitlementDenied, StoreIOError
from bakerly.models.database import Recipe, Sale, UserAdState
from bakerly.storage.repositories.db_store import DatabaseStore
from bakerly.types import BonusCategory, PlanTier, ResourceType

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


@pytest.fixture()
def db_store(async_engine) -> DatabaseStore:
    return DatabaseStore(async_engine)


@pytest.mark.unit
class TestDatabaseRecords:
    async def test_insert_and_fetch_newest_first(self, db_store: DatabaseStore) -> None:
        for i in range(3):
            await db_store.insert_record(
                "t1",
                ResourceType.RECIPES,
                {"name": f"recipe {i}", "created_at": NOW - timedelta(hours=3 - i)},
            )
        await db_store.insert_record("t2", ResourceType.RECIPES, {"name": "foreign"})

        rows = await db_store.fetch_records("t1", ResourceType.RECIPES)
        assert [r["name"] for r in rows] == ["recipe 2", "recipe 1", "recipe 0"]
        assert all(r["tenant_id"] == "t1" for r in rows)
        assert rows[0]["created_at"].tzinfo is not None

    async def test_inventory_sorted_by_name(self, db_store: DatabaseStore) -> None:
        for name in ("yeast", "butter", "flour"):
            await db_store.insert_record("t1", ResourceType.INVENTORY_ITEMS, {"name": name})
        rows = await db_store.fetch_records("t1", ResourceType.INVENTORY_ITEMS)
        assert [r["name"] for r in rows] == ["butter", "flour", "yeast"]

    async def test_count_since_uses_sale_date(self, db_store: DatabaseStore) -> None:
        await db_store.insert_record(
            "t1",
            ResourceType.SALES,
            {"custom_name": "old", "sale_date": NOW - timedelta(days=2)},
        )
        await db_store.insert_record(
            "t1", ResourceType.SALES, {"custom_name": "today", "sale_date": NOW}
        )
        day_start = datetime(2026, 3, 15, tzinfo=UTC)
        assert await db_store.count_records("t1", ResourceType.SALES) == 2
        assert await db_store.count_records("t1", ResourceType.SALES, since=day_start) == 1

    async def test_update_and_delete_are_tenant_scoped(self, db_store: DatabaseStore) -> None:
        row = await db_store.insert_record("t1", ResourceType.PRODUCTS, {"name": "bread"})
        assert await db_store.update_record("t2", ResourceType.PRODUCTS, row["id"], {}) is None
        assert await db_store.delete_record("t2", ResourceType.PRODUCTS, row["id"]) is False

        updated = await db_store.update_record(
            "t1", ResourceType.PRODUCTS, row["id"], {"name": "rye", "user_id": "t2"}
        )
        assert updated is not None
        assert updated["name"] == "rye"
        assert updated["tenant_id"] == "t1"
        assert await db_store.delete_record("t1", ResourceType.PRODUCTS, row["id"]) is True
        assert await db_store.fetch_records("t1", ResourceType.PRODUCTS) == []


@pytest.mark.unit
class TestDatabaseSubscription:
    async def test_missing_profile(self, db_store: DatabaseStore) -> None:
        assert await db_store.fetch_subscription("nobody") is None

    async def test_upsert_subscription(self, db_store: DatabaseStore) -> None:
        expires = NOW + timedelta(days=30)
        await db_store.update_subscription(
            "t1",
            {
                "plan": "premium",
                "subscription_expires_at": expires,
                "subscription_status": "active",
            },
        )
        record = await db_store.fetch_subscription("t1")
        assert record is not None
        assert record.plan == PlanTier.PREMIUM
        assert record.subscription_expires_at == expires
        assert record.subscription_status == "active"


@pytest.mark.unit
class TestDatabaseBonusLedger:
    async def test_get_or_create_then_update(self, db_store: DatabaseStore) -> None:
        entry = await db_store.fetch_or_create_bonus_ledger("t1")
        assert entry.watched_today == 0

        entry, patch = watch_ad(entry, BonusCategory.SALES, NOW)
        await db_store.update_bonus_ledger("t1", patch)

        reloaded = await db_store.fetch_or_create_bonus_ledger("t1")
        state = reloaded.category(BonusCategory.SALES)
        assert state.unlocked_until == NOW + timedelta(hours=24)
        assert state.ads_watched == 1
        assert reloaded.watched_today == 1

    async def test_reset_watched_today(self, db_store: DatabaseStore) -> None:
        for tenant in ("t1", "t2"):
            entry = await db_store.fetch_or_create_bonus_ledger(tenant)
            _, patch = watch_ad(entry, BonusCategory.RECIPES, NOW)
            await db_store.update_bonus_ledger(tenant, patch)

        assert await db_store.reset_watched_today() == 2
        entry = await db_store.fetch_or_create_bonus_ledger("t1")
        assert entry.watched_today == 0
        assert entry.category(BonusCategory.RECIPES).ads_watched == 1


@pytest.mark.unit
class TestServiceOverDatabase:
    async def test_free_tenant_quota(self, db_store: DatabaseStore) -> None:
        service = EntitlementService(db_store, settings=Settings(_env_file=None), clock=lambda: NOW)
        await service.create_record("t1", ResourceType.RECIPES, {"name": "sourdough"})
        with pytest.raises(EntitlementDenied):
            await service.create_record("t1", ResourceType.RECIPES, {"name": "brioche"})

    async def test_unknown_stored_plan_fails_closed(self, db_store: DatabaseStore) -> None:
        await db_store.update_subscription("t1", {"plan": "enterprise"})
        with pytest.raises(StoreIOError):
            await db_store.fetch_subscription("t1")

        service = EntitlementService(db_store, settings=Settings(_env_file=None), clock=lambda: NOW)
        ctx = await service.resolve_context("t1")
        assert ctx.effective_tier == PlanTier.FREE
        assert ctx.degraded is True


@pytest.mark.unit
class TestDatabaseTimestamps:
    def test_timestamp_columns_are_timezone_aware(self) -> None:
        for column in (
            Recipe.__table__.c.created_at,
            Sale.__table__.c.sale_date,
            UserAdState.__table__.c.recipes_unlocked_until,
        ):
            assert column.type.timezone is True

    async def test_written_timestamps_come_back_aware_utc(self, db_store: DatabaseStore) -> None:
        row = await db_store.insert_record("t1", ResourceType.SALES, {"custom_name": "roll"})
        assert row["sale_date"].tzinfo is not None
        assert row["created_at"].utcoffset() == timedelta(0)
        updated = await db_store.update_record(
            "t1", ResourceType.SALES, row["id"], {"sale_date": "2026-03-15T09:00:00-03:00"}
        )
        assert updated is not None
        assert updated["sale_date"] == NOW


@pytest.mark.unit
class TestDatabaseFetchOrder:
    async def test_equal_names_are_ordered_by_creation(self, db_store: DatabaseStore) -> None:
        later = await db_store.insert_record(
            "t1", ResourceType.INVENTORY_ITEMS, {"name": "Farinha", "created_at": NOW}
        )
        earlier = await db_store.insert_record(
            "t1",
            ResourceType.INVENTORY_ITEMS,
            {"name": "Farinha", "created_at": NOW - timedelta(hours=1)},
        )
        await db_store.insert_record("t1", ResourceType.INVENTORY_ITEMS, {"name": "Acucar"})

        for _ in range(3):
            rows = await db_store.fetch_records("t1", ResourceType.INVENTORY_ITEMS)
            assert [r["id"] for r in rows[1:]] == [earlier["id"], later["id"]]
