"""Store contract consumed by the entitlement service."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from bakerly.billing.bonus import BonusLedgerEntry
from bakerly.billing.subscription import SubscriptionRecord
from bakerly.types import ResourceType

# Canonical fetch order per resource type: (column, descending).
# Which records end up blocked depends on this order; changing it changes
# which records a downgraded tenant keeps.
FETCH_ORDER: dict[ResourceType, tuple[str, bool]] = {
    ResourceType.RECIPES: ("created_at", True),
    ResourceType.PRODUCTS: ("created_at", True),
    ResourceType.SALES: ("sale_date", True),
    ResourceType.INVENTORY_ITEMS: ("name", False),
}

# Column the ``since`` filter of count_records applies to
COUNT_DATE_COLUMN: dict[ResourceType, str] = {
    ResourceType.RECIPES: "created_at",
    ResourceType.PRODUCTS: "created_at",
    ResourceType.SALES: "sale_date",
    ResourceType.INVENTORY_ITEMS: "created_at",
}


class EntitlementStore(Protocol):
    """Tenant-scoped reads and writes. Implementations raise StoreIOError on failure."""

    async def count_records(
        self, tenant_id: str, resource_type: ResourceType, since: datetime | None = None
    ) -> int: ...

    async def fetch_records(
        self, tenant_id: str, resource_type: ResourceType
    ) -> list[dict[str, Any]]: ...

    async def insert_record(
        self, tenant_id: str, resource_type: ResourceType, data: dict[str, Any]
    ) -> dict[str, Any]: ...

    async def update_record(
        self, tenant_id: str, resource_type: ResourceType, record_id: str, data: dict[str, Any]
    ) -> dict[str, Any] | None: ...

    async def delete_record(
        self, tenant_id: str, resource_type: ResourceType, record_id: str
    ) -> bool: ...

    async def fetch_subscription(self, tenant_id: str) -> SubscriptionRecord | None: ...

    async def update_subscription(self, tenant_id: str, patch: dict[str, Any]) -> None: ...

    async def fetch_or_create_bonus_ledger(self, tenant_id: str) -> BonusLedgerEntry: ...

    async def update_bonus_ledger(self, tenant_id: str, patch: dict[str, Any]) -> None: ...

    async def reset_watched_today(self) -> int: ...
