"""Enums and type aliases for Bakerly."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any

# A tenant-scoped record as returned by the store (at least an "id" key)
Record = Mapping[str, Any]


class PlanTier(StrEnum):
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"

    @property
    def rank(self) -> int:
        # StrEnum compares alphabetically, so ordering goes through rank
        return _TIER_RANK[self]

    def at_least(self, other: PlanTier) -> bool:
        return self.rank >= other.rank


_TIER_RANK = {PlanTier.FREE: 0, PlanTier.BASIC: 1, PlanTier.PREMIUM: 2}


class ResourceType(StrEnum):
    RECIPES = "recipes"
    PRODUCTS = "products"
    SALES = "sales"
    INVENTORY_ITEMS = "inventory_items"


class FeatureKey(StrEnum):
    RECIPES = "recipes"
    PRODUCTS = "products"
    SALES_PER_DAY = "sales_per_day"
    INVENTORY_ITEMS = "inventory_items"
    HAS_REPORTS = "has_reports"
    HAS_PRODUCTION_CENTER = "has_production_center"
    HAS_LOYALTY_SYSTEM = "has_loyalty_system"
    HAS_MARKETPLACE_INTEGRATION = "has_marketplace_integration"


class BonusCategory(StrEnum):
    RECIPES = "recipes"
    PRODUCTS = "products"
    SALES = "sales"
    REPORTS = "reports"


class SubscriptionStatus(StrEnum):
    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"
