"""Plan tier definitions with concrete limits."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Final

from bakerly.types import FeatureKey, PlanTier, ResourceType


@dataclass(frozen=True, slots=True)
class Finite:
    """A finite quota of ``n`` records."""

    n: int

    def __post_init__(self) -> None:
        if self.n < 0:
            msg = f"quota must be non-negative, got {self.n}"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class Unlimited:
    """No cap. Never take part in arithmetic; check for it first."""


UNLIMITED: Final = Unlimited()

Quota = Finite | Unlimited


def quota_at_least(a: Quota, b: Quota) -> bool:
    """Return True if quota ``a`` grants at least as much as ``b``."""
    if isinstance(a, Unlimited):
        return True
    if isinstance(b, Unlimited):
        return False
    return a.n >= b.n


@dataclass(frozen=True, slots=True)
class PlanLimits:
    """Quotas and feature gates for a plan tier."""

    recipes: Quota
    products: Quota
    sales_per_day: Quota
    inventory_items: Quota
    has_reports: bool
    has_production_center: bool
    has_loyalty_system: bool
    has_marketplace_integration: bool
    # Past (not today's) sales that stay visible and editable
    sales_history: Quota

    def dominates(self, other: PlanLimits) -> bool:
        """True if every field of ``self`` is >= the same field of ``other``."""
        for f in fields(self):
            mine, theirs = getattr(self, f.name), getattr(other, f.name)
            if isinstance(mine, bool):
                if theirs and not mine:
                    return False
            elif not quota_at_least(mine, theirs):
                return False
        return True


PLAN_LIMITS: dict[PlanTier, PlanLimits] = {
    PlanTier.FREE: PlanLimits(
        recipes=Finite(1),
        products=Finite(1),
        sales_per_day=Finite(1),
        inventory_items=Finite(50),
        has_reports=False,
        has_production_center=False,
        has_loyalty_system=False,
        has_marketplace_integration=False,
        sales_history=Finite(0),
    ),
    PlanTier.BASIC: PlanLimits(
        recipes=Finite(20),
        products=Finite(20),
        sales_per_day=Finite(20),
        inventory_items=UNLIMITED,
        has_reports=True,
        has_production_center=False,
        has_loyalty_system=False,
        has_marketplace_integration=False,
        sales_history=Finite(20),
    ),
    PlanTier.PREMIUM: PlanLimits(
        recipes=UNLIMITED,
        products=UNLIMITED,
        sales_per_day=UNLIMITED,
        inventory_items=UNLIMITED,
        has_reports=True,
        has_production_center=True,
        has_loyalty_system=True,
        has_marketplace_integration=True,
        sales_history=UNLIMITED,
    ),
}

# Resource type -> PlanLimits attribute holding its quota
_RESOURCE_LIMIT_MAP = {
    ResourceType.RECIPES: "recipes",
    ResourceType.PRODUCTS: "products",
    ResourceType.SALES: "sales_per_day",
    ResourceType.INVENTORY_ITEMS: "inventory_items",
}


def limits_for(tier: PlanTier) -> PlanLimits:
    """Get limits for a plan tier."""
    return PLAN_LIMITS[tier]


def limit_for(limits: PlanLimits, resource_type: ResourceType) -> Quota:
    """Get the create quota for a resource type (``sales`` maps to the daily quota)."""
    return getattr(limits, _RESOURCE_LIMIT_MAP[resource_type])


def feature_value(limits: PlanLimits, feature_key: FeatureKey) -> Quota | bool:
    return getattr(limits, feature_key.value)
