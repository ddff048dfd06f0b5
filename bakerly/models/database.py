"""SQLModel database table models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

TIMESTAMPTZ = DateTime(timezone=True)


def _utc_now() -> datetime:
    """Return current time as aware UTC; every timestamp column is TIMESTAMPTZ."""
    return datetime.now(UTC)


def _new_uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Tenant profile / subscription
# ---------------------------------------------------------------------------


class Profile(SQLModel, table=True):
    __tablename__ = "profiles"

    user_id: str = Field(primary_key=True)
    business_name: str = ""
    plan: str = Field(default="free")  # free | basic | premium
    subscription_expires_at: datetime | None = Field(default=None, sa_type=TIMESTAMPTZ)
    subscription_status: str | None = None  # active | canceled | past_due
    created_at: datetime = Field(default_factory=_utc_now, sa_type=TIMESTAMPTZ)
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=TIMESTAMPTZ)


# ---------------------------------------------------------------------------
# Tenant resources
# ---------------------------------------------------------------------------


class Recipe(SQLModel, table=True):
    __tablename__ = "recipes"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    user_id: str = Field(index=True)
    name: str
    description: str | None = None
    yield_quantity: float | None = None
    total_cost: float | None = None
    created_at: datetime = Field(default_factory=_utc_now, index=True, sa_type=TIMESTAMPTZ)
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=TIMESTAMPTZ)


class Product(SQLModel, table=True):
    __tablename__ = "products"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    user_id: str = Field(index=True)
    name: str
    recipe_id: str | None = None
    cost: float | None = None
    price: float | None = None
    created_at: datetime = Field(default_factory=_utc_now, index=True, sa_type=TIMESTAMPTZ)
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=TIMESTAMPTZ)


class Sale(SQLModel, table=True):
    __tablename__ = "sales"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    user_id: str = Field(index=True)
    custom_name: str
    product_id: str | None = None
    quantity: float = 1
    sale_price: float = 0
    sale_date: datetime = Field(default_factory=_utc_now, index=True, sa_type=TIMESTAMPTZ)
    created_at: datetime = Field(default_factory=_utc_now, sa_type=TIMESTAMPTZ)
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=TIMESTAMPTZ)


class InventoryItem(SQLModel, table=True):
    __tablename__ = "inventory_items"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    user_id: str = Field(index=True)
    name: str = Field(index=True)
    unit: str = "un"
    current_stock: float = 0
    min_stock: float = 0
    cost_per_unit: float | None = None
    created_at: datetime = Field(default_factory=_utc_now, sa_type=TIMESTAMPTZ)
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=TIMESTAMPTZ)


# ---------------------------------------------------------------------------
# Ad-unlock bonus ledger
# ---------------------------------------------------------------------------


class UserAdState(SQLModel, table=True):
    __tablename__ = "user_ad_state"

    user_id: str = Field(primary_key=True)
    watched_today: int = Field(default=0)
    last_ad_timestamp: datetime | None = Field(default=None, sa_type=TIMESTAMPTZ)
    recipes_bonus: int = Field(default=0)
    recipes_unlocked_until: datetime | None = Field(default=None, sa_type=TIMESTAMPTZ)
    recipes_ads_watched: int = Field(default=0)
    products_bonus: int = Field(default=0)
    products_unlocked_until: datetime | None = Field(default=None, sa_type=TIMESTAMPTZ)
    products_ads_watched: int = Field(default=0)
    sales_bonus: int = Field(default=0)
    sales_unlocked_until: datetime | None = Field(default=None, sa_type=TIMESTAMPTZ)
    sales_ads_watched: int = Field(default=0)
    reports_bonus: int = Field(default=0)
    reports_unlocked_until: datetime | None = Field(default=None, sa_type=TIMESTAMPTZ)
    reports_ads_watched: int = Field(default=0)
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=TIMESTAMPTZ)
