"""Database-backed store using SQLModel + AsyncSession.

Returns the same dict-based records as the in-memory store so the
entitlement service and routes do not need to change.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import SQLModel, col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from bakerly.billing.bonus import BonusLedgerEntry
from bakerly.billing.subscription import SubscriptionRecord, as_utc
from bakerly.exceptions import StoreIOError
from bakerly.models.database import (
    InventoryItem,
    Product,
    Profile,
    Recipe,
    Sale,
    UserAdState,
    _utc_now,
)
from bakerly.storage.store import COUNT_DATE_COLUMN, FETCH_ORDER
from bakerly.types import PlanTier, ResourceType

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)

_MODELS: dict[ResourceType, type[SQLModel]] = {
    ResourceType.RECIPES: Recipe,
    ResourceType.PRODUCTS: Product,
    ResourceType.SALES: Sale,
    ResourceType.INVENTORY_ITEMS: InventoryItem,
}

_READ_ONLY_FIELDS = frozenset({"id", "user_id", "created_at", "updated_at"})
_TIE_BREAK = ("created_at", "id")


def _aware_utc(value: Any) -> Any:
    """Normalise datetimes / ISO strings to aware UTC for TIMESTAMPTZ columns."""
    if isinstance(value, datetime | str):
        return as_utc(value)
    return value


def _to_dict(row: SQLModel) -> dict[str, Any]:
    data = row.model_dump()
    data["tenant_id"] = data.pop("user_id")
    for key, value in data.items():
        if isinstance(value, datetime):
            # SQLite hands TIMESTAMPTZ back without an offset
            data[key] = as_utc(value)
    return data


def _writable(
    model: type[SQLModel], data: dict[str, Any], *, creating: bool = False
) -> dict[str, Any]:
    # created_at may be supplied on insert (imports) but never changed afterwards
    read_only = _READ_ONLY_FIELDS - {"created_at"} if creating else _READ_ONLY_FIELDS
    return {
        k: _aware_utc(v) if k.endswith(("_at", "_date")) else v
        for k, v in data.items()
        if k in model.model_fields and k not in read_only
    }


class DatabaseStore:
    """PostgreSQL-backed store. Every failure surfaces as StoreIOError."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def count_records(
        self, tenant_id: str, resource_type: ResourceType, since: datetime | None = None
    ) -> int:
        model = _MODELS[resource_type]
        statement = (
            select(func.count())
            .select_from(model)
            .where(col(model.user_id) == tenant_id)  # type: ignore[attr-defined]
        )
        if since is not None:
            column = getattr(model, COUNT_DATE_COLUMN[resource_type])
            statement = statement.where(column >= _aware_utc(since))
        try:
            async with AsyncSession(self._engine) as session:
                result = await session.execute(statement)
                return int(result.scalar_one())
        except SQLAlchemyError as exc:
            raise StoreIOError(f"count {resource_type} failed") from exc

    async def fetch_records(
        self, tenant_id: str, resource_type: ResourceType
    ) -> list[dict[str, Any]]:
        model = _MODELS[resource_type]
        column_name, descending = FETCH_ORDER[resource_type]
        column = getattr(model, column_name)
        statement = (
            select(model)
            .where(col(model.user_id) == tenant_id)  # type: ignore[attr-defined]
            .order_by(column.desc() if descending else column.asc())
        )
        # Equal sort keys must come back in the same order on every query
        for tie_break in _TIE_BREAK:
            if tie_break != column_name:
                statement = statement.order_by(getattr(model, tie_break).asc())
        try:
            async with AsyncSession(self._engine) as session:
                results = await session.execute(statement)
                return [_to_dict(r) for r in results.scalars().all()]
        except SQLAlchemyError as exc:
            raise StoreIOError(f"fetch {resource_type} failed") from exc

    async def insert_record(
        self, tenant_id: str, resource_type: ResourceType, data: dict[str, Any]
    ) -> dict[str, Any]:
        model = _MODELS[resource_type]
        try:
            async with AsyncSession(self._engine) as session:
                row = model(user_id=tenant_id, **_writable(model, data, creating=True))
                session.add(row)
                await session.commit()
                await session.refresh(row)
                result = _to_dict(row)
        except SQLAlchemyError as exc:
            raise StoreIOError(f"insert {resource_type} failed") from exc
        logger.info(
            "record_created", resource_type=str(resource_type), id=result["id"], tenant_id=tenant_id
        )
        return result

    async def update_record(
        self, tenant_id: str, resource_type: ResourceType, record_id: str, data: dict[str, Any]
    ) -> dict[str, Any] | None:
        model = _MODELS[resource_type]
        try:
            async with AsyncSession(self._engine) as session:
                row = await session.get(model, str(record_id))
                if not row or row.user_id != tenant_id:  # type: ignore[attr-defined]
                    return None
                for key, value in _writable(model, data).items():
                    setattr(row, key, value)
                row.updated_at = _utc_now()  # type: ignore[attr-defined]
                session.add(row)
                await session.commit()
                await session.refresh(row)
                return _to_dict(row)
        except SQLAlchemyError as exc:
            raise StoreIOError(f"update {resource_type} failed") from exc

    async def delete_record(
        self, tenant_id: str, resource_type: ResourceType, record_id: str
    ) -> bool:
        model = _MODELS[resource_type]
        try:
            async with AsyncSession(self._engine) as session:
                row = await session.get(model, str(record_id))
                if not row or row.user_id != tenant_id:  # type: ignore[attr-defined]
                    return False
                await session.delete(row)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreIOError(f"delete {resource_type} failed") from exc
        logger.info(
            "record_deleted", resource_type=str(resource_type), id=record_id, tenant_id=tenant_id
        )
        return True

    async def fetch_subscription(self, tenant_id: str) -> SubscriptionRecord | None:
        try:
            async with AsyncSession(self._engine) as session:
                profile = await session.get(Profile, tenant_id)
        except SQLAlchemyError as exc:
            raise StoreIOError("fetch subscription failed") from exc
        if profile is None:
            return None
        try:
            plan = PlanTier(profile.plan)
        except ValueError as exc:
            logger.warning("unknown_stored_plan", tenant_id=tenant_id, plan=profile.plan)
            raise StoreIOError(f"unreadable plan {profile.plan!r}") from exc
        return SubscriptionRecord(
            plan=plan,
            subscription_expires_at=as_utc(profile.subscription_expires_at),
            subscription_status=profile.subscription_status,
        )

    async def update_subscription(self, tenant_id: str, patch: dict[str, Any]) -> None:
        try:
            async with AsyncSession(self._engine) as session:
                profile = await session.get(Profile, tenant_id) or Profile(user_id=tenant_id)
                for key, value in _writable(Profile, patch).items():
                    setattr(profile, key, value)
                profile.updated_at = _utc_now()
                session.add(profile)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreIOError("update subscription failed") from exc
        logger.info("subscription_updated", tenant_id=tenant_id, fields=sorted(patch))

    async def fetch_or_create_bonus_ledger(self, tenant_id: str) -> BonusLedgerEntry:
        try:
            async with AsyncSession(self._engine) as session:
                row = await session.get(UserAdState, tenant_id)
                if row is None:
                    row = UserAdState(user_id=tenant_id)
                    session.add(row)
                    try:
                        await session.commit()
                    except IntegrityError:
                        # Created concurrently by another request
                        await session.rollback()
                        row = await session.get(UserAdState, tenant_id)
                    else:
                        await session.refresh(row)
                        logger.info("bonus_ledger_created", tenant_id=tenant_id)
                if row is None:
                    raise StoreIOError("bonus ledger vanished after concurrent create")
                data = row.model_dump()
        except SQLAlchemyError as exc:
            raise StoreIOError("fetch bonus ledger failed") from exc
        return BonusLedgerEntry.from_row(tenant_id, data)

    async def update_bonus_ledger(self, tenant_id: str, patch: dict[str, Any]) -> None:
        values = {k: _aware_utc(v) for k, v in patch.items() if k in UserAdState.model_fields}
        values["updated_at"] = _utc_now()
        statement = (
            update(UserAdState)
            .where(col(UserAdState.user_id) == tenant_id)
            .values(**values)
        )
        try:
            async with AsyncSession(self._engine) as session:
                await session.execute(statement)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreIOError("update bonus ledger failed") from exc

    async def reset_watched_today(self) -> int:
        statement = update(UserAdState).values(watched_today=0, updated_at=_utc_now())
        try:
            async with AsyncSession(self._engine) as session:
                result = await session.execute(statement)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreIOError("reset watched_today failed") from exc
        return int(result.rowcount or 0)
