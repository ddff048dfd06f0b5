"""In-memory store (SQLModel-backed version in production)."""

from __future__ import annotations

import itertools
import uuid
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

import structlog

from bakerly.billing.bonus import BonusLedgerEntry
from bakerly.billing.subscription import SubscriptionRecord, as_utc
from bakerly.storage.store import COUNT_DATE_COLUMN, FETCH_ORDER
from bakerly.types import PlanTier, ResourceType

logger = structlog.get_logger(__name__)

_DATE_FIELDS = ("created_at", "sale_date")


class InMemoryStore:
    """Dict-backed store for dev/testing without a database."""

    def __init__(self) -> None:
        self._records: dict[ResourceType, dict[str, dict[str, Any]]] = {
            rt: {} for rt in ResourceType
        }
        self._subscriptions: dict[str, SubscriptionRecord] = {}
        self._ledgers: dict[str, dict[str, Any]] = {}
        # Insertion sequence breaks ties between equal timestamps
        self._seq = itertools.count()

    async def count_records(
        self, tenant_id: str, resource_type: ResourceType, since: datetime | None = None
    ) -> int:
        column = COUNT_DATE_COLUMN[resource_type]
        return sum(
            1
            for r in self._records[resource_type].values()
            if r["tenant_id"] == tenant_id
            and (since is None or (r.get(column) is not None and r[column] >= since))
        )

    async def fetch_records(
        self, tenant_id: str, resource_type: ResourceType
    ) -> list[dict[str, Any]]:
        column, descending = FETCH_ORDER[resource_type]
        rows = [r for r in self._records[resource_type].values() if r["tenant_id"] == tenant_id]
        # Ties on the sort column keep created_at order (as the database store does)
        rows.sort(key=lambda r: (r["created_at"], r["_seq"]))
        rows.sort(
            key=lambda r: (r.get(column) is not None, r.get(column) or ""), reverse=descending
        )
        return [_public(r) for r in rows]

    async def insert_record(
        self, tenant_id: str, resource_type: ResourceType, data: dict[str, Any]
    ) -> dict[str, Any]:
        # Ids are always server-generated; a caller-supplied id is ignored
        record_id = str(uuid.uuid4())
        record = {
            **{k: v for k, v in data.items() if k not in ("id", "tenant_id")},
            "id": record_id,
            "tenant_id": tenant_id,
            "created_at": data.get("created_at") or datetime.now(UTC),
            "_seq": next(self._seq),
        }
        if resource_type == ResourceType.SALES:
            record.setdefault("sale_date", record["created_at"])
        _normalise_dates(record)
        self._records[resource_type][record_id] = record
        logger.info(
            "record_created", resource_type=str(resource_type), id=record_id, tenant_id=tenant_id
        )
        return _public(record)

    async def update_record(
        self, tenant_id: str, resource_type: ResourceType, record_id: str, data: dict[str, Any]
    ) -> dict[str, Any] | None:
        record = self._records[resource_type].get(str(record_id))
        if not record or record["tenant_id"] != tenant_id:
            return None
        protected = {"id", "tenant_id", "created_at", "_seq"}
        record.update({k: v for k, v in data.items() if k not in protected})
        _normalise_dates(record)
        return _public(record)

    async def delete_record(
        self, tenant_id: str, resource_type: ResourceType, record_id: str
    ) -> bool:
        record = self._records[resource_type].get(str(record_id))
        if record and record["tenant_id"] == tenant_id:
            del self._records[resource_type][str(record_id)]
            logger.info(
                "record_deleted",
                resource_type=str(resource_type),
                id=record_id,
                tenant_id=tenant_id,
            )
            return True
        return False

    async def fetch_subscription(self, tenant_id: str) -> SubscriptionRecord | None:
        return self._subscriptions.get(tenant_id)

    async def update_subscription(self, tenant_id: str, patch: dict[str, Any]) -> None:
        current = self._subscriptions.get(tenant_id, SubscriptionRecord())
        changes: dict[str, Any] = {}
        if "plan" in patch:
            changes["plan"] = PlanTier(patch["plan"])
        if "subscription_expires_at" in patch:
            changes["subscription_expires_at"] = as_utc(patch["subscription_expires_at"])
        if "subscription_status" in patch:
            changes["subscription_status"] = patch["subscription_status"]
        self._subscriptions[tenant_id] = replace(current, **changes)

    async def fetch_or_create_bonus_ledger(self, tenant_id: str) -> BonusLedgerEntry:
        row = self._ledgers.get(tenant_id)
        if row is None:
            row = BonusLedgerEntry(tenant_id=tenant_id).to_row()
            self._ledgers[tenant_id] = row
            logger.info("bonus_ledger_created", tenant_id=tenant_id)
        return BonusLedgerEntry.from_row(tenant_id, row)

    async def update_bonus_ledger(self, tenant_id: str, patch: dict[str, Any]) -> None:
        row = self._ledgers.setdefault(tenant_id, BonusLedgerEntry(tenant_id=tenant_id).to_row())
        row.update(patch)

    async def reset_watched_today(self) -> int:
        for row in self._ledgers.values():
            row["watched_today"] = 0
        return len(self._ledgers)


def _normalise_dates(record: dict[str, Any]) -> None:
    for key in _DATE_FIELDS:
        if record.get(key) is not None:
            record[key] = as_utc(record[key])


def _public(record: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in record.items() if not k.startswith("_")}
