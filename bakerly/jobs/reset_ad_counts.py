"""Daily job zeroing every tenant's ``watched_today`` ad counter.

Expected to run once per 24h per deployment (cron, scheduler, ...). The
entitlement core never resets the counter on its own.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from bakerly.config.logging import setup_logging
from bakerly.config.settings import get_settings

if TYPE_CHECKING:
    from bakerly.storage.store import EntitlementStore

logger = structlog.get_logger(__name__)


async def reset_daily_ad_counts(store: EntitlementStore | None = None) -> None:
    """Zero ``watched_today`` for all tenants."""
    if store is None:
        from bakerly.storage.database import get_engine
        from bakerly.storage.repositories.db_store import DatabaseStore

        store = DatabaseStore(get_engine())
    reset = await store.reset_watched_today()
    logger.info("daily_ad_counts_reset", ledgers=reset)


def main() -> None:
    """CLI entry point for the daily reset."""
    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_output=True)
    asyncio.run(reset_daily_ad_counts())


if __name__ == "__main__":
    main()
