"""In-process change notifications for tenant resource collections."""

from __future__ import annotations

import contextlib
import inspect
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

from bakerly.types import ResourceType

logger = structlog.get_logger(__name__)


@dataclass
class ChangeEvent:
    """A record in a tenant's collection was created, updated or deleted."""

    tenant_id: str
    resource_type: ResourceType
    action: str  # "created" | "updated" | "deleted"
    record_id: str = ""
    timestamp: float = 0.0

    def __post_init__(self) -> None:
        if self.timestamp == 0.0:
            self.timestamp = time.monotonic()


ChangeHandler = Callable[[ChangeEvent], Awaitable[None] | None]


class ChangeBus:
    """Fan-out of change events to subscribers of a (tenant, resource type).

    Designed for a single asyncio event loop. Handlers only decide whether to
    re-fetch; they receive no payload beyond the event itself.
    """

    def __init__(self) -> None:
        self._handlers: dict[tuple[str, ResourceType], list[ChangeHandler]] = {}

    def subscribe(
        self, tenant_id: str, resource_type: ResourceType, on_change: ChangeHandler
    ) -> Callable[[], None]:
        """Register ``on_change`` and return a function that unsubscribes it."""
        key = (tenant_id, resource_type)
        self._handlers.setdefault(key, []).append(on_change)

        def unsubscribe() -> None:
            handlers = self._handlers.get(key, [])
            with contextlib.suppress(ValueError):
                handlers.remove(on_change)
            if not handlers and key in self._handlers:
                del self._handlers[key]

        return unsubscribe

    async def publish(self, event: ChangeEvent) -> None:
        for handler in list(self._handlers.get((event.tenant_id, event.resource_type), [])):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                # One failing subscriber must not starve the others
                logger.exception(
                    "change_handler_failed",
                    tenant_id=event.tenant_id,
                    resource_type=str(event.resource_type),
                )

    def subscriber_count(self, tenant_id: str, resource_type: ResourceType) -> int:
        return len(self._handlers.get((tenant_id, resource_type), []))


# Module-level singleton
change_bus = ChangeBus()
