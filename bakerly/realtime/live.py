"""Subscribe-and-reload views over a tenant collection."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Generic, TypeVar

import structlog

if TYPE_CHECKING:
    from bakerly.realtime.bus import ChangeBus, ChangeEvent
    from bakerly.types import ResourceType

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RelevanceGuard:
    """Tells an in-flight load whether its result may still be applied.

    Each load takes a token from :meth:`begin`; only the most recent token is
    current, and none is after :meth:`close`.
    """

    def __init__(self) -> None:
        self._generation = 0
        self._closed = False

    def begin(self) -> int:
        self._generation += 1
        return self._generation

    def is_current(self, token: int) -> bool:
        return not self._closed and token == self._generation

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed


class LiveCollection(Generic[T]):
    """Holds the latest full load of a collection and reloads it on change.

    No incremental merging: every change notification triggers a complete
    re-fetch and the last load to start wins.
    """

    def __init__(
        self,
        bus: ChangeBus,
        tenant_id: str,
        resource_type: ResourceType,
        loader: Callable[[], Awaitable[T]],
    ) -> None:
        self._bus = bus
        self._tenant_id = tenant_id
        self._resource_type = resource_type
        self._loader = loader
        self._guard = RelevanceGuard()
        self._unsubscribe: Callable[[], None] | None = None
        self.value: T | None = None

    async def start(self) -> T | None:
        self._unsubscribe = self._bus.subscribe(
            self._tenant_id, self._resource_type, self._on_change
        )
        await self.reload()
        return self.value

    async def reload(self) -> bool:
        """Fetch the collection again. Returns False if the result was discarded."""
        token = self._guard.begin()
        value = await self._loader()
        if not self._guard.is_current(token):
            logger.debug(
                "stale_reload_discarded",
                tenant_id=self._tenant_id,
                resource_type=str(self._resource_type),
            )
            return False
        self.value = value
        return True

    async def _on_change(self, event: ChangeEvent) -> None:
        if self._guard.closed:
            return
        await self.reload()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._guard.close()
