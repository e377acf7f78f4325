"""Opportunistic flush triggers.

The core owns no timers and assumes no platform lifecycle API. The host
calls these hooks when something happens that makes a flush worthwhile
(network back, app brought to the foreground, pull-to-refresh), or publishes
the matching events on the bus after :meth:`SyncTriggers.attach`.
"""

from __future__ import annotations

from loguru import logger

from habitcore.core.events import (
    APP_FOREGROUND,
    CONNECTIVITY_RESTORED,
    REFRESH_REQUESTED,
    Event,
    EventBus,
)
from habitcore.core.utils.cache import ClientCache

from .queue import FlushResult, OfflineMutationQueue


class SyncTriggers:
    """Host lifecycle hooks that drive :class:`OfflineMutationQueue` flushes."""

    def __init__(self, queue: OfflineMutationQueue, cache: ClientCache | None = None, bus: EventBus | None = None):
        self.queue = queue
        self.cache = cache
        self.bus = bus

    async def on_reconnect(self) -> FlushResult:
        """Connectivity is back: the gateway deserves a fresh chance."""
        self.queue.health.reset()
        return await self.queue.flush()

    async def on_foreground(self) -> FlushResult:
        """App foregrounded: supersede any running flush with a new one.

        The running flush finishes its in-flight call before it stops, so
        nothing already sent is lost or sent twice.
        """
        if self.queue.is_flushing:
            logger.debug("Foreground event superseding the running flush")
            self.queue.abandon_flush()
        return await self.queue.flush()

    async def on_refresh(self) -> FlushResult:
        """Pull-to-refresh: push local writes, then drop every cached read."""
        result = await self.queue.flush()
        if self.cache is not None:
            self.cache.clear()
        return result

    def attach(self, bus: EventBus | None = None) -> None:
        """Subscribe the hooks to their lifecycle events on *bus*."""
        bus = bus or self.bus
        if bus is None:
            raise ValueError("attach() needs an EventBus")
        self.bus = bus
        bus.on(CONNECTIVITY_RESTORED, self._handle_reconnect)
        bus.on(APP_FOREGROUND, self._handle_foreground)
        bus.on(REFRESH_REQUESTED, self._handle_refresh)

    async def _handle_reconnect(self, event: Event) -> None:
        await self.on_reconnect()

    async def _handle_foreground(self, event: Event) -> None:
        await self.on_foreground()

    async def _handle_refresh(self, event: Event) -> None:
        await self.on_refresh()
