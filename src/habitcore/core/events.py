"""Change notifications.

The engine announces that something changed (routines edited, a queued
write landed, a freeze was spent) without knowing who listens. UI observers
and the engine's own cache invalidation subscribe by event name, with plain
functions or coroutine functions.

Usage::

    from habitcore.core.events import QUEUE_CHANGED, Event, EventBus

    bus = EventBus()
    bus.on(QUEUE_CHANGED, lambda e: badge.update(e.payload["size"]))
    await bus.emit(Event(name=QUEUE_CHANGED, payload={"size": 2}, source="offline_queue"))
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

# Host -> engine
ROUTINES_CHANGED = "routines.changed"
REFRESH_REQUESTED = "refresh.requested"
CONNECTIVITY_RESTORED = "connectivity.restored"
APP_FOREGROUND = "app.foreground"

# Engine -> observers
QUEUE_CHANGED = "queue.changed"
ACTIVITY_LOGGED = "activity.logged"
CHECKS_CHANGED = "checks.changed"
FREEZE_USED = "freeze.used"
FREEZES_MERGED = "freezes.merged"
MILESTONE_REACHED = "milestone.reached"

Hook = Callable[["Event"], None] | Callable[["Event"], Awaitable[None]]


@dataclass(frozen=True)
class Event:
    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
    source: str = ""


class EventBus:
    """In-process publish/subscribe.

    Hooks run in subscription order, named subscribers before catch-all ones.
    A hook that raises is logged and skipped: neither the other hooks nor
    the emitting component ever see the error.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Hook]] = {}
        self._catch_all: list[Hook] = []
        self._pending: set[asyncio.Task] = set()

    def on(self, event_name: str, hook: Hook) -> None:
        self._subscribers.setdefault(event_name, []).append(hook)

    def on_all(self, hook: Hook) -> None:
        """Subscribe *hook* to every event."""
        self._catch_all.append(hook)

    def off(self, event_name: str, hook: Hook) -> None:
        """Unsubscribe *hook*; unknown hooks are ignored."""
        hooks = self._subscribers.get(event_name, [])
        if hook in hooks:
            hooks.remove(hook)

    def listener_count(self, event_name: str) -> int:
        return len(self._subscribers.get(event_name, ())) + len(self._catch_all)

    def _targets(self, event: Event) -> list[Hook]:
        return [*self._subscribers.get(event.name, ()), *self._catch_all]

    async def emit(self, event: Event) -> None:
        for hook in self._targets(event):
            try:
                result = hook(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.warning(f"{event.name} hook {getattr(hook, '__qualname__', hook)!r} failed: {exc}")

    def emit_sync(self, event: Event) -> None:
        """Emit without awaiting.

        Coroutine hooks are scheduled on the running loop; with no running
        loop they are skipped and only plain hooks run.
        """
        try:
            loop: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        for hook in self._targets(event):
            if inspect.iscoroutinefunction(hook):
                if loop is None:
                    logger.debug(f"No running loop; skipped async {event.name} hook {hook!r}")
                    continue
                task = loop.create_task(self._guarded(hook, event))
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)
                continue
            try:
                hook(event)
            except Exception as exc:
                logger.warning(f"{event.name} hook {getattr(hook, '__qualname__', hook)!r} failed: {exc}")

    @staticmethod
    async def _guarded(hook: Hook, event: Event) -> None:
        try:
            await hook(event)
        except Exception as exc:
            logger.warning(f"{event.name} hook {getattr(hook, '__qualname__', hook)!r} failed: {exc}")
