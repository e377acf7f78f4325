"""Wiring: build every progress-engine component from a Config.

Usage::

    config = Config(config_file="habitcore.yaml")
    engine = await HabitEngine.create(config, gateway=MyGateway())

    await engine.queue.enqueue_or_send(QueuedMutation.upsert_check("item-1", "2026-10-19", True))
    summary = await engine.progress.streaks()
    await engine.triggers.on_foreground()
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial

from loguru import logger

from habitcore.core.config import Config
from habitcore.core.events import EventBus
from habitcore.core.exceptions import ConfigurationError
from habitcore.core.storage import KeyValueStore, LocalStorage
from habitcore.core.utils.cache import ClientCache
from habitcore.core.utils.dates import today_key
from habitcore.habits.freeze import FreezeLedger
from habitcore.habits.milestones import MilestoneTracker
from habitcore.habits.models import PlanTier
from habitcore.habits.progress import ProgressService
from habitcore.sync.gateway import RemoteGateway
from habitcore.sync.health import GatewayHealth, GatewayHealthConfig
from habitcore.sync.queue import OfflineMutationQueue
from habitcore.sync.triggers import SyncTriggers


@dataclass
class HabitEngine:
    """All components for one signed-in user, sharing one cache and bus."""

    user_id: str
    plan_tier: PlanTier
    bus: EventBus
    cache: ClientCache
    store: KeyValueStore
    freezes: FreezeLedger
    milestones: MilestoneTracker
    progress: ProgressService
    queue: OfflineMutationQueue
    triggers: SyncTriggers

    @classmethod
    async def create(
        cls,
        config: Config,
        gateway: RemoteGateway,
        store: KeyValueStore | None = None,
        user_id: str | None = None,
    ) -> HabitEngine:
        """Build the engine and restore persisted device-local state."""
        settings = config.validated()
        user_id = user_id or settings.app.user_id
        if not user_id:
            raise ConfigurationError("app.user_id is required (or pass user_id=)")

        if store is None:
            storage_dir = settings.paths.storage_dir or settings.paths.data_dir / "storage"
            store = LocalStorage(base_path=str(storage_dir))

        today = partial(today_key, settings.app.timezone)
        bus = EventBus()
        cache = ClientCache()

        freezes = FreezeLedger(
            store,
            today=today,
            bus=bus,
            gateway=gateway,
            user_id=user_id,
            timeout=settings.queue.timeout_seconds,
        )
        await freezes.load()
        # another device may have spent freezes; offline leaves the local ledger as is
        await freezes.restore()

        health = GatewayHealth(
            GatewayHealthConfig(
                failure_threshold=settings.queue.failure_threshold,
                cooldown_seconds=settings.queue.cooldown_seconds,
            )
        )
        queue = OfflineMutationQueue(
            gateway,
            store,
            user_id,
            cache=cache,
            bus=bus,
            storage_key=settings.queue.storage_key,
            timeout=settings.queue.timeout_seconds,
            health=health,
        )
        await queue.load()

        progress = ProgressService(
            gateway,
            user_id,
            cache=cache,
            freezes=freezes,
            rest_days=settings.streaks.rest_days,
            today=today,
            lookback_days=settings.streaks.lookback_days,
            ttls={
                "routine_items": settings.cache.routine_items_ttl,
                "day_color": settings.cache.day_color_ttl,
                "streaks": settings.cache.streaks_ttl,
            },
        )
        progress.attach(bus)

        triggers = SyncTriggers(queue, cache=cache, bus=bus)
        triggers.attach()

        logger.info(f"Habit engine ready for user {user_id} ({queue.size()} queued write(s))")
        return cls(
            user_id=user_id,
            plan_tier=PlanTier(settings.app.plan_tier),
            bus=bus,
            cache=cache,
            store=store,
            freezes=freezes,
            milestones=MilestoneTracker(store, horizon=settings.milestones.horizon, bus=bus),
            progress=progress,
            queue=queue,
            triggers=triggers,
        )

    async def use_freeze(self, on: str | None = None) -> bool:
        return await self.freezes.use(self.plan_tier, on=on)
