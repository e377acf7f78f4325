"""Streak-freeze ledger.

A freeze is a grace token: spending one on a date makes that date
streak-preserving without touching its color. The ledger is a flat, sorted
list of the date keys on which a freeze was used, persisted as JSON through a
KeyValueStore.

Quota rules:
    - at most one freeze per calendar date (all tiers);
    - free tier: one per calendar month, counted by ``YYYY-MM`` prefix match
      against the stored keys (calendar month, not a rolling 30 days);
    - premium tier: unlimited.

Exceeding the quota is not an error: ``use`` returns False and the caller
decides what to show.

With a gateway attached the ledger is mirrored to the remote store: every
successful ``use`` pushes the full date list, and :meth:`FreezeLedger.restore`
unions the remote list into the local one (another device may have spent a
freeze). Both are best effort; an unreachable remote store is logged and
retried implicitly by the next push.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Literal

from loguru import logger

from habitcore.core.events import FREEZE_USED, FREEZES_MERGED, Event, EventBus
from habitcore.core.exceptions import RemoteError
from habitcore.core.storage import KeyValueStore
from habitcore.core.utils.dates import month_key, today_key, validate_date_key

from .models import PlanTier

if TYPE_CHECKING:
    from habitcore.sync.gateway import RemoteGateway

UNLIMITED: Literal["unlimited"] = "unlimited"
FREE_MONTHLY_QUOTA = 1
DEFAULT_STORAGE_KEY = "streak_freezes.json"


class FreezeLedger:
    """Persisted record of consumed streak freezes.

    Call :meth:`load` once before use. Reads and quota checks are synchronous;
    only :meth:`use`, :meth:`merge` and :meth:`restore` do I/O.

    Args:
        store: Durable key-value storage.
        storage_key: Key the ledger is saved under.
        today: Returns today's date key. Defaults to UTC today.
        bus: Optional event bus notified after a successful ``use`` or a
            merge that added dates.
        gateway: Remote store mirroring the ledger. None keeps it local.
        user_id: Owner of the remote copy; required with *gateway*.
        timeout: Seconds a remote call may take before it counts as offline.
    """

    def __init__(
        self,
        store: KeyValueStore,
        storage_key: str = DEFAULT_STORAGE_KEY,
        today: Callable[[], str] | None = None,
        bus: EventBus | None = None,
        gateway: RemoteGateway | None = None,
        user_id: str = "",
        timeout: float = 10.0,
    ):
        if gateway is not None and not user_id:
            raise ValueError("user_id is required when a gateway is attached")
        self._store = store
        self._storage_key = storage_key
        self._today = today or today_key
        self._bus = bus
        self._gateway = gateway
        self.user_id = user_id
        self.timeout = timeout
        self._used: list[str] = []

    async def load(self) -> FreezeLedger:
        raw = await self._store.load_json(self._storage_key, default={})
        used = raw.get("used", []) if isinstance(raw, dict) else []
        self._used = sorted({d for d in used if isinstance(d, str)})
        return self

    async def _save(self) -> None:
        await self._store.save_json(self._storage_key, {"used": self._used})

    async def _emit(self, name: str, payload: dict) -> None:
        if self._bus is not None:
            await self._bus.emit(Event(name=name, payload=payload, source="freeze_ledger"))

    # -- reads -------------------------------------------------------------

    def __contains__(self, date_key: object) -> bool:
        return date_key in self._used

    @property
    def dates(self) -> tuple[str, ...]:
        return tuple(self._used)

    def was_used(self, date_key: str) -> bool:
        return date_key in self._used

    def used_in_month(self, month: str) -> int:
        return sum(1 for d in self._used if d.startswith(month))

    def used_this_month(self, on: str | None = None) -> int:
        return self.used_in_month(month_key(on or self._today()))

    def used_total(self) -> int:
        return len(self._used)

    def can_use(self, plan_tier: PlanTier | str, on: str | None = None) -> bool:
        """Whether a freeze could be spent on *on* (default today)."""
        date_key = validate_date_key(on or self._today())
        if date_key in self._used:
            return False
        if PlanTier(plan_tier) is PlanTier.PREMIUM:
            return True
        return self.used_in_month(month_key(date_key)) < FREE_MONTHLY_QUOTA

    def remaining(self, plan_tier: PlanTier | str, on: str | None = None) -> int | Literal["unlimited"]:
        if PlanTier(plan_tier) is PlanTier.PREMIUM:
            return UNLIMITED
        return max(0, FREE_MONTHLY_QUOTA - self.used_this_month(on))

    # -- writes ------------------------------------------------------------

    async def use(self, plan_tier: PlanTier | str, on: str | None = None) -> bool:
        """Spend a freeze on *on* (default today). Returns False if not allowed.

        The local ledger is authoritative: a failed push to the remote store
        does not undo the freeze.
        """
        date_key = validate_date_key(on or self._today())
        if not self.can_use(plan_tier, on=date_key):
            logger.debug(f"Freeze refused for {date_key} ({plan_tier} tier)")
            return False

        self._used = sorted([*self._used, date_key])
        await self._save()
        logger.info(f"Streak freeze used for {date_key}")
        await self._emit(FREEZE_USED, {"date_key": date_key})
        await self.push()
        return True

    async def merge(self, dates: Iterable[str]) -> bool:
        """Union *dates* (e.g. a remote copy of the ledger) into the ledger.

        Malformed keys are ignored. Returns True if anything was added.
        """
        incoming = set()
        for d in dates:
            try:
                incoming.add(validate_date_key(d))
            except ValueError:
                logger.warning(f"Ignoring malformed freeze date {d!r}")
        added = sorted(incoming.difference(self._used))
        if not added:
            return False
        self._used = sorted({*self._used, *added})
        await self._save()
        logger.info(f"Merged {len(added)} freeze date(s) into the ledger")
        await self._emit(FREEZES_MERGED, {"dates": added})
        return True

    # -- remote mirror -----------------------------------------------------

    async def push(self) -> bool:
        """Write the full date list to the remote store. Returns False when offline."""
        if self._gateway is None:
            return False
        try:
            await asyncio.wait_for(
                self._gateway.save_freeze_dates(self.user_id, list(self._used)), timeout=self.timeout
            )
        except (RemoteError, TimeoutError) as e:
            logger.info(f"Freeze ledger not synced, will retry with the next change: {e!r}")
            return False
        return True

    async def restore(self) -> bool:
        """Union the remote copy into the local ledger.

        Pushes back when the remote copy lacks local dates. Returns True if
        local dates were added; an unreachable remote store yields False.
        """
        if self._gateway is None:
            return False
        try:
            remote = await asyncio.wait_for(self._gateway.read_freeze_dates(self.user_id), timeout=self.timeout)
        except (RemoteError, TimeoutError) as e:
            logger.info(f"Could not restore freezes from the remote store: {e!r}")
            return False
        remote = [d for d in remote or () if isinstance(d, str)]
        changed = await self.merge(remote)
        if set(self._used) != set(remote):
            await self.push()
        return changed
