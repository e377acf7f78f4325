"""Offline mutation queue.

User writes (check toggles, daily-log edits, activity logs) go through
:meth:`OfflineMutationQueue.enqueue_or_send`. The queue tries to deliver the
write right away; if the remote store cannot be reached it appends the write
to durable storage and returns normally, so the user is never blocked on
connectivity. :meth:`OfflineMutationQueue.flush` replays stored writes later.

Per-mutation lifecycle::

    pending -> in-flight -> committed            (removed from the queue)
                         -> pending (retry)      (attempts += 1, kept in place)

Guarantees:
    - FIFO: entries are attempted in enqueue order and an entry is removed
      only after the gateway confirms it.
    - Writes for the same logical record (see ``QueuedMutation.entity_key``)
      are applied in the order they were made. A new write for a record that
      is already queued, or currently being sent, is queued behind it; a
      failed entry holds back later entries for the same record until the
      next flush. A queued upsert supersedes every older queued upsert for
      its record and takes the last position.
    - At most one flush runs at a time. Concurrent ``flush()`` calls run one
      after another; the later one simply finds less to do.
    - Delivery is at-least-once. Every mutation carries a client-generated id
      and the gateway's writes are idempotent, so a retry never creates a
      duplicate record.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import StrEnum

from loguru import logger

from habitcore.core.events import ACTIVITY_LOGGED, CHECKS_CHANGED, QUEUE_CHANGED, Event, EventBus
from habitcore.core.exceptions import (
    AuthenticationError,
    NetworkError,
    RemoteError,
    StorageError,
    TransientIOError,
)
from habitcore.core.storage import KeyValueStore
from habitcore.core.utils.cache import ClientCache

from .gateway import RemoteGateway
from .health import GatewayHealth
from .mutations import MutationKind, QueuedMutation

DEFAULT_STORAGE_KEY = "offline_queue.json"
DEFAULT_TIMEOUT = 10.0


class Delivery(StrEnum):
    """Outcome of :meth:`OfflineMutationQueue.enqueue_or_send`."""

    SENT = "sent"
    QUEUED = "queued"


@dataclass(frozen=True)
class FlushResult:
    succeeded: int = 0
    failed: int = 0
    remaining: int = 0
    abandoned: bool = False


class OfflineMutationQueue:
    """Durable FIFO of writes that have not reached the remote store yet.

    Args:
        gateway: Remote store the writes are delivered to.
        store: Durable local storage for the pending entries.
        user_id: Owner of every write in this queue.
        cache: Read cache to invalidate after each confirmed write.
        bus: Event bus for ``queue.changed`` / ``checks.changed`` /
            ``activity.logged`` notifications.
        storage_key: Key the queue is persisted under.
        timeout: Seconds a single remote call may take before it counts as
            a network failure.
        health: Failure tracker; while it reports the gateway as down, new
            writes are queued without an immediate attempt.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        store: KeyValueStore,
        user_id: str,
        cache: ClientCache | None = None,
        bus: EventBus | None = None,
        storage_key: str = DEFAULT_STORAGE_KEY,
        timeout: float = DEFAULT_TIMEOUT,
        health: GatewayHealth | None = None,
    ):
        self._gateway = gateway
        self._store = store
        self.user_id = user_id
        self._cache = cache
        self._bus = bus
        self._storage_key = storage_key
        self.timeout = timeout
        self.health = health or GatewayHealth()

        self._pending: list[QueuedMutation] = []
        self._in_flight: str | None = None
        self._sending: dict[str, int] = {}
        self._send_locks: dict[str, asyncio.Lock] = {}
        self._flush_lock = asyncio.Lock()
        self._abandon = False

    # -- state -------------------------------------------------------------

    async def load(self) -> OfflineMutationQueue:
        """Restore pending entries persisted by a previous session."""
        raw = await self._store.load_json(self._storage_key, default=[])
        restored: list[QueuedMutation] = []
        for item in raw if isinstance(raw, list) else []:
            try:
                restored.append(QueuedMutation.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Dropping unreadable queued mutation {item!r}: {e}")
        known = {m.id for m in restored}
        self._pending = restored + [m for m in self._pending if m.id not in known]
        if self._pending:
            logger.info(f"Offline queue restored with {len(self._pending)} pending write(s)")
        return self

    def size(self) -> int:
        return len(self._pending)

    def pending(self) -> list[QueuedMutation]:
        return list(self._pending)

    @property
    def is_flushing(self) -> bool:
        return self._flush_lock.locked()

    async def _persist(self) -> None:
        try:
            await self._store.save_json(self._storage_key, [m.to_dict() for m in self._pending])
        except StorageError as e:
            # Entries stay in memory and are written with the next change.
            logger.error(f"Could not persist offline queue ({len(self._pending)} pending): {e}")
        await self._emit(QUEUE_CHANGED, {"size": len(self._pending)})

    async def _emit(self, name: str, payload: dict) -> None:
        if self._bus is not None:
            await self._bus.emit(Event(name=name, payload=payload, source="offline_queue"))

    # -- writes ------------------------------------------------------------

    async def enqueue_or_send(self, mutation: QueuedMutation) -> Delivery:
        """Deliver *mutation* now, or queue it durably if that fails.

        Raises ValidationError for a malformed mutation. Remote failures are
        never raised: the mutation is queued and ``Delivery.QUEUED`` returned.
        """
        mutation.validate()
        key = mutation.entity_key
        async with self._sending_guard(key):
            if self._has_pending(key):
                await self._enqueue(mutation)
                return Delivery.QUEUED
            if not self.health.is_available():
                logger.debug(f"Gateway marked down; queueing {mutation.kind} without trying")
                await self._enqueue(mutation)
                return Delivery.QUEUED
            try:
                await self._deliver(mutation)
            except RemoteError as e:
                mutation.attempts += 1
                mutation.last_error = str(e) or type(e).__name__
                logger.info(f"Write {mutation.kind} for {mutation.date_key} queued offline: {mutation.last_error}")
                await self._enqueue(mutation)
                return Delivery.QUEUED
        await self._committed(mutation)
        return Delivery.SENT

    @asynccontextmanager
    async def _sending_guard(self, entity_key: str) -> AsyncIterator[None]:
        """Serialize immediate sends for one logical record."""
        lock = self._send_locks.setdefault(entity_key, asyncio.Lock())
        self._sending[entity_key] = self._sending.get(entity_key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._sending[entity_key] -= 1
            if not self._sending[entity_key]:
                del self._sending[entity_key]
                self._send_locks.pop(entity_key, None)

    def _has_pending(self, entity_key: str) -> bool:
        return any(m.entity_key == entity_key for m in self._pending)

    async def _enqueue(self, mutation: QueuedMutation) -> None:
        """Append *mutation*; an upsert first replaces every older entry for its record.

        The entry currently being sent is left alone, so the new write still
        lands after it.
        """
        if mutation.coalescable:
            kept = [
                m for m in self._pending if m.entity_key != mutation.entity_key or m.id == self._in_flight
            ]
            if len(kept) != len(self._pending):
                logger.debug(
                    f"Coalescing {len(self._pending) - len(kept)} queued write(s) for {mutation.entity_key}"
                )
                self._pending = kept
        self._pending.append(mutation)
        await self._persist()

    async def _deliver(self, mutation: QueuedMutation) -> None:
        """One remote attempt, bounded by ``timeout``. Updates gateway health."""
        try:
            await asyncio.wait_for(mutation.apply(self._gateway, self.user_id), timeout=self.timeout)
        except TimeoutError as e:
            self.health.record_failure()
            raise NetworkError(f"{mutation.kind} timed out after {self.timeout}s") from e
        except TransientIOError:
            self.health.record_failure()
            raise
        self.health.record_success()

    async def _committed(self, mutation: QueuedMutation) -> None:
        if self._cache is not None:
            for prefix in mutation.invalidates(self.user_id):
                self._cache.clear(prefix)
        if mutation.kind in (MutationKind.INSERT_ACTIVITY, MutationKind.DELETE_ACTIVITY):
            await self._emit(ACTIVITY_LOGGED, {"date_key": mutation.date_key, "id": mutation.payload["id"]})
        else:
            await self._emit(CHECKS_CHANGED, {"date_key": mutation.date_key})

    # -- replay ------------------------------------------------------------

    def abandon_flush(self) -> None:
        """Ask a running flush to stop once its in-flight call has finished."""
        if self.is_flushing:
            self._abandon = True

    async def flush(self) -> FlushResult:
        """Replay pending writes in FIFO order.

        Stops early on a network or authentication failure (nothing else
        would get through either) or when :meth:`abandon_flush` is called.
        A server-side failure holds back only the failed record's later
        entries. Entries that fail stay queued for the next flush.
        """
        async with self._flush_lock:
            self._abandon = False
            succeeded = failed = 0
            attempted: set[str] = set()
            blocked: set[str] = set()
            stopped = False

            while True:
                if self._abandon:
                    stopped = True
                    logger.info("Flush abandoned; remaining writes stay queued")
                    break
                mutation = next(
                    (m for m in self._pending if m.id not in attempted and m.entity_key not in blocked),
                    None,
                )
                if mutation is None:
                    break
                attempted.add(mutation.id)

                self._in_flight = mutation.id
                try:
                    await self._deliver(mutation)
                except (NetworkError, AuthenticationError) as e:
                    failed += 1
                    await self._record_failure(mutation, e)
                    break
                except RemoteError as e:
                    failed += 1
                    blocked.add(mutation.entity_key)
                    await self._record_failure(mutation, e)
                    continue
                except Exception as e:
                    logger.exception(f"Unexpected error replaying {mutation.kind} {mutation.id}")
                    failed += 1
                    blocked.add(mutation.entity_key)
                    await self._record_failure(mutation, e)
                    continue
                finally:
                    self._in_flight = None

                succeeded += 1
                self._pending = [m for m in self._pending if m.id != mutation.id]
                await self._persist()
                await self._committed(mutation)

            result = FlushResult(succeeded=succeeded, failed=failed, remaining=len(self._pending), abandoned=stopped)
            if succeeded or failed:
                logger.info(
                    f"Offline queue flush: {succeeded} delivered, {failed} failed, {result.remaining} remaining"
                )
            return result

    async def _record_failure(self, mutation: QueuedMutation, error: Exception) -> None:
        mutation.attempts += 1
        mutation.last_error = str(error) or type(error).__name__
        logger.debug(f"Replay of {mutation.kind} {mutation.id} failed (attempt {mutation.attempts}): {error}")
        await self._persist()
