"""Shared test fixtures for habitcore."""

import asyncio
import tempfile
from collections import Counter

import pytest

from habitcore.core.storage import MemoryStorage
from habitcore.habits.models import ActivityLogEntry, DailyCheck, DailyLog, RoutineItem
from habitcore.sync.gateway import RemoteGateway


class FakeGateway(RemoteGateway):
    """In-memory remote store with switchable failures.

    Writes behave like the real store: upserts overwrite, activity inserts
    are keyed by the client-generated id.
    """

    def __init__(self):
        self.items: list[RoutineItem] = []
        self.checks: dict[tuple[str, str], bool] = {}
        self.logs: dict[str, DailyLog] = {}
        self.activities: dict[str, ActivityLogEntry] = {}
        self.insert_calls: Counter[str] = Counter()
        self.writes: list[tuple] = []
        self.reads = 0
        self.freeze_dates: list[str] = []
        self.fail_with: Exception | None = None
        self.delay = 0.0

    async def _call(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with

    async def read_routine_items(self, user_id):
        self.reads += 1
        await self._call()
        return list(self.items)

    async def read_checks(self, user_id, start, end):
        self.reads += 1
        await self._call()
        return [DailyCheck(item_id, d, done) for (item_id, d), done in self.checks.items() if start <= d <= end]

    async def read_daily_log(self, user_id, date_key):
        self.reads += 1
        await self._call()
        return self.logs.get(date_key)

    async def read_daily_logs(self, user_id, start, end):
        self.reads += 1
        await self._call()
        return [log for d, log in self.logs.items() if start <= d <= end]

    async def insert_activity_log(self, user_id, entry):
        await self._call()
        self.insert_calls[entry.id] += 1
        self.activities.setdefault(entry.id, entry)
        self.writes.append(("insert_activity", entry.id))

    async def delete_activity_log(self, user_id, entry_id):
        await self._call()
        self.activities.pop(entry_id, None)
        self.writes.append(("delete_activity", entry_id))

    async def upsert_check(self, user_id, item_id, date_key, done):
        await self._call()
        self.checks[(item_id, date_key)] = done
        self.writes.append(("upsert_check", item_id, date_key, done))

    async def upsert_daily_log(self, user_id, log):
        await self._call()
        self.logs[log.date_key] = log
        self.writes.append(("upsert_daily_log", log.date_key))

    async def read_freeze_dates(self, user_id):
        self.reads += 1
        await self._call()
        return list(self.freeze_dates)

    async def save_freeze_dates(self, user_id, dates):
        await self._call()
        self.freeze_dates = list(dates)
        self.writes.append(("save_freeze_dates", tuple(dates)))


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def store():
    return MemoryStorage()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def clock():
    return FakeClock()
