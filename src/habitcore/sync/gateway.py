"""Remote data gateway contract.

The remote relational store is an external collaborator. The progress
engine only needs the request/response calls below; a host application
implements them against its backend and maps failures onto the
:class:`~habitcore.core.exceptions.RemoteError` hierarchy:

    - ``NetworkError``: unreachable, offline, timed out;
    - ``ServerError``: the server answered with a failure;
    - ``AuthenticationError``: the session was rejected.

Writes must be idempotent at this boundary. Checks and daily logs are
upserts keyed by (user, item, date) / (user, date); activity inserts carry a
client-generated id, and inserting an id that already exists is a no-op. The
streak-freeze list is stored whole and overwritten on every save.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from habitcore.habits.models import ActivityLogEntry, DailyCheck, DailyLog, RoutineItem


class RemoteGateway(ABC):
    """Abstract request/response access to the remote store."""

    @abstractmethod
    async def read_routine_items(self, user_id: str) -> list[RoutineItem]:
        """Active and inactive routine items for the user."""

    @abstractmethod
    async def read_checks(self, user_id: str, start: str, end: str) -> list[DailyCheck]:
        """Checks with ``start <= date_key <= end``."""

    @abstractmethod
    async def read_daily_log(self, user_id: str, date_key: str) -> DailyLog | None:
        """The daily log for one date, if any."""

    @abstractmethod
    async def read_daily_logs(self, user_id: str, start: str, end: str) -> list[DailyLog]:
        """Daily logs with ``start <= date_key <= end``."""

    @abstractmethod
    async def insert_activity_log(self, user_id: str, entry: ActivityLogEntry) -> None:
        """Insert an activity entry. Re-inserting the same ``entry.id`` is a no-op."""

    @abstractmethod
    async def delete_activity_log(self, user_id: str, entry_id: str) -> None:
        """Delete an activity entry. Deleting a missing id is a no-op."""

    @abstractmethod
    async def upsert_check(self, user_id: str, item_id: str, date_key: str, done: bool) -> None:
        """Create or overwrite the check for (item, date)."""

    @abstractmethod
    async def upsert_daily_log(self, user_id: str, log: DailyLog) -> None:
        """Create or overwrite the daily log for ``log.date_key``."""

    @abstractmethod
    async def read_freeze_dates(self, user_id: str) -> list[str]:
        """The remote copy of the user's streak-freeze dates (empty if none)."""

    @abstractmethod
    async def save_freeze_dates(self, user_id: str, dates: list[str]) -> None:
        """Overwrite the remote copy of the user's streak-freeze dates."""
