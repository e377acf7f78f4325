"""Queued write operations.

Each user write is captured as a :class:`QueuedMutation`: a kind, a JSON-safe
payload, and a client-generated id. The payload is enough to replay the
write against a :class:`RemoteGateway` after a restart.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from habitcore.core.exceptions import ValidationError
from habitcore.core.utils.dates import validate_date_key
from habitcore.habits import cache_keys
from habitcore.habits.models import ActivityLogEntry, DailyLog

from .gateway import RemoteGateway


class MutationKind(StrEnum):
    UPSERT_CHECK = "upsert_check"
    UPSERT_DAILY_LOG = "upsert_daily_log"
    INSERT_ACTIVITY = "insert_activity"
    DELETE_ACTIVITY = "delete_activity"


# Upserts are last-writer-wins, so a newer one can replace a pending older one.
_COALESCABLE = {MutationKind.UPSERT_CHECK, MutationKind.UPSERT_DAILY_LOG}


@dataclass
class QueuedMutation:
    """A write waiting for (or attempting) remote delivery."""

    kind: MutationKind
    payload: dict[str, Any]
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    enqueued_at: float = field(default_factory=time.time)
    attempts: int = 0
    last_error: str | None = None

    def __post_init__(self) -> None:
        try:
            self.kind = MutationKind(self.kind)
        except ValueError as e:
            raise ValidationError(f"Unknown mutation kind: {self.kind!r}") from e

    # -- constructors ------------------------------------------------------

    @classmethod
    def upsert_check(cls, item_id: str, date_key: str, done: bool) -> QueuedMutation:
        return cls(MutationKind.UPSERT_CHECK, {"item_id": item_id, "date_key": date_key, "done": bool(done)})

    @classmethod
    def upsert_daily_log(cls, log: DailyLog) -> QueuedMutation:
        return cls(MutationKind.UPSERT_DAILY_LOG, log.to_dict())

    @classmethod
    def insert_activity(cls, entry: ActivityLogEntry) -> QueuedMutation:
        return cls(MutationKind.INSERT_ACTIVITY, entry.to_dict())

    @classmethod
    def delete_activity(cls, entry_id: str, date_key: str) -> QueuedMutation:
        return cls(MutationKind.DELETE_ACTIVITY, {"id": entry_id, "date_key": date_key})

    # -- identity ----------------------------------------------------------

    @property
    def date_key(self) -> str:
        return self.payload["date_key"]

    @property
    def entity_key(self) -> str:
        """The logical record this write touches. Writes sharing it are applied in order."""
        if self.kind is MutationKind.UPSERT_CHECK:
            return f"check:{self.payload['item_id']}:{self.date_key}"
        if self.kind is MutationKind.UPSERT_DAILY_LOG:
            return f"daily_log:{self.date_key}"
        return f"activity:{self.payload['id']}"

    @property
    def coalescable(self) -> bool:
        return self.kind in _COALESCABLE

    def validate(self) -> QueuedMutation:
        """Raise ValidationError if the payload can never be delivered."""
        try:
            validate_date_key(self.date_key)
            if self.kind is MutationKind.UPSERT_CHECK:
                if not self.payload.get("item_id"):
                    raise ValidationError("upsert_check requires an item_id")
            elif self.kind is MutationKind.UPSERT_DAILY_LOG:
                DailyLog.from_dict(self.payload)
            elif self.kind is MutationKind.INSERT_ACTIVITY:
                ActivityLogEntry.from_dict(self.payload).validate()
            elif not self.payload.get("id"):
                raise ValidationError("delete_activity requires an id")
        except ValidationError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid {self.kind} payload: {e}") from e
        return self

    def invalidates(self, user_id: str) -> list[str]:
        """Cache prefixes made stale once this write lands."""
        if self.kind in (MutationKind.INSERT_ACTIVITY, MutationKind.DELETE_ACTIVITY):
            return [cache_keys.activity_prefix(user_id, self.date_key)]
        return [cache_keys.day_color(user_id, self.date_key), cache_keys.streaks_prefix(user_id)]

    # -- delivery ----------------------------------------------------------

    async def apply(self, gateway: RemoteGateway, user_id: str) -> None:
        p = self.payload
        if self.kind is MutationKind.UPSERT_CHECK:
            await gateway.upsert_check(user_id, p["item_id"], p["date_key"], p["done"])
        elif self.kind is MutationKind.UPSERT_DAILY_LOG:
            await gateway.upsert_daily_log(user_id, DailyLog.from_dict(p))
        elif self.kind is MutationKind.INSERT_ACTIVITY:
            await gateway.insert_activity_log(user_id, ActivityLogEntry.from_dict(p))
        else:
            await gateway.delete_activity_log(user_id, p["id"])

    # -- persistence -------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "payload": self.payload,
            "enqueued_at": self.enqueued_at,
            "attempts": self.attempts,
            "last_error": self.last_error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QueuedMutation:
        return cls(
            kind=MutationKind(data["kind"]),
            payload=dict(data["payload"]),
            id=data["id"],
            enqueued_at=float(data.get("enqueued_at", 0.0)),
            attempts=int(data.get("attempts", 0)),
            last_error=data.get("last_error"),
        )
