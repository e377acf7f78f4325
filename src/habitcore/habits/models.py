"""
Habit data models.

Plain dataclasses mirroring the rows the remote store hands back, plus the
derived values (DayColor, StreakSummary) the progress engine computes. Pure
data: no I/O.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from habitcore.core.exceptions import ValidationError
from habitcore.core.utils.dates import validate_date_key


class DayColor(StrEnum):
    """Completion state of one calendar day."""

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    EMPTY = "empty"


class Section(StrEnum):
    MORNING = "morning"
    ANYTIME = "anytime"
    NIGHT = "night"


class DayMode(StrEnum):
    NORMAL = "normal"
    TRAVEL = "travel"
    SICK = "sick"


class PlanTier(StrEnum):
    FREE = "free"
    PREMIUM = "premium"


ACTIVITY_KEYS = frozenset(
    {
        "rowing",
        "walking",
        "running",
        "sauna",
        "cold",
        "neuro",
        "workout",
        "sleep_hours",
        "sleep_score",
        "supplements",
        "meditation",
        "hydration",
        "pr",
        "wod",
        "race_log",
        "race_train",
    }
)

ACTIVITY_UNITS = frozenset(
    {"meters", "minutes", "miles", "steps", "sessions", "hours", "glasses", "count", "score", "seconds", "pounds"}
)


# ── Stored rows ──────────────────────────────────────────────────────


@dataclass
class RoutineItem:
    """A habit the user tracks. Soft-disabled (is_active=False), never deleted."""

    id: str
    label: str
    section: Section = Section.ANYTIME
    is_non_negotiable: bool = False
    days_of_week: list[int] | None = None  # ISO 1-7; None/empty = every day
    is_active: bool = True
    emoji: str | None = None
    sort_order: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoutineItem:
        return cls(
            id=str(data["id"]),
            label=data.get("label") or "",
            section=Section(data.get("section") or Section.ANYTIME),
            is_non_negotiable=bool(data.get("is_non_negotiable", False)),
            days_of_week=list(data["days_of_week"]) if data.get("days_of_week") else None,
            is_active=bool(data.get("is_active", True)),
            emoji=data.get("emoji"),
            sort_order=data.get("sort_order"),
        )


@dataclass(frozen=True)
class DailyCheck:
    """Whether one routine item was done on one date."""

    routine_item_id: str
    date_key: str
    done: bool

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DailyCheck:
        return cls(
            routine_item_id=str(data["routine_item_id"]),
            date_key=data.get("date_key") or data["date"],
            done=bool(data.get("done", False)),
        )


@dataclass(frozen=True)
class DailyLog:
    """Per-date log: day mode plus the two workout-satisfaction flags."""

    date_key: str
    day_mode: DayMode = DayMode.NORMAL
    did_rowing: bool = False
    did_weights: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DailyLog:
        return cls(
            date_key=data.get("date_key") or data["date"],
            day_mode=DayMode(data.get("day_mode") or DayMode.NORMAL),
            did_rowing=bool(data.get("did_rowing")),
            did_weights=bool(data.get("did_weights")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date_key": self.date_key,
            "day_mode": self.day_mode.value,
            "did_rowing": self.did_rowing,
            "did_weights": self.did_weights,
        }


@dataclass(frozen=True)
class ActivityLogEntry:
    """Append-only activity record. ``id`` is generated on the client so a
    retried insert can be recognised as the same record by the remote store."""

    date_key: str
    activity_key: str
    value: float
    unit: str
    notes: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def validate(self) -> ActivityLogEntry:
        validate_date_key(self.date_key)
        if self.activity_key not in ACTIVITY_KEYS:
            raise ValidationError(f"Unknown activity key: {self.activity_key!r}")
        if self.unit not in ACTIVITY_UNITS:
            raise ValidationError(f"Unknown activity unit: {self.unit!r}")
        if isinstance(self.value, bool) or not isinstance(self.value, int | float):
            raise ValidationError(f"Activity value must be numeric, got {self.value!r}")
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date_key": self.date_key,
            "activity_key": self.activity_key,
            "value": self.value,
            "unit": self.unit,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActivityLogEntry:
        return cls(
            id=str(data["id"]),
            date_key=data["date_key"],
            activity_key=data["activity_key"],
            value=data["value"],
            unit=data["unit"],
            notes=data.get("notes"),
        )


# ── Derived values ───────────────────────────────────────────────────


@dataclass(frozen=True)
class DayResult:
    """A day's color, as fed to the streak calculator."""

    date_key: str
    color: DayColor


@dataclass(frozen=True)
class StreakSummary:
    """Streak state derived from a day-color history. Never persisted."""

    current: int = 0
    best: int = 0
    last_green_date: str | None = None
    days_since_last_green: int | None = None  # None = no green day in history
    previous_best: int = 0
    total_green_days: int = 0
    green_days_this_week: int = 0
    green_days_last_week: int = 0
    green_days_this_month: int = 0
    last_seven: tuple[DayResult, ...] = ()
    # category -> consecutive days back from today with a done check in it
    category_streaks: dict[str, int] = field(default_factory=lambda: {"movement": 0, "mind": 0, "sleep": 0})
    core_hit_rate_this_week: int | None = None  # None = computed without raw checks
