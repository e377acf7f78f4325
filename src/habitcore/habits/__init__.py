"""Habit progress: day classification, streaks, freezes and milestones.

The pure computations (``classify``, ``compute_streaks``, ``next_milestone``)
have no I/O. ``FreezeLedger`` and ``MilestoneTracker`` persist device-local
state through a KeyValueStore; ``ProgressService`` is the cached read path.
"""

from .classifier import classify, is_workout_label, items_for_day
from .freeze import UNLIMITED, FreezeLedger
from .milestones import (
    GREEN_TOTAL_MILESTONES,
    STREAK_MILESTONES,
    Milestone,
    MilestoneKind,
    MilestoneProgress,
    MilestoneTracker,
    NextMilestones,
    next_milestone,
    progress_toward,
)
from .models import (
    ActivityLogEntry,
    DailyCheck,
    DailyLog,
    DayColor,
    DayMode,
    DayResult,
    PlanTier,
    RoutineItem,
    Section,
    StreakSummary,
)
from .progress import ProgressService
from .streaks import CATEGORY_KEYWORDS, StreakCalculator, category_streaks, compute_streaks, core_hit_rate, is_rest_day

__all__ = [
    "CATEGORY_KEYWORDS",
    "GREEN_TOTAL_MILESTONES",
    "STREAK_MILESTONES",
    "UNLIMITED",
    "ActivityLogEntry",
    "DailyCheck",
    "DailyLog",
    "DayColor",
    "DayMode",
    "DayResult",
    "FreezeLedger",
    "Milestone",
    "MilestoneKind",
    "MilestoneProgress",
    "MilestoneTracker",
    "NextMilestones",
    "PlanTier",
    "ProgressService",
    "RoutineItem",
    "Section",
    "StreakCalculator",
    "StreakSummary",
    "category_streaks",
    "classify",
    "compute_streaks",
    "core_hit_rate",
    "is_rest_day",
    "is_workout_label",
    "items_for_day",
    "next_milestone",
    "progress_toward",
]
