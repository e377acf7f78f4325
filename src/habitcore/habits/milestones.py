"""Milestones: fixed thresholds on streak length and total green days.

Looking up the next milestone is stateless. Remembering which milestones
were already celebrated is not, so :class:`MilestoneTracker` keeps that
bookkeeping in a KeyValueStore.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import StrEnum

from loguru import logger

from habitcore.core.events import MILESTONE_REACHED, Event, EventBus
from habitcore.core.storage import KeyValueStore


class MilestoneKind(StrEnum):
    STREAK = "streak"
    GREEN_TOTAL = "green_total"
    PERSONAL_BEST = "personal_best"


@dataclass(frozen=True)
class Milestone:
    id: str
    emoji: str
    title: str
    message: str
    threshold: int
    kind: MilestoneKind


def _streak(threshold: int, emoji: str, title: str, message: str) -> Milestone:
    return Milestone(f"streak-{threshold}", emoji, title, message, threshold, MilestoneKind.STREAK)


def _green(threshold: int, emoji: str, title: str, message: str) -> Milestone:
    return Milestone(f"green-{threshold}", emoji, title, message, threshold, MilestoneKind.GREEN_TOTAL)


STREAK_MILESTONES: tuple[Milestone, ...] = (
    _streak(3, "🔥", "On Fire", "3 green days in a row. The habit is forming."),
    _streak(7, "⚡", "One Week", "A full week of consistency. That's rare."),
    _streak(14, "💪", "Two Weeks", "14 days. This is where habits start to stick."),
    _streak(21, "🧠", "Three Weeks", "21 days. This is who you are now."),
    _streak(30, "🏆", "One Month", "30 consecutive green days. Most people never get here."),
    _streak(50, "⭐", "Fifty Days", "50 days. You've built something most people only talk about."),
    _streak(75, "💎", "Seventy-Five", "75 days. Discipline is just who you are at this point."),
    _streak(100, "👑", "The Hundred", "100 consecutive days."),
    _streak(150, "🌟", "150 Days", "Half a year of consistency. Remarkable."),
    _streak(200, "🔱", "Two Hundred", "200 days. This isn't a streak anymore, it's a lifestyle."),
    _streak(365, "🎆", "One Full Year", "365 green days in a row."),
)

GREEN_TOTAL_MILESTONES: tuple[Milestone, ...] = (
    _green(1, "🌱", "First Green Day", "Your journey started today."),
    _green(10, "🌿", "Ten Green Days", "10 green days under your belt. You're building proof."),
    _green(25, "🌳", "Twenty-Five", "25 green days. The compound effect is working."),
    _green(50, "🏅", "Fifty Green", "50 days of showing up."),
    _green(100, "💯", "The Century", "100 green days total."),
    _green(200, "🏛️", "Two Hundred", "200 green days."),
    _green(365, "🎯", "Full Year", "365 total green days. A year of showing up."),
)

DEFAULT_HORIZON = 30
_PB_PREFIX = "pb-"


@dataclass(frozen=True)
class NextMilestones:
    streak_next: Milestone | None
    total_next: Milestone | None


@dataclass(frozen=True)
class MilestoneProgress:
    """Progress-bar view toward the next streak milestone."""

    milestone: Milestone
    previous_threshold: int
    percent: float
    remaining: int


def _first_above(milestones: tuple[Milestone, ...], value: int) -> Milestone | None:
    return next((m for m in milestones if m.threshold > value), None)


def next_milestone(current_streak: int, total_green_days: int) -> NextMilestones:
    """Smallest streak and green-total thresholds strictly above the inputs."""
    return NextMilestones(
        streak_next=_first_above(STREAK_MILESTONES, current_streak),
        total_next=_first_above(GREEN_TOTAL_MILESTONES, total_green_days),
    )


def progress_toward(
    current: int,
    milestones: tuple[Milestone, ...] = STREAK_MILESTONES,
    horizon: int = DEFAULT_HORIZON,
) -> MilestoneProgress | None:
    """Progress from the previous threshold to the next one.

    Returns None when no milestone remains, or when the next one is more than
    *horizon* units away (long-range projections are not shown).
    """
    target = _first_above(milestones, current)
    if target is None:
        return None
    remaining = target.threshold - current
    if remaining > horizon:
        return None
    previous = max((m.threshold for m in milestones if m.threshold < target.threshold), default=0)
    span = target.threshold - previous
    percent = min(100.0, max(0.0, (current - previous) / span * 100))
    return MilestoneProgress(milestone=target, previous_threshold=previous, percent=percent, remaining=remaining)


class MilestoneTracker:
    """Tracks which milestones have been earned and which one to celebrate.

    Args:
        store: Durable key-value storage for achieved ids, the longest
            celebrated streak and the pending popup.
        horizon: Progress display horizon, see :func:`progress_toward`.
        bus: Optional event bus notified when a new milestone is reached.
    """

    ACHIEVED_KEY = "milestones/achieved.json"
    PENDING_KEY = "milestones/pending.json"
    BEST_KEY = "milestones/personal_best.json"

    def __init__(self, store: KeyValueStore, horizon: int = DEFAULT_HORIZON, bus: EventBus | None = None):
        self._store = store
        self.horizon = horizon
        self._bus = bus

    def next_milestone(self, current_streak: int, total_green_days: int) -> NextMilestones:
        return next_milestone(current_streak, total_green_days)

    def streak_progress(self, current_streak: int) -> MilestoneProgress | None:
        return progress_toward(current_streak, STREAK_MILESTONES, self.horizon)

    async def achieved(self) -> set[str]:
        ids = await self._store.load_json(self.ACHIEVED_KEY, default=[])
        if not isinstance(ids, list):
            return set()
        return {i for i in ids if isinstance(i, str) and not i.startswith(_PB_PREFIX)}

    async def celebrated_best(self) -> int:
        """Longest streak already celebrated as a personal best (0 if none)."""
        doc = await self._store.load_json(self.BEST_KEY, default={})
        best = doc.get("streak") if isinstance(doc, dict) else None
        return best if isinstance(best, int) else 0

    async def earned(self) -> list[Milestone]:
        """Earned streak and green-total milestones, for a trophy case."""
        achieved = await self.achieved()
        return [m for m in (*STREAK_MILESTONES, *GREEN_TOTAL_MILESTONES) if m.id in achieved]

    async def check(
        self,
        current_streak: int,
        total_green_days: int,
        previous_best_streak: int,
    ) -> Milestone | None:
        """Record newly earned milestones; return the one worth celebrating.

        Every newly crossed threshold is marked achieved, but only one is
        returned. Priority: highest new streak milestone, then a new personal
        best (only when a previous best exists and the streak is not itself a
        streak threshold), then highest new green-total milestone.

        Personal bests are tracked as a single number, the longest streak
        celebrated so far, so a record-breaking run is celebrated once per
        new length without growing the achieved set.
        """
        achieved = await self.achieved()
        before = len(achieved)

        highest_streak: Milestone | None = None
        for m in STREAK_MILESTONES:
            if current_streak >= m.threshold and m.id not in achieved:
                achieved.add(m.id)
                highest_streak = m

        highest_green: Milestone | None = None
        for m in GREEN_TOTAL_MILESTONES:
            if total_green_days >= m.threshold and m.id not in achieved:
                achieved.add(m.id)
                highest_green = m

        personal_best: Milestone | None = None
        if previous_best_streak > 0 and current_streak > previous_best_streak:
            if current_streak > await self.celebrated_best():
                await self._store.save_json(self.BEST_KEY, {"streak": current_streak})
                if not any(m.threshold == current_streak for m in STREAK_MILESTONES):
                    personal_best = Milestone(
                        id=f"{_PB_PREFIX}{current_streak}",
                        emoji="🏆",
                        title="New Personal Best!",
                        message=(
                            f"{current_streak}-day streak. You just beat your previous record of "
                            f"{previous_best_streak}."
                        ),
                        threshold=current_streak,
                        kind=MilestoneKind.PERSONAL_BEST,
                    )

        if len(achieved) != before:
            await self._store.save_json(self.ACHIEVED_KEY, sorted(achieved))

        winner = highest_streak or personal_best or highest_green
        if winner is not None:
            await self._store.save_json(self.PENDING_KEY, asdict(winner))
            logger.info(f"Milestone reached: {winner.id}")
            if self._bus is not None:
                await self._bus.emit(Event(name=MILESTONE_REACHED, payload=asdict(winner), source="milestones"))
        return winner

    async def pop_pending(self) -> Milestone | None:
        """Return and clear the milestone saved by the last :meth:`check`."""
        data = await self._store.load_json(self.PENDING_KEY)
        if not data:
            return None
        await self._store.delete(self.PENDING_KEY)
        try:
            return Milestone(**{**data, "kind": MilestoneKind(data["kind"])})
        except (TypeError, KeyError, ValueError) as e:
            logger.warning(f"Dropping unreadable pending milestone: {e}")
            return None
