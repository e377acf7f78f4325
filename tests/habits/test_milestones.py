"""Tests for habitcore.habits.milestones."""

import pytest

from habitcore.core.events import MILESTONE_REACHED, EventBus
from habitcore.habits.milestones import (
    GREEN_TOTAL_MILESTONES,
    STREAK_MILESTONES,
    MilestoneKind,
    MilestoneTracker,
    next_milestone,
    progress_toward,
)


class TestNextMilestone:
    def test_next_streak_threshold(self):
        nxt = next_milestone(5, 5)
        assert nxt.streak_next.threshold == 7
        assert nxt.total_next.threshold == 10

    def test_strictly_greater(self):
        assert next_milestone(7, 10).streak_next.threshold == 14
        assert next_milestone(7, 10).total_next.threshold == 25

    def test_none_left(self):
        nxt = next_milestone(365, 365)
        assert nxt.streak_next is None
        assert nxt.total_next is None

    def test_zero(self):
        nxt = next_milestone(0, 0)
        assert nxt.streak_next.threshold == 3
        assert nxt.total_next.threshold == 1

    def test_thresholds_ascending(self):
        for table in (STREAK_MILESTONES, GREEN_TOTAL_MILESTONES):
            thresholds = [m.threshold for m in table]
            assert thresholds == sorted(set(thresholds))


class TestProgress:
    def test_percent_between_thresholds(self):
        p = progress_toward(10)  # 7 -> 14
        assert p.milestone.threshold == 14
        assert p.previous_threshold == 7
        assert p.remaining == 4
        assert p.percent == pytest.approx(3 / 7 * 100)

    def test_first_threshold_starts_at_zero(self):
        p = progress_toward(0)
        assert p.previous_threshold == 0
        assert p.percent == 0.0

    def test_suppressed_beyond_horizon(self):
        assert progress_toward(100, horizon=30) is None  # 50 days to 150
        assert progress_toward(100, horizon=50) is not None

    def test_none_after_last(self):
        assert progress_toward(400) is None


@pytest.mark.asyncio
class TestMilestoneTracker:
    async def test_streak_milestone(self, store):
        tracker = MilestoneTracker(store)
        m = await tracker.check(current_streak=3, total_green_days=3, previous_best_streak=0)
        assert m.id == "streak-3"
        assert {"streak-3", "green-1"} <= await tracker.achieved()

    async def test_only_once(self, store):
        tracker = MilestoneTracker(store)
        await tracker.check(3, 3, 0)
        assert await tracker.check(3, 3, 0) is None

    async def test_highest_new_streak_wins(self, store):
        tracker = MilestoneTracker(store)
        m = await tracker.check(14, 14, 0)
        assert m.id == "streak-14"
        assert {"streak-3", "streak-7", "streak-14", "green-1", "green-10"} <= await tracker.achieved()

    async def test_personal_best(self, store):
        tracker = MilestoneTracker(store)
        await tracker.check(7, 30, 0)
        m = await tracker.check(8, 31, previous_best_streak=7)
        assert m.kind is MilestoneKind.PERSONAL_BEST
        assert m.id == "pb-8"
        assert "7" in m.message

    async def test_record_run_celebrated_once_per_length(self, store):
        tracker = MilestoneTracker(store)
        await tracker.check(7, 30, 0)
        celebrated = [await tracker.check(streak, 30 + streak, previous_best_streak=7) for streak in range(8, 14)]
        assert [m.id for m in celebrated] == ["pb-8", "pb-9", "pb-10", "pb-11", "pb-12", "pb-13"]

        assert await tracker.celebrated_best() == 13
        assert not any(i.startswith("pb-") for i in await store.load_json(MilestoneTracker.ACHIEVED_KEY))
        # same length again, e.g. a second check on the same day
        assert await tracker.check(13, 43, previous_best_streak=7) is None

    async def test_streak_threshold_beats_personal_best(self, store):
        tracker = MilestoneTracker(store)
        await tracker.check(7, 30, 0)
        m = await tracker.check(14, 40, previous_best_streak=13)
        assert m.id == "streak-14"

    async def test_green_total_when_nothing_else(self, store):
        tracker = MilestoneTracker(store)
        await tracker.check(3, 9, 0)
        m = await tracker.check(1, 10, previous_best_streak=3)
        assert m.id == "green-10"

    async def test_pending_popup(self, store):
        tracker = MilestoneTracker(store)
        await tracker.check(3, 3, 0)
        pending = await tracker.pop_pending()
        assert pending.id == "streak-3"
        assert pending.kind is MilestoneKind.STREAK
        assert await tracker.pop_pending() is None

    async def test_earned(self, store):
        tracker = MilestoneTracker(store)
        await tracker.check(7, 1, 0)
        assert [m.id for m in await tracker.earned()] == ["streak-3", "streak-7", "green-1"]

    async def test_emits_event(self, store):
        bus = EventBus()
        seen = []
        bus.on(MILESTONE_REACHED, lambda e: seen.append(e.payload["id"]))
        await MilestoneTracker(store, bus=bus).check(3, 1, 0)
        assert seen == ["streak-3"]

    async def test_streak_progress_uses_horizon(self, store):
        tracker = MilestoneTracker(store, horizon=5)
        assert tracker.streak_progress(2).remaining == 1
        assert tracker.streak_progress(30) is None  # 20 days to 50
