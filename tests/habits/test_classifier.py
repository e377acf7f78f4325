"""Tests for habitcore.habits.classifier."""

import pytest

from habitcore.habits.classifier import classify, is_scheduled, is_workout_label, items_for_day
from habitcore.habits.models import DailyCheck, DailyLog, DayColor, RoutineItem

DAY = "2026-10-19"  # Monday


def item(item_id, label, core=True, **kwargs):
    return RoutineItem(id=item_id, label=label, is_non_negotiable=core, **kwargs)


def done(*item_ids, date_key=DAY):
    return [DailyCheck(i, date_key, True) for i in item_ids]


ITEMS = [
    item("water", "Drink water"),
    item("read", "Read 10 pages"),
    item("workout", "Workout"),
    item("stretch", "Stretch", core=False),
]


class TestClassify:
    def test_all_done_is_green(self):
        assert classify(DAY, ITEMS, done("water", "read", "workout"), None) == DayColor.GREEN

    def test_one_miss_is_yellow(self):
        assert classify(DAY, ITEMS, done("water", "workout"), None) == DayColor.YELLOW

    def test_two_misses_is_red(self):
        assert classify(DAY, ITEMS, done("workout"), None) == DayColor.RED

    def test_nothing_done_is_red(self):
        assert classify(DAY, ITEMS, [], None) == DayColor.RED

    def test_optional_items_never_count(self):
        assert classify(DAY, ITEMS, done("water", "read", "workout", "stretch"), None) == DayColor.GREEN
        assert classify(DAY, ITEMS, done("stretch"), None) == DayColor.RED

    def test_no_non_negotiables_is_empty(self):
        assert classify(DAY, [item("s", "Stretch", core=False)], done("s"), None) == DayColor.EMPTY
        assert classify(DAY, [], [], None) == DayColor.EMPTY

    def test_unchecked_row_counts_as_miss(self):
        checks = [DailyCheck("water", DAY, True), DailyCheck("read", DAY, False), DailyCheck("workout", DAY, True)]
        assert classify(DAY, ITEMS, checks, None) == DayColor.YELLOW

    def test_checks_for_other_dates_ignored(self):
        checks = done("water", "read", "workout", date_key="2026-10-18")
        assert classify(DAY, ITEMS, checks, None) == DayColor.RED

    def test_deterministic(self):
        checks = done("water")
        assert classify(DAY, ITEMS, checks, None) == classify(DAY, ITEMS, checks, None)


class TestWorkoutSatisfaction:
    @pytest.mark.parametrize(
        "log",
        [
            DailyLog(DAY, did_rowing=True),
            DailyLog(DAY, did_weights=True),
        ],
    )
    def test_daily_log_flags_satisfy_workout(self, log):
        assert classify(DAY, ITEMS, done("water", "read"), log) == DayColor.GREEN

    def test_log_flags_do_not_satisfy_other_items(self):
        log = DailyLog(DAY, did_rowing=True, did_weights=True)
        assert classify(DAY, ITEMS, done("workout"), log) == DayColor.RED

    def test_rowing_check_satisfies_workout(self):
        items = [*ITEMS, item("row", "Rowing 2k", core=False)]
        assert classify(DAY, items, done("water", "read", "row"), None) == DayColor.GREEN

    def test_exercise_label_is_workout(self):
        items = [item("water", "Drink water"), item("ex", "Morning Exercise")]
        assert classify(DAY, items, done("water"), DailyLog(DAY, did_weights=True)) == DayColor.GREEN

    def test_empty_log_does_not_satisfy(self):
        assert classify(DAY, ITEMS, done("water", "read"), DailyLog(DAY)) == DayColor.YELLOW

    def test_is_workout_label(self):
        assert is_workout_label("WORKOUT")
        assert is_workout_label("Exercise 30 min")
        assert not is_workout_label("Meditate")


class TestBoundaries:
    def test_future_date_is_empty(self):
        assert classify("2026-10-20", ITEMS, [], None, today_key=DAY) == DayColor.EMPTY

    def test_today_is_classified(self):
        assert classify(DAY, ITEMS, [], None, today_key=DAY) == DayColor.RED

    def test_before_account_start_is_empty(self):
        assert classify("2026-10-01", ITEMS, [], None, account_start_key="2026-10-05") == DayColor.EMPTY


class TestScheduling:
    def test_every_day_when_unset(self):
        assert is_scheduled(item("a", "A"), DAY)

    def test_weekday_filter(self):
        weekend = item("a", "A", days_of_week=[6, 7])
        assert not is_scheduled(weekend, DAY)
        assert is_scheduled(weekend, "2026-10-18")

    def test_items_for_day_drops_inactive_and_unscheduled(self):
        items = [
            item("a", "A"),
            item("b", "B", is_active=False),
            item("c", "C", days_of_week=[7]),
        ]
        assert [i.id for i in items_for_day(items, DAY)] == ["a"]

    def test_unscheduled_item_is_not_a_miss(self):
        items = [item("water", "Drink water"), item("sun", "Sunday review", days_of_week=[7])]
        assert classify(DAY, items_for_day(items, DAY), done("water"), None) == DayColor.GREEN
