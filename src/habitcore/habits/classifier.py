"""Day classification: routine items + checks + daily log -> DayColor.

Pure functions with no I/O and no clock access. Given identical inputs the
result is identical, which is what lets the read path cache day colors and
feed them to the streak calculator.

Rules:
    - Only non-negotiable items count. None configured -> ``empty``.
    - A workout item (label contains "workout" or "exercise") is satisfied by
      its own check, by the daily log's ``did_rowing`` / ``did_weights`` flags,
      or by a done check on another rowing/workout-labelled item.
    - Every other item is satisfied only by its own check.
    - 0 misses -> green, 1 -> yellow, 2+ -> red.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from habitcore.core.exceptions import ValidationError
from habitcore.core.utils.dates import iso_weekday

from .models import DailyCheck, DailyLog, DayColor, RoutineItem

WORKOUT_KEYWORDS = ("workout", "exercise")
ROWING_KEYWORD = "rowing"
WEIGHTS_KEYWORD = "workout"


def is_workout_label(label: str) -> bool:
    lbl = label.lower()
    return any(k in lbl for k in WORKOUT_KEYWORDS)


def is_scheduled(item: RoutineItem, date_key: str) -> bool:
    """True if *item* applies on *date_key*'s ISO weekday."""
    if not item.days_of_week:
        return True
    try:
        return iso_weekday(date_key) in item.days_of_week
    except ValidationError:
        return False


def items_for_day(items: Iterable[RoutineItem], date_key: str) -> list[RoutineItem]:
    """Active items scheduled on *date_key*."""
    return [i for i in items if i.is_active and is_scheduled(i, date_key)]


def classify(
    date_key: str,
    routine_items: Sequence[RoutineItem],
    checks: Iterable[DailyCheck],
    daily_log: DailyLog | None,
    *,
    today_key: str | None = None,
    account_start_key: str | None = None,
) -> DayColor:
    """Compute the color of a calendar day.

    Args:
        date_key: The day being classified.
        routine_items: Items in effect on that day.
        checks: Checks for that day; checks for other dates are ignored.
        daily_log: The day's log, if any.
        today_key: When given, days after it are ``empty`` (not yet happened).
        account_start_key: When given, days before it are ``empty``.
    """
    if today_key and date_key > today_key:
        return DayColor.EMPTY
    if account_start_key and date_key < account_start_key:
        return DayColor.EMPTY

    nonnegs = [i for i in routine_items if i.is_non_negotiable]
    if not nonnegs:
        return DayColor.EMPTY

    done: dict[str, bool] = {}
    for c in checks:
        if c.date_key == date_key:
            done[c.routine_item_id] = c.done

    def label_done(keyword: str) -> bool:
        return any(keyword in ri.label.lower() and done.get(ri.id, False) for ri in routine_items)

    any_rowing = bool(daily_log and daily_log.did_rowing) or label_done(ROWING_KEYWORD)
    any_weights = bool(daily_log and daily_log.did_weights) or label_done(WEIGHTS_KEYWORD)

    missed = 0
    for item in nonnegs:
        checked = done.get(item.id, False)
        if is_workout_label(item.label):
            if not (checked or any_rowing or any_weights):
                missed += 1
        elif not checked:
            missed += 1

    if missed == 0:
        return DayColor.GREEN
    if missed == 1:
        return DayColor.YELLOW
    return DayColor.RED
