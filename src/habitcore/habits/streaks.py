"""Streak derivation from a day-color history.

A day is *streak-preserving* when it is green, when a freeze was recorded for
it, or when it falls on a configured rest day. Green and frozen days extend
the streak; rest days are skipped entirely (they neither extend nor break
it). Anything else, ``empty`` included, breaks it. The current streak is
counted back from today, so a today that is not yet green reads 0.

Streaks are never stored. They are recomputed from the history and the
freeze ledger on every read, so the functions here are pure and safe to call
from any number of concurrent read paths.
"""

from __future__ import annotations

from collections.abc import Container, Iterable, Sequence
from enum import Enum

from loguru import logger

from habitcore.core.exceptions import ComputationInvariantViolation, ValidationError
from habitcore.core.utils.dates import date_range, days_between, iso_weekday, month_key, shift, week_start

from .models import DailyCheck, DayColor, DayResult, RoutineItem, StreakSummary

# Label fragments (lowercase) that put a routine item in a category.
CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "movement": (
        "walk",
        "workout",
        "exercise",
        "rowing",
        "stretch",
        "mobility",
        "move",
        "run",
        "swim",
        "bike",
        "hike",
        "yoga",
    ),
    "mind": ("breath", "meditat", "journal", "neuro", "mind", "read", "pray", "gratitude"),
    "sleep": ("sleep", "bedtime", "wind down"),
}


class _DayEffect(Enum):
    EXTEND = "extend"
    SKIP = "skip"
    BREAK = "break"


def is_rest_day(date_key: str, rest_days: Container[int]) -> bool:
    """True if *date_key* falls on one of the ISO weekdays in *rest_days*."""
    try:
        return iso_weekday(date_key) in rest_days
    except ValidationError:
        return False


def _normalize(history: Iterable[DayResult | tuple[str, DayColor | str]]) -> list[DayResult]:
    """Sort the history and fill calendar holes with ``empty`` days."""
    days: dict[str, DayResult] = {}
    for entry in history:
        if isinstance(entry, DayResult):
            result = entry
        else:
            key, color = entry
            result = DayResult(date_key=key, color=DayColor(color))
        try:
            iso_weekday(result.date_key)
        except ValidationError:
            logger.debug(f"Ignoring history entry with malformed date key {result.date_key!r}")
            continue
        days[result.date_key] = result

    if not days:
        return []
    keys = sorted(days)
    return [days.get(k) or DayResult(date_key=k, color=DayColor.EMPTY) for k in date_range(keys[0], keys[-1])]


def category_streaks(
    checks: Iterable[DailyCheck],
    items: Iterable[RoutineItem],
    today: str,
) -> dict[str, int]:
    """Consecutive days, back from *today*, with a done check in each category.

    An item belongs to a category when its label contains one of the
    category's keywords. Day colors, rest days and freezes play no part.
    """
    labels = {item.id: item.label.lower() for item in items}
    done_labels: dict[str, list[str]] = {}
    for c in checks:
        if c.done and c.routine_item_id in labels:
            done_labels.setdefault(c.date_key, []).append(labels[c.routine_item_id])

    result = {}
    for category, keywords in CATEGORY_KEYWORDS.items():
        count = 0
        day = today
        while any(k in label for label in done_labels.get(day, ()) for k in keywords):
            count += 1
            day = shift(day, -1)
        result[category] = count
    return result


def core_hit_rate(checks: Iterable[DailyCheck], items: Iterable[RoutineItem], today: str) -> int:
    """Percent (0-100, rounded) of non-negotiable checks marked done in *today*'s ISO week.

    Only recorded checks count; 0 when there are none.
    """
    core_ids = {item.id for item in items if item.is_non_negotiable}
    first = week_start(today)
    last = shift(first, 6)
    total = done = 0
    for c in checks:
        if c.routine_item_id in core_ids and first <= c.date_key <= last:
            total += 1
            done += c.done
    if not total:
        return 0
    return (done * 200 + total) // (2 * total)


def compute_streaks(
    history: Iterable[DayResult | tuple[str, DayColor | str]],
    freezes: Container[str] = frozenset(),
    rest_days: Container[int] = frozenset(),
    today: str | None = None,
    checks: Iterable[DailyCheck] | None = None,
    items: Iterable[RoutineItem] = (),
) -> StreakSummary:
    """Derive streak state from a chronological day-color history.

    Args:
        history: ``DayResult`` items or ``(date_key, color)`` pairs.
        freezes: Date keys on which a streak freeze was consumed.
        rest_days: ISO weekdays (1=Mon ... 7=Sun) excluded from evaluation.
        today: Reference date. Defaults to the latest date in the history.
            Later entries are ignored; missing dates up to it count as
            ``empty``.
        checks: Raw checks behind the history. When given, together with
            *items*, the summary also carries category streaks and this
            week's core hit rate.
        items: Routine items the checks refer to.
    """
    days = _normalize(history)
    if today is None:
        if not days:
            return StreakSummary()
        today = days[-1].date_key
    days = [d for d in days if d.date_key <= today]
    if not days:
        return StreakSummary()
    # Dates after the last recorded day up to today carry no data.
    days.extend(DayResult(date_key=k, color=DayColor.EMPTY) for k in date_range(shift(days[-1].date_key, 1), today))

    def effect(day: DayResult) -> _DayEffect:
        if day.color == DayColor.GREEN or day.date_key in freezes:
            return _DayEffect.EXTEND
        if is_rest_day(day.date_key, rest_days):
            return _DayEffect.SKIP
        return _DayEffect.BREAK

    effects = [effect(d) for d in days]

    # Current: walk backward from today.
    current = 0
    for eff in reversed(effects):
        if eff is _DayEffect.BREAK:
            break
        if eff is _DayEffect.EXTEND:
            current += 1

    # Best: every preserving run, scanning forward.
    runs: list[int] = []
    run = 0
    for eff in effects:
        if eff is _DayEffect.EXTEND:
            run += 1
        elif eff is _DayEffect.BREAK:
            if run:
                runs.append(run)
            run = 0
    if run:
        runs.append(run)
    best = max(runs, default=0)
    # The latest run is the current one whenever current > 0.
    previous_best = max(runs[:-1], default=0) if current else best

    greens = [d.date_key for d in days if d.color == DayColor.GREEN]
    last_green = greens[-1] if greens else None

    this_week = week_start(today)
    last_week = shift(this_week, -7)
    this_month = month_key(today)

    extras = {}
    if checks is not None:
        checks = list(checks)
        items = list(items)
        extras = {
            "category_streaks": category_streaks(checks, items, today),
            "core_hit_rate_this_week": core_hit_rate(checks, items, today),
        }

    summary = StreakSummary(
        current=current,
        best=best,
        last_green_date=last_green,
        days_since_last_green=days_between(last_green, today) if last_green else None,
        previous_best=previous_best,
        total_green_days=len(greens),
        green_days_this_week=sum(1 for k in greens if k >= this_week),
        green_days_last_week=sum(1 for k in greens if last_week <= k < this_week),
        green_days_this_month=sum(1 for k in greens if k.startswith(this_month)),
        last_seven=tuple(days[-7:]),
        **extras,
    )
    _check_invariants(summary)
    return summary


def _check_invariants(summary: StreakSummary) -> None:
    if summary.current < 0 or summary.best < 0:
        raise ComputationInvariantViolation(f"negative streak: {summary}")
    if summary.current > summary.best:
        raise ComputationInvariantViolation(f"current streak {summary.current} exceeds best {summary.best}")


class StreakCalculator:
    """Streak computation bound to a user's rest-day configuration."""

    def __init__(self, rest_days: Iterable[int] = ()):
        self.rest_days = frozenset(rest_days)

    def compute(
        self,
        history: Sequence[DayResult | tuple[str, DayColor | str]],
        freezes: Container[str] = frozenset(),
        rest_days: Iterable[int] | None = None,
        today: str | None = None,
        checks: Iterable[DailyCheck] | None = None,
        items: Iterable[RoutineItem] = (),
    ) -> StreakSummary:
        days_off = self.rest_days if rest_days is None else frozenset(rest_days)
        return compute_streaks(history, freezes=freezes, rest_days=days_off, today=today, checks=checks, items=items)
