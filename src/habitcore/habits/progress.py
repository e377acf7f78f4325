"""Read path: remote rows -> day colors -> streaks, behind the ClientCache.

Every derived view is recomputed from remote rows on a cache miss and cached
with a TTL. Change events on the bus drop exactly the cached views they make
stale.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Container, Iterable
from typing import TYPE_CHECKING

from loguru import logger

from habitcore.core.events import CHECKS_CHANGED, FREEZE_USED, FREEZES_MERGED, ROUTINES_CHANGED, Event, EventBus
from habitcore.core.utils.cache import ClientCache
from habitcore.core.utils.dates import date_range, shift, today_key, validate_date_key, week_start

from . import cache_keys
from .classifier import classify, items_for_day
from .milestones import NextMilestones, next_milestone
from .models import DailyCheck, DailyLog, DayColor, DayResult, RoutineItem, StreakSummary
from .streaks import compute_streaks

if TYPE_CHECKING:
    from habitcore.sync.gateway import RemoteGateway


class ProgressService:
    """Cached derived views for one user.

    Args:
        gateway: Remote store reads.
        user_id: Whose progress this is.
        cache: Shared read cache.
        freezes: Dates on which a streak freeze was used (typically a
            :class:`~habitcore.habits.freeze.FreezeLedger`).
        rest_days: ISO weekdays excluded from streak evaluation.
        today: Returns today's date key in the application time zone.
        lookback_days: How much history feeds the streak computation.
        account_start_key: Days before it classify as ``empty``.
        ttls: Seconds per view: ``routine_items``, ``day_color``, ``streaks``.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        user_id: str,
        cache: ClientCache | None = None,
        freezes: Container[str] = frozenset(),
        rest_days: Iterable[int] = (),
        today: Callable[[], str] | None = None,
        lookback_days: int = 90,
        account_start_key: str | None = None,
        ttls: dict[str, float] | None = None,
    ):
        self._gateway = gateway
        self.user_id = user_id
        self.cache = cache or ClientCache()
        self.freezes = freezes
        self.rest_days = frozenset(rest_days)
        self._today = today or today_key
        self.lookback_days = lookback_days
        self.account_start_key = account_start_key
        self.ttls = {"routine_items": 300.0, "day_color": 300.0, "streaks": 120.0, **(ttls or {})}

    # -- reads -------------------------------------------------------------

    async def routine_items(self) -> list[RoutineItem]:
        return await self.cache.get_or_load(
            cache_keys.routine_items(self.user_id),
            lambda: self._gateway.read_routine_items(self.user_id),
            self.ttls["routine_items"],
        )

    async def day_color(self, date_key: str) -> DayColor:
        validate_date_key(date_key)
        key = cache_keys.day_color(self.user_id, date_key)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        items = await self.routine_items()
        checks = await self._gateway.read_checks(self.user_id, date_key, date_key)
        log = await self._gateway.read_daily_log(self.user_id, date_key)
        color = self._classify(date_key, items, checks, log)
        self.cache.set(key, color, self.ttls["day_color"])
        return color

    async def history(self, start: str, end: str) -> list[DayResult]:
        """Day colors for every date from *start* to *end*, inclusive."""
        dates = list(date_range(validate_date_key(start), validate_date_key(end)))
        cached = [self.cache.get(cache_keys.day_color(self.user_id, d)) for d in dates]
        if all(c is not None for c in cached):
            return [DayResult(d, c) for d, c in zip(dates, cached, strict=True)]

        items, checks, logs = await self._load_rows(start, end)
        return self._color_range(dates, items, checks, logs)

    async def _load_rows(self, start: str, end: str) -> tuple[list[RoutineItem], list[DailyCheck], list[DailyLog]]:
        items = await self.routine_items()
        checks = await self._gateway.read_checks(self.user_id, start, end)
        logs = await self._gateway.read_daily_logs(self.user_id, start, end)
        return items, checks, logs

    def _color_range(
        self,
        dates: list[str],
        items: list[RoutineItem],
        checks: Iterable[DailyCheck],
        logs: Iterable[DailyLog],
    ) -> list[DayResult]:
        checks_by_date: dict[str, list[DailyCheck]] = defaultdict(list)
        for c in checks:
            checks_by_date[c.date_key].append(c)
        log_by_date = {log.date_key: log for log in logs}

        results = []
        for d in dates:
            color = self._classify(d, items, checks_by_date.get(d, []), log_by_date.get(d))
            self.cache.set(cache_keys.day_color(self.user_id, d), color, self.ttls["day_color"])
            results.append(DayResult(d, color))
        logger.debug(f"Computed {len(results)} day colors for {dates[0]}..{dates[-1]}")
        return results

    async def streaks(self, today: str | None = None) -> StreakSummary:
        today = validate_date_key(today or self._today())
        key = cache_keys.streaks(self.user_id, today)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        start = shift(today, -self.lookback_days)
        # The weekly hit rate needs this week's checks even with a short lookback.
        items, checks, logs = await self._load_rows(min(start, week_start(today)), today)
        history = self._color_range(list(date_range(start, today)), items, checks, logs)
        summary = compute_streaks(
            history,
            freezes=self.freezes,
            rest_days=self.rest_days,
            today=today,
            checks=checks,
            items=items,
        )
        self.cache.set(key, summary, self.ttls["streaks"])
        return summary

    async def next_milestones(self, today: str | None = None) -> NextMilestones:
        summary = await self.streaks(today)
        return next_milestone(summary.current, summary.total_green_days)

    def _classify(
        self,
        date_key: str,
        items: list[RoutineItem],
        checks: Iterable[DailyCheck],
        log: DailyLog | None,
    ) -> DayColor:
        return classify(
            date_key,
            items_for_day(items, date_key),
            checks,
            log,
            today_key=self._today(),
            account_start_key=self.account_start_key,
        )

    # -- invalidation ------------------------------------------------------

    def invalidate_day(self, date_key: str) -> None:
        self.cache.clear(cache_keys.day_color(self.user_id, date_key))
        self.cache.clear(cache_keys.streaks_prefix(self.user_id))

    def invalidate_routines(self) -> None:
        self.cache.clear(cache_keys.routine_items(self.user_id))
        self.cache.clear(cache_keys.day_color_prefix(self.user_id))
        self.cache.clear(cache_keys.streaks_prefix(self.user_id))

    def attach(self, bus: EventBus) -> None:
        """Invalidate cached views when the bus reports a relevant change."""
        bus.on(ROUTINES_CHANGED, self._on_routines_changed)
        bus.on(CHECKS_CHANGED, self._on_checks_changed)
        bus.on(FREEZE_USED, self._on_freezes_changed)
        bus.on(FREEZES_MERGED, self._on_freezes_changed)

    def _on_routines_changed(self, event: Event) -> None:
        self.invalidate_routines()

    def _on_checks_changed(self, event: Event) -> None:
        date_key = event.payload.get("date_key")
        if date_key:
            self.invalidate_day(date_key)
        else:
            self.cache.clear(cache_keys.day_color_prefix(self.user_id))
            self.cache.clear(cache_keys.streaks_prefix(self.user_id))

    def _on_freezes_changed(self, event: Event) -> None:
        self.cache.clear(cache_keys.streaks_prefix(self.user_id))
