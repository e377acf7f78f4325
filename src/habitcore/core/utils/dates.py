"""
Date-key helpers.

Every date in habitcore is a canonical ``YYYY-MM-DD`` string interpreted in a
single application time zone. These helpers are the only place that parses
or formats them.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from habitcore.core.exceptions import ConfigurationError, ValidationError

_DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DEFAULT_TIMEZONE = "UTC"


def parse_date_key(date_key: str) -> date:
    """Parse a ``YYYY-MM-DD`` key. Raises ValidationError if malformed."""
    if not isinstance(date_key, str) or not _DATE_KEY_RE.match(date_key):
        raise ValidationError(f"Malformed date key: {date_key!r}")
    try:
        return date.fromisoformat(date_key)
    except ValueError as e:
        raise ValidationError(f"Malformed date key: {date_key!r}") from e


def validate_date_key(date_key: str) -> str:
    """Return *date_key* unchanged if it is well-formed."""
    parse_date_key(date_key)
    return date_key


def is_date_key(value: object) -> bool:
    try:
        parse_date_key(value)  # type: ignore[arg-type]
    except ValidationError:
        return False
    return True


def to_date_key(d: date) -> str:
    return d.strftime("%Y-%m-%d")


def month_key(date_key: str) -> str:
    """``2026-10-19`` -> ``2026-10``."""
    return validate_date_key(date_key)[:7]


def iso_weekday(date_key: str) -> int:
    """ISO day of week for a date key: 1=Mon ... 7=Sun."""
    return parse_date_key(date_key).isoweekday()


def shift(date_key: str, days: int) -> str:
    return to_date_key(parse_date_key(date_key) + timedelta(days=days))


def days_between(start_key: str, end_key: str) -> int:
    """Calendar days from *start_key* to *end_key* (negative if reversed)."""
    return (parse_date_key(end_key) - parse_date_key(start_key)).days


def date_range(start_key: str, end_key: str) -> Iterator[str]:
    """Yield every date key from *start_key* to *end_key*, inclusive."""
    current = parse_date_key(start_key)
    end = parse_date_key(end_key)
    while current <= end:
        yield to_date_key(current)
        current += timedelta(days=1)


def week_start(date_key: str) -> str:
    """Monday of the ISO week containing *date_key*."""
    d = parse_date_key(date_key)
    return to_date_key(d - timedelta(days=d.isoweekday() - 1))


def resolve_timezone(name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"Unknown time zone: {name!r}") from e


def today_key(timezone: str | None = None, now: datetime | None = None) -> str:
    """Today's date key in the application time zone."""
    tz = resolve_timezone(timezone)
    current = now.astimezone(tz) if now is not None else datetime.now(tz)
    return to_date_key(current.date())
