"""Small date/time helpers shared by the resource services.

All timestamps are stored as naive UTC datetimes because SQLite drops
the tzinfo on the way back out; comparisons therefore always happen
between naive UTC values.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional

DAYS_OF_WEEK = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
HHMM_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise an aware datetime to naive UTC; naive values pass through."""
    if value is None:
        return None
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def iso(value: Optional[datetime]) -> Optional[str]:
    """Render a stored naive UTC datetime as ISO 8601 with a `Z` suffix."""
    if value is None:
        return None
    return as_utc(value).isoformat() + "Z"


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from `start` to `end`, rounded to the nearest minute."""
    return round((as_utc(end) - as_utc(start)).total_seconds() / 60)


def hhmm_to_minutes(value: str) -> int:
    if not HHMM_RE.match(value or ""):
        raise ValueError("time must be in HH:MM format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def last_week_window(now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """Return `(now - 7 days, now)` used by the weekly statistics routes."""
    end = as_utc(now) if now else utcnow()
    return end - timedelta(days=7), end


def sunday_week_number(day: date) -> int:
    """Week of the year with weeks starting on Sunday (0-53).

    Days before the first Sunday of the year fall in week 0.
    """
    return int(day.strftime("%U"))
