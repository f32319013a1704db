# reminders/dates.py
"""
Date helpers for the reminders engine.

All helpers accept either ``datetime`` objects or ISO-8601 strings as they come
back from Postgres/PostgREST. Values that cannot be parsed are treated as
absent (``None``) instead of raising: one corrupt timestamp must never abort a
whole computation pass.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, Optional

DAY_SECONDS = 24 * 60 * 60

# "...12:00:00+00" (Postgres text output) -> "...12:00:00+00:00"
_SHORT_OFFSET_RE = re.compile(r"(\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?[+-]\d{2})$")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Return an aware datetime, or None when missing/unparsable. Naive values are UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    elif isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        if s[-1] in "Zz":
            s = s[:-1] + "+00:00"
        s = _SHORT_OFFSET_RE.sub(r"\1:00", s)
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def days_between(a: Any, b: Any) -> Optional[int]:
    """Whole days from ``a`` to ``b`` (positive when ``b`` is later), half rounds up."""
    start = parse_timestamp(a)
    end = parse_timestamp(b)
    if start is None or end is None:
        return None
    return math.floor((end - start).total_seconds() / DAY_SECONDS + 0.5)


def add_days(value: Any, days: int, tz: tzinfo = timezone.utc) -> Optional[datetime]:
    """Move ``value`` by ``days`` calendar days in ``tz``, keeping the wall-clock time.

    Aware datetime arithmetic in Python is wall-clock arithmetic, so a DST
    change between the two dates shifts the UTC instant, not the local time.
    The result is returned in UTC.
    """
    dt = parse_timestamp(value)
    if dt is None:
        return None
    local = dt.astimezone(tz)
    try:
        return (local + timedelta(days=days)).astimezone(timezone.utc)
    except OverflowError:
        # past datetime.max / before datetime.min
        return None


def local_day(value: Any, tz: tzinfo = timezone.utc) -> Optional[date]:
    dt = parse_timestamp(value)
    if dt is None:
        return None
    return dt.astimezone(tz).date()


def later_of(a: Optional[datetime], b: Optional[datetime]) -> Optional[datetime]:
    if a is None:
        return b
    if b is None:
        return a
    return b if b > a else a


def to_iso(value: Any) -> Optional[str]:
    """UTC ISO string with milliseconds and a 'Z' suffix, e.g. 2024-01-31T00:00:00.000Z."""
    dt = parse_timestamp(value)
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_datetime_label(value: Any, tz: tzinfo = timezone.utc) -> str:
    """Human label like '31 Jan 2024, 5:30 am'. Unparsable input comes back as text."""
    dt = parse_timestamp(value)
    if dt is None:
        return "" if value is None else str(value)
    local = dt.astimezone(tz)
    hour = local.hour % 12 or 12
    suffix = "am" if local.hour < 12 else "pm"
    return f"{local.day} {local:%b %Y}, {hour}:{local:%M} {suffix}"
