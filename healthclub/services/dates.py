# healthclub/services/dates.py
"""
Calendar-day helpers shared by the check-in, reminder and retention code.

All "days" are UTC calendar days. Timestamps are stored as naive UTC
datetimes (same convention as the rest of the schema).
"""
from __future__ import annotations

import datetime as dt
import re
from typing import Optional, Tuple

from healthclub.errors import BadRequestError

_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_CLOCK_RE = re.compile(r"^(\d{2}):(\d{2})(?::(\d{2}))?$")
_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None, microsecond=0)


def utc_today() -> dt.date:
    return utc_now().date()


def parse_day(value: str, field: str = "date") -> dt.date:
    """
    Strict YYYY-MM-DD parser. Rejects anything else (including datetimes)
    with a BadRequestError so routers can surface a 400.
    """
    if not isinstance(value, str) or not _DAY_RE.match(value.strip()):
        raise BadRequestError(f"Invalid {field} format. Use YYYY-MM-DD")
    try:
        return dt.date.fromisoformat(value.strip())
    except ValueError:
        raise BadRequestError(f"Invalid {field}: {value}")


def parse_clock(value: str, field: str = "time") -> dt.time:
    m = _CLOCK_RE.match((value or "").strip())
    if not m:
        raise BadRequestError(f"Invalid {field} format. Use HH:MM or HH:MM:SS")
    hour, minute, second = int(m.group(1)), int(m.group(2)), int(m.group(3) or 0)
    if hour > 23 or minute > 59 or second > 59:
        raise BadRequestError(f"Invalid {field}: {value}")
    return dt.time(hour, minute, second)


def combine_backfill(day: dt.date, clock: Optional[dt.time]) -> Optional[dt.datetime]:
    """createdAt for a backfilled check-in; None means "use now"."""
    if clock is None:
        return None
    return dt.datetime.combine(day, clock)


def add_days(day: dt.date, days: int) -> dt.date:
    return day + dt.timedelta(days=days)


def parse_month(value: str, field: str = "month") -> dt.date:
    """YYYY-MM -> first day of that month."""
    m = _MONTH_RE.match((value or "").strip())
    if not m or not 1 <= int(m.group(2)) <= 12:
        raise BadRequestError(f"Invalid {field} format. Use YYYY-MM")
    return dt.date(int(m.group(1)), int(m.group(2)), 1)


def month_window(first_day: dt.date, months: int) -> Tuple[dt.date, dt.date]:
    """First day of `first_day`'s month through the last day `months` months on."""
    start = first_day.replace(day=1)
    index = start.year * 12 + start.month - 1 + months
    next_start = dt.date(index // 12, index % 12 + 1, 1)
    return start, next_start - dt.timedelta(days=1)
