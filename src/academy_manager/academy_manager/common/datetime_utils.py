from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timezone, tzinfo
from typing import Optional

_DATE_PREFIX = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})")


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def now_local(tz: Optional[tzinfo] = None) -> datetime:
    """Wall-clock time in ``tz`` as a naive datetime.

    Without ``tz`` the host clock is used. Note: Wrapped so tests can patch/mock easier.
    """
    if tz is None:
        return datetime.now()
    return _utc_now().astimezone(tz).replace(tzinfo=None)


def today_local(tz: Optional[tzinfo] = None) -> date:
    return now_local(tz).date()


def parse_date_or_none(value: object) -> Optional[date]:
    """Lenient calendar-day parse; never raises.

    Accepts date/datetime objects, ``YYYY-MM-DD`` and anything that starts
    with one (full ISO timestamps included).
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    m = _DATE_PREFIX.match(value)
    if not m:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None


def parse_timestamp_date(value: object, *, tz: Optional[tzinfo] = None) -> Optional[date]:
    """Calendar day of an ISO timestamp as seen in the academy's timezone.

    Timestamps written by browsers are UTC (``2024-01-14T18:30:00.000Z`` is
    midnight of Jan 15 in Colombo), so aware values are shifted into ``tz``
    (system local time when None) before the date is taken. Naive values and
    bare dates are taken as-is.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return parse_date_or_none(text)
    else:
        return parse_date_or_none(value)

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(tz)
    return parsed.date()


def parse_timestamp_or_none(value: object) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(anchor: date, months: int, *, day: Optional[int] = None) -> date:
    """Shift ``anchor`` by whole months, clamping the day to the target month.

    ``day`` overrides the anchor's own day (billing day of month).
    """
    index = anchor.year * 12 + (anchor.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    wanted = day if day is not None else anchor.day
    return date(year, month, min(max(wanted, 1), last_day_of_month(year, month)))


def same_month(a: date, b: date) -> bool:
    return a.year == b.year and a.month == b.month


def month_bounds(day: date) -> tuple[date, date]:
    return day.replace(day=1), day.replace(day=last_day_of_month(day.year, day.month))
