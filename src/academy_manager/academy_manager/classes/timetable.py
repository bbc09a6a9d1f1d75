from __future__ import annotations

import re
from datetime import datetime, time, timedelta
from typing import Optional

from ..core.constants import DEFAULT_CLASS_DURATION_MINUTES
from ..core.enums import ClassTiming
from .model import ClassGroup

DAYS_OF_WEEK = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

_SCHEDULE_END = re.compile(r"(\d{1,2}):(\d{2})\s*(AM|PM)?", re.IGNORECASE)


def parse_hhmm(value: Optional[str]) -> Optional[time]:
    if not value:
        return None
    try:
        h, m = value.strip().split(":")[:2]
        return time(int(h), int(m))
    except ValueError:
        return None


def format_time_12h(value: str) -> str:
    t = parse_hhmm(value)
    if t is None:
        return ""
    suffix = "PM" if t.hour >= 12 else "AM"
    return f"{t.hour % 12 or 12}:{t.minute:02d} {suffix}"


def build_schedule_label(day: str, start_time: str, duration_minutes: int) -> str:
    """``"Sat 4:00 PM - 5:30 PM"``, the display string stored on the class."""
    start = parse_hhmm(start_time)
    if start is None:
        return day[:3]
    end = (datetime.combine(datetime.min, start) + timedelta(minutes=int(duration_minutes))).time()
    return f"{day[:3]} {format_time_12h(start_time)} - {format_time_12h(end.strftime('%H:%M'))}"


def end_time_for(start_time: str, duration_minutes: int) -> Optional[str]:
    start = parse_hhmm(start_time)
    if start is None:
        return None
    end = datetime.combine(datetime.min, start) + timedelta(minutes=int(duration_minutes))
    return end.strftime("%H:%M")


def _schedule_end(schedule: str) -> Optional[time]:
    if "-" not in (schedule or ""):
        return None
    m = _SCHEDULE_END.search(schedule.split("-", 1)[1])
    if not m:
        return None
    hours, minutes, ampm = int(m.group(1)), int(m.group(2)), (m.group(3) or "").upper()
    if ampm == "PM" and hours < 12:
        hours += 12
    if ampm == "AM" and hours == 12:
        hours = 0
    try:
        return time(hours, minutes)
    except ValueError:
        return None


def duration_minutes(cls: ClassGroup) -> int:
    """Structured end time first, then the end time written in ``schedule``."""
    start = parse_hhmm(cls.start_time)
    end = parse_hhmm(cls.end_time) or _schedule_end(cls.schedule)
    if start is None or end is None:
        return DEFAULT_CLASS_DURATION_MINUTES
    diff = (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)
    return diff if diff > 0 else DEFAULT_CLASS_DURATION_MINUTES


def class_status(cls: ClassGroup, now: datetime) -> ClassTiming:
    """Where the class sits relative to ``now`` within the Monday-first week."""
    if cls.day not in DAYS_OF_WEEK:
        return ClassTiming.FUTURE
    class_day = DAYS_OF_WEEK.index(cls.day)
    today = now.weekday()
    if class_day < today:
        return ClassTiming.PAST
    if class_day > today:
        return ClassTiming.FUTURE

    start_t = parse_hhmm(cls.start_time)
    if start_t is None:
        return ClassTiming.FUTURE
    start = now.replace(hour=start_t.hour, minute=start_t.minute, second=0, microsecond=0)
    end = start + timedelta(minutes=duration_minutes(cls))
    if now > end:
        return ClassTiming.PAST
    if now >= start:
        return ClassTiming.PRESENT
    return ClassTiming.FUTURE
