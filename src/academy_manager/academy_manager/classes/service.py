from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Optional

from ..common.datetime_utils import now_local
from ..common.ids import generate_id
from ..common.validators import require_non_empty, require_positive
from ..core.constants import DEFAULT_CLASS_DURATION_MINUTES
from ..core.enums import ClassTiming, Table
from ..core.exceptions import ValidationError
from ..sync.coordinator import SyncCoordinator
from .model import ClassGroup
from .timetable import (
    DAYS_OF_WEEK,
    build_schedule_label,
    class_status,
    duration_minutes as class_duration,
    end_time_for,
    format_time_12h,
    parse_hhmm,
)


class ClassService:
    def __init__(self, sync: SyncCoordinator, *, tz: Optional[tzinfo] = None):
        self._sync = sync
        self._tz = tz

    def list_classes(self, *, name: Optional[str] = None) -> list[ClassGroup]:
        rows = self._sync.store.all(Table.CLASSES)
        if name:
            rows = [c for c in rows if c.name == name]
        return sorted(rows, key=lambda c: (_day_index(c.day), c.start_time))

    def get(self, class_id: str) -> ClassGroup:
        c = self._sync.store.get(Table.CLASSES, class_id)
        if not c:
            raise ValidationError("Class not found")
        return c

    def _build(self, *, class_id: str, name: str, day: str, start_time: str, duration_minutes: int) -> ClassGroup:
        name = require_non_empty(name, "name")
        if day not in DAYS_OF_WEEK:
            raise ValidationError(f"day must be one of {', '.join(DAYS_OF_WEEK)}")
        if parse_hhmm(start_time) is None:
            raise ValidationError("start_time must be HH:MM")
        minutes = int(require_positive(duration_minutes, "duration_minutes"))
        return ClassGroup(
            id=class_id,
            name=name,
            day=day,
            start_time=start_time.strip(),
            schedule=build_schedule_label(day, start_time, minutes),
            end_time=end_time_for(start_time, minutes),
        )

    def add_class(
        self, *, name: str, day: str, start_time: str, duration_minutes: int = DEFAULT_CLASS_DURATION_MINUTES
    ) -> ClassGroup:
        cls = self._build(
            class_id=generate_id(), name=name, day=day, start_time=start_time, duration_minutes=duration_minutes
        )
        self._sync.save(Table.CLASSES, cls)
        return cls

    def update_class(
        self,
        class_id: str,
        *,
        name: Optional[str] = None,
        day: Optional[str] = None,
        start_time: Optional[str] = None,
        duration_minutes: Optional[int] = None,
    ) -> ClassGroup:
        current = self.get(class_id)
        if duration_minutes is None:
            duration_minutes = class_duration(current)
        cls = self._build(
            class_id=class_id,
            name=name if name is not None else current.name,
            day=day or current.day,
            start_time=start_time or current.start_time,
            duration_minutes=duration_minutes,
        )
        self._sync.save(Table.CLASSES, cls)
        return cls

    def delete_class(self, class_id: str) -> None:
        # Attendance rows keep their class label; nothing cascades.
        self.get(class_id)
        self._sync.discard(Table.CLASSES, class_id)

    def class_names(self) -> list[str]:
        return sorted({c.name.strip() for c in self._sync.store.all(Table.CLASSES) if c.name.strip()})

    def start_times(self) -> list[str]:
        return sorted({c.start_time.strip() for c in self._sync.store.all(Table.CLASSES) if c.start_time.strip()})

    def classes_for_day(self, day: str, *, name: Optional[str] = None) -> list[tuple[str, list[ClassGroup]]]:
        """Classes on ``day`` grouped by start time, earliest first."""
        groups: dict[str, list[ClassGroup]] = {}
        for c in self.list_classes(name=name):
            if c.day == day:
                groups.setdefault(c.start_time, []).append(c)
        return [(t, groups[t]) for t in sorted(groups)]

    def statuses(self, now: Optional[datetime] = None) -> dict[str, ClassTiming]:
        now = now or now_local(self._tz)
        return {c.id: class_status(c, now) for c in self._sync.store.all(Table.CLASSES)}

    def schedule_text(self, *, name: Optional[str] = None) -> str:
        """Shareable weekly schedule, one line per day."""
        lines = [f"Schedule for {name}:" if name else "Schedule:"]
        for day in DAYS_OF_WEEK:
            day_classes = [c for c in self.list_classes(name=name) if c.day == day]
            if not day_classes:
                continue
            if name:
                times = ", ".join(format_time_12h(c.start_time) for c in day_classes)
            else:
                times = ", ".join(f"{c.name} @ {format_time_12h(c.start_time)}" for c in day_classes)
            lines.append(f"{day}: {times}")
        return "\n".join(lines)


def _day_index(day: str) -> int:
    return DAYS_OF_WEEK.index(day) if day in DAYS_OF_WEEK else len(DAYS_OF_WEEK)
