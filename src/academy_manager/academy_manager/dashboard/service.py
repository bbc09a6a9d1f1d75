from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, tzinfo
from typing import Optional

from ..attendance import calculator
from ..common.datetime_utils import month_bounds, today_local
from ..core.enums import Gender, Table
from ..fees import billing
from ..sync.coordinator import SyncCoordinator


@dataclass(frozen=True)
class StudentMonthAttendance:
    student_id: str
    name: str
    grade: str
    present: int
    absent: int


@dataclass(frozen=True)
class GradeGender:
    grade: str
    male: int
    female: int


@dataclass(frozen=True)
class DashboardSummary:
    total_students: int
    active_students: int
    total_classes: int
    attendance_rate: int
    fees_paid: int
    fees_overdue: int
    male: int
    female: int
    grades: list[tuple[str, int]]
    class_gender: list[GradeGender]
    online: bool
    pending_sync: int
    search_results: list[StudentMonthAttendance] = field(default_factory=list)


def _grade_key(grade: str):
    m = re.match(r"\s*(\d+)", grade)
    return (0, int(m.group(1)), grade) if m else (1, 0, grade)


class DashboardService:
    """Rollups recomputed from the full snapshot on every call."""

    def __init__(self, sync: SyncCoordinator, *, tz: Optional[tzinfo] = None):
        self._sync = sync
        self._tz = tz

    def summary(self, *, today: Optional[date] = None, search: Optional[str] = None) -> DashboardSummary:
        today = today or today_local(self._tz)
        store = self._sync.store
        students = store.all(Table.STUDENTS)
        active = [s for s in students if not s.is_suspended]
        records = store.all(Table.ATTENDANCE)
        fees = store.all(Table.FEES)
        start, end = month_bounds(today)

        overdue = sum(1 for s in active if billing.fee_status(s, fees, today=today, tz=self._tz).is_overdue)

        grades = Counter(s.grade or "Unknown" for s in active)
        female = sum(1 for s in active if s.gender == Gender.FEMALE)
        by_grade: dict[str, list[int]] = {}
        for s in active:
            counts = by_grade.setdefault(s.grade or "Unknown", [0, 0])
            counts[1 if s.gender == Gender.FEMALE else 0] += 1

        results = []
        needle = (search or "").strip().lower()
        if needle:
            for s in students:
                if needle not in s.name.lower():
                    continue
                present, absent = calculator.count_slots([s], records, start, end)
                results.append(
                    StudentMonthAttendance(student_id=s.id, name=s.name, grade=s.grade, present=present, absent=absent)
                )

        status = self._sync.status()
        return DashboardSummary(
            total_students=len(students),
            active_students=len(active),
            total_classes=len(store.all(Table.CLASSES)),
            attendance_rate=min(calculator.attendance_rate(active, records, start, end), 100),
            fees_paid=len(active) - overdue,
            fees_overdue=overdue,
            male=len(active) - female,
            female=female,
            grades=sorted(grades.items(), key=lambda kv: _grade_key(kv[0])),
            class_gender=[
                GradeGender(grade=g, male=c[0], female=c[1])
                for g, c in sorted(by_grade.items(), key=lambda kv: _grade_key(kv[0]))
            ],
            online=status["online"],
            pending_sync=status["pending"],
            search_results=results,
        )
