from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

from ..core.constants import CLASS_WEEKDAYS
from ..core.enums import DayOutcome
from ..students.model import Student
from .matching import has_joined, is_expected
from .model import AttendanceRecord, StudentAttendanceSummary


def is_class_day(day: date) -> bool:
    return day.weekday() in CLASS_WEEKDAYS


def next_class_day(day: date) -> date:
    d = day + timedelta(days=1)
    while not is_class_day(d):
        d += timedelta(days=1)
    return d


def group_by_day(records: Iterable[AttendanceRecord]) -> dict[date, list[AttendanceRecord]]:
    """Records keyed by calendar day; rows with unreadable dates are left out."""
    by_day: dict[date, list[AttendanceRecord]] = defaultdict(list)
    for r in records:
        day = r.day
        if day is not None:
            by_day[day].append(r)
    return dict(by_day)


def resolve_day(student: Student, day_records: Sequence[AttendanceRecord]) -> DayOutcome:
    """Outcome for one student across every record of a single day.

    Present in any applicable active record wins; otherwise absent when at
    least one applicable active record expected them.
    """
    applicable = [r for r in day_records if is_expected(r, student)]
    if not applicable:
        return DayOutcome.NOT_EXPECTED
    if any(student.id in r.student_ids_present for r in applicable):
        return DayOutcome.PRESENT
    return DayOutcome.ABSENT


def past_absence_streak(student: Student, records: Iterable[AttendanceRecord], on: date) -> int:
    """Consecutive expected-but-absent class days strictly before ``on``."""
    by_day = group_by_day(records)
    streak = 0
    for day in sorted((d for d in by_day if d < on), reverse=True):
        if not is_class_day(day) or not has_joined(student, day):
            continue
        outcome = resolve_day(student, by_day[day])
        if outcome == DayOutcome.PRESENT:
            break
        if outcome == DayOutcome.ABSENT:
            streak += 1
    return streak


def absence_streak(student: Student, records: Iterable[AttendanceRecord], on: date) -> int:
    """Streak as of ``on``: the past streak, plus one when ``on`` is itself an absence."""
    records = list(records)
    outcome = resolve_day(student, [r for r in records if r.day == on])
    if outcome == DayOutcome.PRESENT:
        return 0
    past = past_absence_streak(student, records, on)
    return past + 1 if outcome == DayOutcome.ABSENT else past


def count_slots(
    students: Iterable[Student], records: Iterable[AttendanceRecord], start: date, end: date
) -> tuple[int, int]:
    """(present, absent) student-day slots in ``[start, end]``."""
    by_day = {d: rs for d, rs in group_by_day(records).items() if start <= d <= end}
    present = absent = 0
    for s in students:
        for day_records in by_day.values():
            outcome = resolve_day(s, day_records)
            if outcome == DayOutcome.PRESENT:
                present += 1
            elif outcome == DayOutcome.ABSENT:
                absent += 1
    return present, absent


def attendance_rate(students: Iterable[Student], records: Iterable[AttendanceRecord], start: date, end: date) -> int:
    present, absent = count_slots(students, records, start, end)
    total = present + absent
    return round(present / total * 100) if total else 0


def attendance_report(
    students: Iterable[Student],
    records: Iterable[AttendanceRecord],
    start: date,
    end: date,
    *,
    grade: Optional[str] = None,
) -> list[StudentAttendanceSummary]:
    by_day = {d: rs for d, rs in group_by_day(records).items() if start <= d <= end}
    rows: list[StudentAttendanceSummary] = []
    for s in students:
        if s.is_suspended:
            continue
        if grade and s.grade != grade:
            continue

        present = absent = 0
        for day_records in by_day.values():
            outcome = resolve_day(s, day_records)
            if outcome == DayOutcome.PRESENT:
                present += 1
            elif outcome == DayOutcome.ABSENT:
                absent += 1

        expected = present + absent
        rows.append(
            StudentAttendanceSummary(
                student_id=s.id,
                name=s.name,
                grade=s.grade,
                present_days=present,
                absent_days=absent,
                expected_days=expected,
                percentage=round(present / expected * 100) if expected else 0,
            )
        )
    rows.sort(key=lambda r: r.name.lower())
    return rows
