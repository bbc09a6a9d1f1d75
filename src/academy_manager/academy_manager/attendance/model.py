from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..common.datetime_utils import parse_date_or_none
from ..core.enums import RecordStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """One class (or the whole academy, for "general") on one calendar day."""

    id: str
    class_id: str
    date: str
    student_ids_present: tuple[str, ...] = ()
    contacted_absentees: tuple[str, ...] = ()
    status: RecordStatus = RecordStatus.ACTIVE

    @property
    def day(self) -> Optional[date]:
        return parse_date_or_none(self.date)

    @property
    def is_cancelled(self) -> bool:
        return self.status == RecordStatus.CANCELLED


@dataclass(frozen=True)
class StudentAttendanceSummary:
    """Read-model for the range report."""

    student_id: str
    name: str
    grade: str
    present_days: int
    absent_days: int
    expected_days: int
    percentage: int


@dataclass(frozen=True)
class AbsenceAlert:
    student_id: str
    name: str
    streak: int
    contacted: bool
