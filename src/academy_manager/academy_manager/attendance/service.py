from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, tzinfo
from typing import Iterable, Optional

from ..common.datetime_utils import today_local
from ..common.ids import generate_id
from ..core.constants import ABSENCE_ALERT_THRESHOLD, GENERAL_CLASS_ID
from ..core.enums import RecordStatus, Table
from ..core.exceptions import ValidationError
from ..messaging.whatsapp import absence_alert_message, whatsapp_link
from ..students.model import Student
from ..sync.coordinator import SyncCoordinator
from . import calculator
from .matching import grade_matches, has_joined, is_general
from .model import AbsenceAlert, AttendanceRecord, StudentAttendanceSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DaySheet:
    """What the marking screen needs for one day."""

    day: date
    class_id: str
    is_class_day: bool
    cancelled: bool
    present_ids: frozenset[str]
    contacted_ids: frozenset[str]
    students: list[Student]


def _target_class_id(class_id: Optional[str]) -> str:
    if not class_id or is_general(class_id):
        return GENERAL_CLASS_ID
    return class_id


class AttendanceService:
    def __init__(self, sync: SyncCoordinator, *, academy_name: str, tz: Optional[tzinfo] = None):
        self._sync = sync
        self._academy_name = academy_name
        self._tz = tz

    def _records(self) -> list[AttendanceRecord]:
        return self._sync.store.all(Table.ATTENDANCE)

    def _students(self) -> list[Student]:
        return self._sync.store.all(Table.STUDENTS)

    def _student(self, student_id: str) -> Student:
        s = self._sync.store.get(Table.STUDENTS, student_id)
        if not s:
            raise ValidationError("Student not found")
        return s

    def records_for(self, day: date) -> list[AttendanceRecord]:
        return [r for r in self._records() if r.day == day]

    def find_record(self, class_id: str, day: date) -> Optional[AttendanceRecord]:
        for r in self._records():
            if r.class_id == class_id and r.day == day:
                return r
        return None

    def is_cancelled(self, day: date, class_id: Optional[str] = None) -> bool:
        """A class-specific record decides; otherwise the general record does."""
        target = _target_class_id(class_id)
        if target != GENERAL_CLASS_ID:
            specific = self.find_record(target, day)
            if specific:
                return specific.is_cancelled
        general = self.find_record(GENERAL_CLASS_ID, day)
        return bool(general and general.is_cancelled)

    def roster(
        self,
        day: date,
        *,
        class_id: Optional[str] = None,
        start_time: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Student]:
        """Students who can be marked on ``day`` under the given filters."""
        if not calculator.is_class_day(day):
            return []

        at_time = []
        if start_time:
            at_time = [c for c in self._sync.store.all(Table.CLASSES) if c.start_time == start_time]

        needle = (search or "").strip().lower()
        out = []
        for s in self._students():
            if s.is_suspended or not has_joined(s, day):
                continue
            if needle and needle not in s.name.lower():
                continue
            if class_id and not is_general(class_id) and not grade_matches(class_id, s.grade):
                continue
            if start_time and not any(grade_matches(c.name, s.grade) for c in at_time):
                continue
            out.append(s)
        return sorted(out, key=lambda s: s.name.lower())

    def day_sheet(
        self,
        day: date,
        *,
        class_id: Optional[str] = None,
        start_time: Optional[str] = None,
        search: Optional[str] = None,
    ) -> DaySheet:
        target = _target_class_id(class_id)
        todays = self.records_for(day)
        # Presence is shown across every record of the day; contacts belong to the saved record.
        present = frozenset(sid for r in todays for sid in r.student_ids_present)
        own = self.find_record(target, day)
        return DaySheet(
            day=day,
            class_id=target,
            is_class_day=calculator.is_class_day(day),
            cancelled=self.is_cancelled(day, class_id),
            present_ids=present,
            contacted_ids=frozenset(own.contacted_absentees) if own else frozenset(),
            students=self.roster(day, class_id=class_id, start_time=start_time, search=search),
        )

    def save_attendance(
        self,
        class_id: Optional[str],
        day: date,
        present_ids: Iterable[str],
        contacted_ids: Optional[Iterable[str]] = None,
        *,
        today: Optional[date] = None,
    ) -> AttendanceRecord:
        """Write the single record for (class, day), reusing its id when it exists."""
        if not calculator.is_class_day(day):
            raise ValidationError("Attendance can only be marked on class days (Sat, Sun, Mon)")
        if day > (today or today_local(self._tz)):
            raise ValidationError("Cannot mark attendance for a future date")

        target = _target_class_id(class_id)
        existing = self.find_record(target, day)
        contacted = contacted_ids if contacted_ids is not None else (existing.contacted_absentees if existing else ())
        record = AttendanceRecord(
            id=existing.id if existing else generate_id(),
            class_id=target,
            date=day.isoformat(),
            student_ids_present=tuple(dict.fromkeys(present_ids)),
            contacted_absentees=tuple(dict.fromkeys(contacted)),
            status=RecordStatus.ACTIVE,
        )
        self._sync.save(Table.ATTENDANCE, record)
        return record

    def toggle_cancelled(self, class_id: Optional[str], day: date) -> AttendanceRecord:
        """Flip active/cancelled for the (class, day) record; marks taken so far are kept."""
        target = _target_class_id(class_id)
        existing = self.find_record(target, day)
        if existing:
            new_status = RecordStatus.ACTIVE if existing.is_cancelled else RecordStatus.CANCELLED
            record = replace(existing, status=new_status)
        else:
            record = AttendanceRecord(
                id=generate_id(), class_id=target, date=day.isoformat(), status=RecordStatus.CANCELLED
            )
        self._sync.save(Table.ATTENDANCE, record)
        logger.info("Attendance %s on %s is now %s", target, day, record.status.value)
        return record

    def absence_streak(self, student_id: str, on: date) -> int:
        return calculator.absence_streak(self._student(student_id), self._records(), on)

    def absence_alerts(self, on: date, *, class_id: Optional[str] = None) -> list[AbsenceAlert]:
        records = self._records()
        own = self.find_record(_target_class_id(class_id), on)
        contacted = set(own.contacted_absentees) if own else set()

        alerts = []
        for s in self.roster(on, class_id=class_id):
            streak = calculator.absence_streak(s, records, on)
            if streak >= ABSENCE_ALERT_THRESHOLD:
                alerts.append(AbsenceAlert(student_id=s.id, name=s.name, streak=streak, contacted=s.id in contacted))
        return alerts

    def contact_absentee(self, student_id: str, on: date, *, class_id: Optional[str] = None) -> str:
        """Record the parent contact for (student, day) and return the WhatsApp link to open."""
        student = self._student(student_id)
        number = student.contact_number
        if not number:
            raise ValidationError("No number found")

        streak = calculator.absence_streak(student, self._records(), on)
        link = whatsapp_link(
            number,
            absence_alert_message(student_name=student.name, streak=streak, academy_name=self._academy_name),
        )

        target = _target_class_id(class_id)
        existing = self.find_record(target, on)
        if existing is None:
            record = AttendanceRecord(
                id=generate_id(), class_id=target, date=on.isoformat(), contacted_absentees=(student_id,)
            )
            self._sync.save(Table.ATTENDANCE, record)
        elif student_id not in existing.contacted_absentees:
            record = replace(existing, contacted_absentees=existing.contacted_absentees + (student_id,))
            self._sync.save(Table.ATTENDANCE, record)

        self._sync.save(Table.STUDENTS, replace(student, last_inquiry_sent_date=on.isoformat()))
        return link

    def attendance_report(self, start: date, end: date, *, grade: Optional[str] = None) -> list[StudentAttendanceSummary]:
        if end < start:
            raise ValidationError("end must not be before start")
        return calculator.attendance_report(self._students(), self._records(), start, end, grade=grade)
