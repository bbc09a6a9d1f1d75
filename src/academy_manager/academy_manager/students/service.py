from __future__ import annotations

import logging
import re
from dataclasses import replace
from datetime import date, tzinfo
from typing import Optional

from ..common.datetime_utils import today_local
from ..common.ids import generate_id
from ..common.validators import require_non_empty
from ..core.constants import COMPLETED_GRADE, FINAL_GRADE, PROMOTION_MARKER_PREFIX, PROMOTION_WINDOW_LAST_DAY
from ..core.enums import StudentStatus, Table
from ..core.exceptions import DuplicateStudentError, PossibleSiblingError, ValidationError
from ..sync.coordinator import SyncCoordinator
from .model import Student

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def promoted_grade(grade: str) -> str:
    """Next year's grade: a leading number goes up by one, the final grade completes."""
    m = _LEADING_INT.match(grade or "")
    if not m:
        return grade
    n = int(m.group(1))
    if n >= FINAL_GRADE:
        return COMPLETED_GRADE
    return str(n + 1)


class StudentService:
    def __init__(self, sync: SyncCoordinator, *, tz: Optional[tzinfo] = None):
        self._sync = sync
        self._tz = tz

    def list_students(
        self, *, search: Optional[str] = None, grade: Optional[str] = None, include_suspended: bool = True
    ) -> list[Student]:
        out = []
        needle = (search or "").strip().lower()
        for s in self._sync.store.all(Table.STUDENTS):
            if not include_suspended and s.is_suspended:
                continue
            if grade and s.grade != grade:
                continue
            if needle and needle not in s.name.lower():
                continue
            out.append(s)
        return out

    def get(self, student_id: str) -> Student:
        s = self._sync.store.get(Table.STUDENTS, student_id)
        if not s:
            raise ValidationError("Student not found")
        return s

    def grades(self) -> list[str]:
        def key(g: str):
            m = _LEADING_INT.match(g)
            return (0, int(m.group(1)), g) if m else (1, 0, g)

        return sorted({s.grade for s in self._sync.store.all(Table.STUDENTS) if s.grade}, key=key)

    def _check_duplicate(self, student: Student, *, confirm_sibling: bool) -> None:
        mobile = (student.mobile_number or "").strip()
        if not mobile:
            return
        for existing in self._sync.store.all(Table.STUDENTS):
            if existing.id == student.id or existing.mobile_number.strip() != mobile:
                continue
            if existing.name.strip().lower() == student.name.strip().lower():
                raise DuplicateStudentError(f"Duplicate: '{existing.name}' already exists")
            if not confirm_sibling:
                raise PossibleSiblingError(
                    f'Number registered to "{existing.name}". Is "{student.name}" a sibling?',
                    existing_student_id=existing.id,
                    existing_name=existing.name,
                )

    def add_student(self, student: Student, *, confirm_sibling: bool = False) -> Student:
        require_non_empty(student.name, "name")
        if not student.id:
            student = replace(student, id=generate_id())
        if self._sync.store.get(Table.STUDENTS, student.id):
            raise ValidationError("Student id already exists")

        self._check_duplicate(student, confirm_sibling=confirm_sibling)
        self._sync.save(Table.STUDENTS, student)
        logger.info("Added student %s (%s)", student.id, student.grade)
        return student

    def update_student(self, student: Student) -> Student:
        require_non_empty(student.name, "name")
        self.get(student.id)
        self._sync.save(Table.STUDENTS, student)
        return student

    def set_status(self, student_id: str, status: StudentStatus) -> Student:
        s = replace(self.get(student_id), status=StudentStatus(status))
        self._sync.save(Table.STUDENTS, s)
        return s

    def delete_student(self, student_id: str) -> None:
        """Remote-first cascade: fees, then exams, then the student.

        Local state changes only after every remote delete went through.
        """
        self.get(student_id)
        gateway = self._sync.require_remote()
        store = self._sync.store

        for table in (Table.FEES, Table.EXAMS):
            ids = {r.id for r in store.all(table) if r.student_id == student_id}
            for row in gateway.select(table.value):
                if str(row.get("student_id")) == student_id and row.get("id") is not None:
                    ids.add(str(row["id"]))
            for entity_id in sorted(ids):
                gateway.delete(table.value, entity_id)
        gateway.delete(Table.STUDENTS.value, student_id)

        for table in (Table.FEES, Table.EXAMS):
            store.replace_all(table, [r for r in store.all(table) if r.student_id != student_id])
        store.remove(Table.STUDENTS, student_id)
        logger.info("Deleted student %s with related fees and exams", student_id)

    def should_offer_promotion(self, today: Optional[date] = None) -> bool:
        today = today or today_local(self._tz)
        if today.month != 1 or today.day > PROMOTION_WINDOW_LAST_DAY:
            return False
        return not self._sync.store.has_marker(f"{PROMOTION_MARKER_PREFIX}{today.year}")

    def promote_all(self, year: Optional[int] = None) -> int:
        """Returns the number of students whose grade changed."""
        year = year or today_local(self._tz).year
        changed = 0
        for s in self._sync.store.all(Table.STUDENTS):
            new_grade = promoted_grade(s.grade)
            if new_grade == s.grade:
                continue
            self._sync.save(Table.STUDENTS, replace(s, grade=new_grade))
            changed += 1
        self._sync.store.set_marker(f"{PROMOTION_MARKER_PREFIX}{year}")
        logger.info("Promotion %s complete: %d students moved up", year, changed)
        return changed
