"""Grade matching between attendance records, classes and students.

Grade labels are free text ("Grade 5", "5", "G-05"), so a record reaches a
student either through the general sentinel, an exact label match, or the
digits of both labels being equal.
"""
from __future__ import annotations

import re
from datetime import date
from typing import Optional

from ..core.constants import GENERAL_CLASS_IDS
from ..students.model import Student
from .model import AttendanceRecord

_NON_DIGITS = re.compile(r"\D")


def normalize_grade(label: Optional[str]) -> str:
    if not label:
        return ""
    return _NON_DIGITS.sub("", str(label))


def is_general(class_id: str) -> bool:
    return class_id in GENERAL_CLASS_IDS


def grade_matches(label: str, grade: str) -> bool:
    if label == grade:
        return True
    a, b = normalize_grade(label), normalize_grade(grade)
    return bool(a and b and a == b)


def resolves_to(record: AttendanceRecord, student: Student) -> bool:
    """True when ``record`` covers the student's grade."""
    return is_general(record.class_id) or grade_matches(record.class_id, student.grade)


def has_joined(student: Student, day: date) -> bool:
    joined = student.joined_on
    return joined is None or joined <= day


def is_expected(record: AttendanceRecord, student: Student) -> bool:
    """Whether the student should have attended the session ``record`` describes."""
    if record.is_cancelled or student.is_suspended:
        return False
    day = record.day
    if day is None or not has_joined(student, day):
        return False
    return resolves_to(record, student)
