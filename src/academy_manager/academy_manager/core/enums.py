from __future__ import annotations

from enum import Enum


class Table(str, Enum):
    """Remote table names; also the keys of the local snapshot collections."""

    STUDENTS = "students"
    CLASSES = "classes"
    ATTENDANCE = "attendance"
    FEES = "fees"
    EXAMS = "exams"


class Operation(str, Enum):
    UPSERT = "UPSERT"
    DELETE = "DELETE"
    INSERT = "INSERT"


class StudentStatus(str, Enum):
    ACTIVE = "active"
    TEMPORARY_SUSPENDED = "temporary_suspended"


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"


class RecordStatus(str, Enum):
    """Attendance record state; cancelled rows stay but count for nothing."""

    ACTIVE = "active"
    CANCELLED = "cancelled"


class DayOutcome(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    NOT_EXPECTED = "not_expected"


class ClassTiming(str, Enum):
    PAST = "past"
    PRESENT = "present"
    FUTURE = "future"


class FeeFilter(str, Enum):
    ALL = "All"
    PAID = "Paid"
    OVERDUE = "Overdue"


class MessageTone(str, Enum):
    FORMAL = "formal"
    FRIENDLY = "friendly"
    CONCERNED = "concerned"
