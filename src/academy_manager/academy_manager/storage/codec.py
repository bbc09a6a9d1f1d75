"""camelCase dict <-> entity conversion.

This is the shape of the local snapshot files and of backup JSON, kept
compatible with backups taken from the browser version of the app.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Mapping, Optional, TypeVar

from ..attendance.model import AttendanceRecord
from ..classes.model import ClassGroup
from ..core.enums import Gender, RecordStatus, StudentStatus, Table
from ..core.exceptions import DataShapeError
from ..exams.model import ExamRecord
from ..fees.model import FeeRecord
from ..students.model import Student

E = TypeVar("E", bound=Enum)


def _require_mapping(data: Any, kind: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise DataShapeError(f"{kind} entry must be an object")
    return data


def _require_id(data: Mapping[str, Any], kind: str) -> str:
    value = data.get("id")
    if value is None or str(value).strip() == "":
        raise DataShapeError(f"{kind} entry is missing an id")
    return str(value)


def _text(data: Mapping[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    return default if value is None else str(value)


def _optional_text(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None or value == "":
        return None
    return str(value)


def _number(data: Mapping[str, Any], key: str, kind: str) -> float:
    value = data.get(key)
    if value is None or value == "":
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        raise DataShapeError(f"{kind}.{key} must be a number, got {value!r}")


def _id_list(data: Mapping[str, Any], key: str, kind: str) -> tuple[str, ...]:
    value = data.get(key)
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise DataShapeError(f"{kind}.{key} must be a list")
    return tuple(str(v) for v in value)


def _enum(cls: type[E], value: Any, default: E, kind: str) -> E:
    if value is None or value == "":
        return default
    try:
        return cls(value)
    except ValueError:
        raise DataShapeError(f"{kind}: unknown {cls.__name__} {value!r}")


def _gender(value: Any) -> Gender:
    return Gender.FEMALE if str(value or "").strip().lower() == "female" else Gender.MALE


def student_to_dict(s: Student) -> dict[str, Any]:
    return {
        "id": s.id,
        "admissionNumber": s.admission_number,
        "name": s.name,
        "parentName": s.parent_name,
        "mobileNumber": s.mobile_number,
        "whatsappNumber": s.whatsapp_number,
        "grade": s.grade,
        "gender": s.gender.value,
        "notes": s.notes,
        "joinedDate": s.joined_date,
        "photo": s.photo,
        "status": s.status.value,
        "lastReminderSentAt": s.last_reminder_sent_at,
        "reminderCount": s.reminder_count,
        "lastInquirySentDate": s.last_inquiry_sent_date,
    }


def student_from_dict(data: Any) -> Student:
    d = _require_mapping(data, "student")
    return Student(
        id=_require_id(d, "student"),
        name=_text(d, "name"),
        grade=_text(d, "grade"),
        joined_date=_optional_text(d, "joinedDate"),
        status=_enum(StudentStatus, d.get("status"), StudentStatus.ACTIVE, "student"),
        admission_number=_text(d, "admissionNumber"),
        parent_name=_text(d, "parentName"),
        mobile_number=_text(d, "mobileNumber"),
        whatsapp_number=_text(d, "whatsappNumber"),
        gender=_gender(d.get("gender")),
        notes=_text(d, "notes"),
        photo=_optional_text(d, "photo"),
        last_reminder_sent_at=_optional_text(d, "lastReminderSentAt"),
        reminder_count=int(_number(d, "reminderCount", "student")),
        last_inquiry_sent_date=_optional_text(d, "lastInquirySentDate"),
    )


def class_to_dict(c: ClassGroup) -> dict[str, Any]:
    return {
        "id": c.id,
        "name": c.name,
        "day": c.day,
        "startTime": c.start_time,
        "schedule": c.schedule,
        "endTime": c.end_time,
    }


def class_from_dict(data: Any) -> ClassGroup:
    d = _require_mapping(data, "class")
    return ClassGroup(
        id=_require_id(d, "class"),
        name=_text(d, "name"),
        day=_text(d, "day"),
        start_time=_text(d, "startTime"),
        schedule=_text(d, "schedule"),
        end_time=_optional_text(d, "endTime"),
    )


def attendance_to_dict(r: AttendanceRecord) -> dict[str, Any]:
    return {
        "id": r.id,
        "classId": r.class_id,
        "date": r.date,
        "studentIdsPresent": list(r.student_ids_present),
        "contactedAbsentees": list(r.contacted_absentees),
        "status": r.status.value,
    }


def attendance_from_dict(data: Any) -> AttendanceRecord:
    d = _require_mapping(data, "attendance")
    return AttendanceRecord(
        id=_require_id(d, "attendance"),
        class_id=_text(d, "classId"),
        date=_text(d, "date"),
        student_ids_present=_id_list(d, "studentIdsPresent", "attendance"),
        contacted_absentees=_id_list(d, "contactedAbsentees", "attendance"),
        status=_enum(RecordStatus, d.get("status"), RecordStatus.ACTIVE, "attendance"),
    )


def fee_to_dict(f: FeeRecord) -> dict[str, Any]:
    return {
        "id": f.id,
        "studentId": f.student_id,
        "amount": f.amount,
        "date": f.date,
        "notes": f.notes,
        "receiptSent": f.receipt_sent,
        "billingMonth": f.billing_month,
        "nextDueDate": f.next_due_date,
    }


def fee_from_dict(data: Any) -> FeeRecord:
    d = _require_mapping(data, "fee")
    return FeeRecord(
        id=_require_id(d, "fee"),
        student_id=_text(d, "studentId"),
        amount=_number(d, "amount", "fee"),
        date=_text(d, "date"),
        billing_month=_optional_text(d, "billingMonth"),
        next_due_date=_optional_text(d, "nextDueDate"),
        notes=_text(d, "notes"),
        receipt_sent=bool(d.get("receiptSent") or False),
    )


def exam_to_dict(e: ExamRecord) -> dict[str, Any]:
    return {
        "id": e.id,
        "studentId": e.student_id,
        "testName": e.test_name,
        "score": e.score,
        "total": e.total,
        "date": e.date,
    }


def exam_from_dict(data: Any) -> ExamRecord:
    d = _require_mapping(data, "exam")
    return ExamRecord(
        id=_require_id(d, "exam"),
        student_id=_text(d, "studentId"),
        test_name=_text(d, "testName"),
        score=_number(d, "score", "exam"),
        total=_number(d, "total", "exam"),
        date=_text(d, "date"),
    )


ENCODERS: dict[Table, Callable[[Any], dict[str, Any]]] = {
    Table.STUDENTS: student_to_dict,
    Table.CLASSES: class_to_dict,
    Table.ATTENDANCE: attendance_to_dict,
    Table.FEES: fee_to_dict,
    Table.EXAMS: exam_to_dict,
}

DECODERS: dict[Table, Callable[[Any], Any]] = {
    Table.STUDENTS: student_from_dict,
    Table.CLASSES: class_from_dict,
    Table.ATTENDANCE: attendance_from_dict,
    Table.FEES: fee_from_dict,
    Table.EXAMS: exam_from_dict,
}


def encode(table: Table, entity: Any) -> dict[str, Any]:
    return ENCODERS[Table(table)](entity)


def decode(table: Table, data: Any) -> Any:
    return DECODERS[Table(table)](data)
