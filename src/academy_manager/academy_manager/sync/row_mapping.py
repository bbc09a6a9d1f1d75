"""Entity <-> snake_case remote row translation."""
from __future__ import annotations

from typing import Any, Callable, Mapping

from ..attendance.model import AttendanceRecord
from ..classes.model import ClassGroup
from ..core.enums import Table
from ..exams.model import ExamRecord
from ..fees.model import FeeRecord
from ..storage import codec
from ..students.model import Student


def student_row(s: Student) -> dict[str, Any]:
    return {
        "id": s.id,
        "admission_number": s.admission_number or "",
        "name": s.name,
        "parent_name": s.parent_name or "",
        "mobile_number": s.mobile_number or "",
        "whatsapp_number": s.whatsapp_number or "",
        "grade": s.grade or "",
        "gender": s.gender.value,
        "notes": s.notes or "",
        "joined_date": s.joined_date or None,
        "photo": s.photo or None,
        "status": s.status.value,
        "last_reminder_sent_at": s.last_reminder_sent_at or None,
        "reminder_count": s.reminder_count,
        "last_inquiry_sent_date": s.last_inquiry_sent_date or None,
    }


def class_row(c: ClassGroup) -> dict[str, Any]:
    return {
        "id": c.id,
        "name": c.name,
        "day": c.day,
        "start_time": c.start_time,
        "schedule": c.schedule,
        "end_time": c.end_time,
    }


def attendance_row(r: AttendanceRecord) -> dict[str, Any]:
    return {
        "id": r.id,
        "class_id": r.class_id,
        "date": r.date,
        "student_ids_present": list(r.student_ids_present),
        "contacted_absentees": list(r.contacted_absentees),
        "status": r.status.value,
    }


def fee_row(f: FeeRecord) -> dict[str, Any]:
    return {
        "id": f.id,
        "student_id": f.student_id,
        "amount": f.amount,
        "paid_date": f.date,
        "notes": f.notes,
        "receipt_sent": f.receipt_sent,
        "billing_month": f.billing_month,
        "next_due_date": f.next_due_date,
    }


def exam_row(e: ExamRecord) -> dict[str, Any]:
    return {
        "id": e.id,
        "student_id": e.student_id,
        "subject": e.test_name,
        "marks": e.score,
        "total": e.total,
        "exam_date": e.date,
    }


# Remote column -> snapshot (camelCase) key; decoding then reuses the codec.
_ROW_KEYS: dict[Table, dict[str, str]] = {
    Table.STUDENTS: {
        "id": "id",
        "admission_number": "admissionNumber",
        "name": "name",
        "parent_name": "parentName",
        "mobile_number": "mobileNumber",
        "whatsapp_number": "whatsappNumber",
        "grade": "grade",
        "gender": "gender",
        "notes": "notes",
        "joined_date": "joinedDate",
        "photo": "photo",
        "status": "status",
        "last_reminder_sent_at": "lastReminderSentAt",
        "reminder_count": "reminderCount",
        "last_inquiry_sent_date": "lastInquirySentDate",
    },
    Table.CLASSES: {
        "id": "id",
        "name": "name",
        "day": "day",
        "start_time": "startTime",
        "schedule": "schedule",
        "end_time": "endTime",
    },
    Table.ATTENDANCE: {
        "id": "id",
        "class_id": "classId",
        "date": "date",
        "student_ids_present": "studentIdsPresent",
        "contacted_absentees": "contactedAbsentees",
        "status": "status",
    },
    Table.FEES: {
        "id": "id",
        "student_id": "studentId",
        "amount": "amount",
        "paid_date": "date",
        "notes": "notes",
        "receipt_sent": "receiptSent",
        "billing_month": "billingMonth",
        "next_due_date": "nextDueDate",
    },
    Table.EXAMS: {
        "id": "id",
        "student_id": "studentId",
        "subject": "testName",
        "marks": "score",
        "total": "total",
        "exam_date": "date",
    },
}

_TO_ROW: dict[Table, Callable[[Any], dict[str, Any]]] = {
    Table.STUDENTS: student_row,
    Table.CLASSES: class_row,
    Table.ATTENDANCE: attendance_row,
    Table.FEES: fee_row,
    Table.EXAMS: exam_row,
}


def to_row(table: Table, entity: Any) -> dict[str, Any]:
    return _TO_ROW[Table(table)](entity)


def from_row(table: Table, row: Mapping[str, Any]) -> Any:
    """Raises DataShapeError for rows the codec cannot read."""
    table = Table(table)
    keys = _ROW_KEYS[table]
    camel = {keys[k]: v for k, v in dict(row).items() if k in keys}
    return codec.decode(table, camel)
