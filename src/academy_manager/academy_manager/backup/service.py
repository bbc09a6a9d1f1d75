from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any, BinaryIO, Mapping, Optional, Union

import pandas as pd

from ..core.constants import BACKUP_VERSION
from ..core.enums import Table
from ..core.exceptions import DataShapeError
from ..storage import codec
from ..sync.coordinator import SyncCoordinator
from ..sync.row_mapping import from_row

logger = logging.getLogger(__name__)

# Backup JSON key per collection, matching backups taken from the browser app.
BACKUP_KEYS: dict[str, Table] = {
    "students": Table.STUDENTS,
    "classes": Table.CLASSES,
    "attendance": Table.ATTENDANCE,
    "feeRecords": Table.FEES,
    "examRecords": Table.EXAMS,
}


class BackupService:
    def __init__(self, sync: SyncCoordinator):
        self._sync = sync

    def export_backup(self) -> dict[str, Any]:
        store = self._sync.store
        payload: dict[str, Any] = {
            key: [codec.encode(table, e) for e in store.all(table)] for key, table in BACKUP_KEYS.items()
        }
        payload["version"] = BACKUP_VERSION
        return payload

    def restore_backup(self, payload: Any) -> dict[str, int]:
        """Replace the local collections present in ``payload``.

        Every entry is decoded before anything is written, so a malformed
        backup leaves local state untouched.
        """
        if not isinstance(payload, Mapping):
            raise DataShapeError("Backup must be a JSON object")
        if not any(key in payload for key in BACKUP_KEYS):
            raise DataShapeError("Backup contains no known collections")

        decoded: dict[Table, list[Any]] = {}
        for key, table in BACKUP_KEYS.items():
            if key not in payload:
                continue
            entries = payload[key]
            if not isinstance(entries, list):
                raise DataShapeError(f"'{key}' must be a list")
            items = []
            for i, entry in enumerate(entries):
                try:
                    items.append(codec.decode(table, entry))
                except DataShapeError as e:
                    raise DataShapeError(f"{key}[{i}]: {e}") from e
            decoded[table] = items

        for table, items in decoded.items():
            self._sync.store.replace_all(table, items)
        counts = {table.value: len(items) for table, items in decoded.items()}
        logger.info("Restored backup: %s", counts)
        return counts

    def refresh_from_remote(self) -> dict[str, int]:
        """Replace the local snapshot with the remote tables; unreadable rows are skipped."""
        gateway = self._sync.require_remote()
        fetched: dict[Table, list[Any]] = {}
        for table in Table:
            items = []
            for row in gateway.select(table.value):
                try:
                    items.append(from_row(table, row))
                except DataShapeError as e:
                    logger.error("Skipping remote %s row: %s", table.value, e)
            fetched[table] = items

        for table, items in fetched.items():
            self._sync.store.replace_all(table, items)
        return {table.value: len(items) for table, items in fetched.items()}

    def _frames(self) -> dict[str, pd.DataFrame]:
        store = self._sync.store
        students = store.all(Table.STUDENTS)
        by_id = {s.id: s for s in students}
        class_names = {c.id: c.name for c in store.all(Table.CLASSES)}

        def student_name(student_id: str) -> str:
            s = by_id.get(student_id)
            return s.name if s else "Unknown"

        def admission(student_id: str) -> str:
            s = by_id.get(student_id)
            return s.admission_number if s else ""

        students_df = pd.DataFrame(
            [
                {
                    "Admission No": s.admission_number or s.id,
                    "Name": s.name,
                    "Grade": s.grade,
                    "Parent Name": s.parent_name,
                    "Mobile": s.mobile_number,
                    "WhatsApp": s.whatsapp_number,
                    "Joined Date": s.joined_date,
                    "Status": s.status.value,
                    "Notes": s.notes,
                }
                for s in students
            ],
            columns=["Admission No", "Name", "Grade", "Parent Name", "Mobile", "WhatsApp", "Joined Date", "Status", "Notes"],
        )
        classes_df = pd.DataFrame(
            [
                {"Class Name": c.name, "Day": c.day, "Start Time": c.start_time, "Schedule": c.schedule}
                for c in store.all(Table.CLASSES)
            ],
            columns=["Class Name", "Day", "Start Time", "Schedule"],
        )
        attendance_df = pd.DataFrame(
            [
                {
                    "Date": r.date,
                    "Class": class_names.get(r.class_id, r.class_id),
                    "Status": r.status.value,
                    "Present Count": len(r.student_ids_present),
                }
                for r in store.all(Table.ATTENDANCE)
            ],
            columns=["Date", "Class", "Status", "Present Count"],
        )
        fees_df = pd.DataFrame(
            [
                {
                    "Student": student_name(f.student_id),
                    "Admission No": admission(f.student_id),
                    "Paid Date": f.date,
                    "Billing Month": f.billing_month,
                    "Amount": f.amount,
                    "Notes": f.notes,
                }
                for f in store.all(Table.FEES)
            ],
            columns=["Student", "Admission No", "Paid Date", "Billing Month", "Amount", "Notes"],
        )
        exams_df = pd.DataFrame(
            [
                {
                    "Student": student_name(e.student_id),
                    "Admission No": admission(e.student_id),
                    "Exam": e.test_name,
                    "Date": e.date,
                    "Score": e.score,
                    "Total": e.total,
                    "Percentage": f"{e.percentage:.1f}%" if e.percentage is not None else "",
                }
                for e in store.all(Table.EXAMS)
            ],
            columns=["Student", "Admission No", "Exam", "Date", "Score", "Total", "Percentage"],
        )
        return {
            "Students": students_df,
            "Timetable": classes_df,
            "Attendance": attendance_df,
            "Fees": fees_df,
            "Marks": exams_df,
        }

    def export_workbook(self, target: Optional[Union[str, Path, BinaryIO]] = None) -> Union[bytes, None]:
        """Write the Excel export to ``target``; with no target, return the bytes."""
        out = target if target is not None else io.BytesIO()
        with pd.ExcelWriter(out, engine="openpyxl") as writer:
            for sheet, df in self._frames().items():
                df.to_excel(writer, index=False, sheet_name=sheet)
        if target is None:
            return out.getvalue()
        return None
