from __future__ import annotations

from dataclasses import replace
from datetime import date, tzinfo
from typing import Mapping, Optional

from ..common.datetime_utils import today_local
from ..common.ids import generate_id
from ..common.validators import require_non_empty, require_non_negative, require_positive
from ..core.constants import DEFAULT_RECENT_EXAMS
from ..core.enums import Table
from ..core.exceptions import ValidationError
from ..sync.coordinator import SyncCoordinator
from .model import ExamRecord, ExamStats


def exam_stats(records: list[ExamRecord]) -> Optional[ExamStats]:
    scored = [r for r in records if r.percentage is not None]
    if not scored:
        return None
    best = max(scored, key=lambda r: r.percentage)
    return ExamStats(
        average=round(sum(r.percentage for r in scored) / len(scored)),
        best_test=best.test_name,
        best_score=round(best.percentage),
        count=len(records),
    )


class ExamService:
    """Marks are written with client ids and upserted, so replays never duplicate a row."""

    def __init__(self, sync: SyncCoordinator, *, tz: Optional[tzinfo] = None):
        self._sync = sync
        self._tz = tz

    def _record(self, exam_id: str) -> ExamRecord:
        r = self._sync.store.get(Table.EXAMS, exam_id)
        if not r:
            raise ValidationError("Exam record not found")
        return r

    def _require_student(self, student_id: str) -> None:
        if not self._sync.store.get(Table.STUDENTS, student_id):
            raise ValidationError("Student not found")

    def add_exam(
        self, student_id: str, *, test_name: str, score: float, total: float, on: Optional[date] = None
    ) -> ExamRecord:
        self._require_student(student_id)
        record = ExamRecord(
            id=generate_id(),
            student_id=student_id,
            test_name=require_non_empty(test_name, "test_name"),
            score=require_non_negative(score, "score"),
            total=require_positive(total, "total"),
            date=(on or today_local(self._tz)).isoformat(),
        )
        self._sync.save(Table.EXAMS, record)
        return record

    def add_bulk(
        self, *, test_name: str, total: float, scores: Mapping[str, float], on: Optional[date] = None
    ) -> list[ExamRecord]:
        """One record per student in ``scores``; blank entries are skipped."""
        out = []
        for student_id, score in scores.items():
            if score is None or score == "":
                continue
            out.append(self.add_exam(student_id, test_name=test_name, score=score, total=total, on=on))
        return out

    def update_exam(
        self,
        exam_id: str,
        *,
        test_name: Optional[str] = None,
        score: Optional[float] = None,
        total: Optional[float] = None,
        on: Optional[date] = None,
    ) -> ExamRecord:
        record = self._record(exam_id)
        if test_name is not None:
            record = replace(record, test_name=require_non_empty(test_name, "test_name"))
        if score is not None:
            record = replace(record, score=require_non_negative(score, "score"))
        if total is not None:
            record = replace(record, total=require_positive(total, "total"))
        if on is not None:
            record = replace(record, date=on.isoformat())
        self._sync.save(Table.EXAMS, record)
        return record

    def delete_exam(self, exam_id: str) -> None:
        self._record(exam_id)
        self._sync.discard(Table.EXAMS, exam_id)

    def records_for(self, student_id: str) -> list[ExamRecord]:
        rows = [r for r in self._sync.store.all(Table.EXAMS) if r.student_id == student_id]
        return sorted(rows, key=lambda r: r.date, reverse=True)

    def student_stats(self, student_id: str) -> Optional[ExamStats]:
        return exam_stats(self.records_for(student_id))

    def recent_records(self, *, search: Optional[str] = None, limit: int = DEFAULT_RECENT_EXAMS) -> list[ExamRecord]:
        """Latest records; with a search term, every record matching student name or test name."""
        rows = sorted(self._sync.store.all(Table.EXAMS), key=lambda r: r.date, reverse=True)
        term = (search or "").strip().lower()
        if not term:
            return rows[:limit]

        names = {s.id: s.name.lower() for s in self._sync.store.all(Table.STUDENTS)}
        return [r for r in rows if term in names.get(r.student_id, "") or term in r.test_name.lower()]
