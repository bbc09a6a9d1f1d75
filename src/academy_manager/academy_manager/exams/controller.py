from __future__ import annotations

from dataclasses import asdict

from flask import Flask, request

from ..common.http import json_body, ok, parse_day
from ..container import Container
from ..core.constants import DEFAULT_RECENT_EXAMS
from ..core.exceptions import ValidationError
from ..storage.codec import exam_to_dict


def register(app: Flask, container: Container) -> None:
    service = container.exam_service

    def _optional_day(data: dict, key: str):
        return parse_day(data[key], key) if data.get(key) else None

    @app.route("/api/exams", methods=["GET"], endpoint="exams_recent")
    def exams_recent():
        try:
            limit = int(request.args.get("limit", DEFAULT_RECENT_EXAMS))
        except ValueError:
            raise ValidationError("limit must be an integer")
        rows = service.recent_records(search=request.args.get("search"), limit=limit)
        return ok([exam_to_dict(r) for r in rows])

    @app.route("/api/exams/students/<student_id>", methods=["GET"], endpoint="exams_student")
    def exams_student(student_id: str):
        stats = service.student_stats(student_id)
        return ok(
            {
                "records": [exam_to_dict(r) for r in service.records_for(student_id)],
                "stats": asdict(stats) if stats else None,
            }
        )

    @app.route("/api/exams", methods=["POST"], endpoint="exams_create")
    def exams_create():
        data = json_body()
        record = service.add_exam(
            data.get("studentId", ""),
            test_name=data.get("testName", ""),
            score=data.get("score"),
            total=data.get("total"),
            on=_optional_day(data, "date"),
        )
        return ok(exam_to_dict(record), 201)

    @app.route("/api/exams/bulk", methods=["POST"], endpoint="exams_bulk")
    def exams_bulk():
        data = json_body()
        scores = data.get("scores") or {}
        if not isinstance(scores, dict):
            raise ValidationError("scores must map student ids to marks")
        rows = service.add_bulk(
            test_name=data.get("testName", ""), total=data.get("total"), scores=scores, on=_optional_day(data, "date")
        )
        return ok([exam_to_dict(r) for r in rows], 201)

    @app.route("/api/exams/<exam_id>", methods=["PUT"], endpoint="exams_update")
    def exams_update(exam_id: str):
        data = json_body()
        record = service.update_exam(
            exam_id,
            test_name=data.get("testName"),
            score=data.get("score"),
            total=data.get("total"),
            on=_optional_day(data, "date"),
        )
        return ok(exam_to_dict(record))

    @app.route("/api/exams/<exam_id>", methods=["DELETE"], endpoint="exams_delete")
    def exams_delete(exam_id: str):
        service.delete_exam(exam_id)
        return ok()
