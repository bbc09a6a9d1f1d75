from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import today_local
from ..common.http import json_body, ok
from ..common.validators import require_non_empty, require_non_negative
from ..container import Container
from ..core.enums import MessageTone
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    assistant = container.assistant_service

    @app.route("/api/ai/parent-message", methods=["POST"], endpoint="ai_parent_message")
    def ai_parent_message():
        data = json_body()
        try:
            tone = MessageTone(data.get("tone") or MessageTone.FRIENDLY.value)
        except ValueError:
            raise ValidationError("tone must be formal, friendly or concerned")
        text = assistant.parent_message(
            student=require_non_empty(data.get("studentName"), "studentName"),
            parent=data.get("parentName") or "Parent",
            topic=require_non_empty(data.get("topic"), "topic"),
            tone=tone,
        )
        return ok({"text": text})

    @app.route("/api/ai/lesson-plan", methods=["POST"], endpoint="ai_lesson_plan")
    def ai_lesson_plan():
        data = json_body()
        text = assistant.lesson_plan(
            topic=require_non_empty(data.get("topic"), "topic"),
            grade=str(data.get("grade") or ""),
            duration=data.get("duration") or "1 hour",
        )
        return ok({"text": text})

    @app.route("/api/ai/student-progress/<student_id>", methods=["POST"], endpoint="ai_student_progress")
    def ai_student_progress(student_id: str):
        student = container.student_service.get(student_id)
        data = json_body()
        rate = data.get("attendanceRate")
        if rate is None:
            today = today_local(container.tz)
            report = container.attendance_service.attendance_report(today.replace(day=1), today)
            rows = [r for r in report if r.student_id == student_id]
            rate = rows[0].percentage if rows else 0
        text = assistant.student_progress(
            student=student.name, attendance_rate=require_non_negative(rate, "attendanceRate"), notes=data.get("notes") or student.notes
        )
        return ok({"text": text})

    @app.route("/api/ai/exam-performance/<student_id>", methods=["POST"], endpoint="ai_exam_performance")
    def ai_exam_performance(student_id: str):
        student = container.student_service.get(student_id)
        history = container.exam_service.records_for(student_id)
        return ok({"text": assistant.exam_performance(student=student.name, history=history)})

    @app.route("/api/ai/generate", methods=["POST"], endpoint="ai_generate")
    def ai_generate():
        prompt = require_non_empty(json_body().get("prompt"), "prompt")
        return ok({"text": assistant.free_prompt(prompt)})

