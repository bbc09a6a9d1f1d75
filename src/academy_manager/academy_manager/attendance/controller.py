from __future__ import annotations

from dataclasses import asdict

from flask import Flask, request

from ..common.http import arg_day, json_body, ok, parse_day
from ..common.datetime_utils import today_local
from ..container import Container
from ..storage.codec import attendance_to_dict, student_to_dict
from .calculator import next_class_day


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service
    tz = container.tz

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_day")
    def attendance_day():
        day = arg_day("date", tz=tz)
        class_id = request.args.get("classId")
        sheet = service.day_sheet(
            day,
            class_id=class_id,
            start_time=request.args.get("startTime"),
            search=request.args.get("search"),
        )
        return ok(
            {
                "date": day.isoformat(),
                "classId": sheet.class_id,
                "isClassDay": sheet.is_class_day,
                "cancelled": sheet.cancelled,
                "presentIds": sorted(sheet.present_ids),
                "contactedIds": sorted(sheet.contacted_ids),
                "students": [student_to_dict(s) for s in sheet.students],
                "alerts": [asdict(a) for a in service.absence_alerts(day, class_id=class_id)],
            }
        )

    @app.route("/api/attendance", methods=["POST"], endpoint="attendance_save")
    def attendance_save():
        data = json_body()
        record = service.save_attendance(
            data.get("classId"),
            parse_day(data.get("date"), "date"),
            data.get("presentIds") or [],
            data.get("contactedIds"),
        )
        return ok(attendance_to_dict(record))

    @app.route("/api/attendance/cancel", methods=["POST"], endpoint="attendance_toggle_cancel")
    def attendance_toggle_cancel():
        data = json_body()
        record = service.toggle_cancelled(data.get("classId"), parse_day(data.get("date"), "date"))
        return ok(attendance_to_dict(record))

    @app.route("/api/attendance/contact", methods=["POST"], endpoint="attendance_contact")
    def attendance_contact():
        data = json_body()
        link = service.contact_absentee(
            data.get("studentId", ""),
            parse_day(data.get("date"), "date", default=today_local(tz)),
            class_id=data.get("classId"),
        )
        return ok({"link": link})

    @app.route("/api/attendance/streak/<student_id>", methods=["GET"], endpoint="attendance_streak")
    def attendance_streak(student_id: str):
        day = arg_day("date", tz=tz)
        return ok({"studentId": student_id, "date": day.isoformat(), "streak": service.absence_streak(student_id, day)})

    @app.route("/api/attendance/report", methods=["GET"], endpoint="attendance_report")
    def attendance_report():
        today = today_local(tz)
        start = parse_day(request.args.get("start"), "start", default=today.replace(day=1))
        end = parse_day(request.args.get("end"), "end", default=today)
        rows = service.attendance_report(start, end, grade=request.args.get("grade"))
        return ok([asdict(r) for r in rows])

    @app.route("/api/attendance/next-class-day", methods=["GET"], endpoint="attendance_next_class_day")
    def attendance_next_class_day():
        return ok({"date": next_class_day(arg_day("date", tz=tz)).isoformat()})
