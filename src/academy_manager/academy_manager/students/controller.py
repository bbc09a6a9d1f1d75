from __future__ import annotations

from flask import Flask, request

from ..common.http import arg_bool, json_body, ok
from ..common.ids import generate_id
from ..container import Container
from ..core.enums import StudentStatus
from ..core.exceptions import ValidationError
from ..storage.codec import student_from_dict, student_to_dict


def register(app: Flask, container: Container) -> None:
    service = container.student_service

    @app.route("/api/students", methods=["GET"], endpoint="students_list")
    def students_list():
        rows = service.list_students(
            search=request.args.get("search"),
            grade=request.args.get("grade"),
            include_suspended=arg_bool("includeSuspended", True),
        )
        return ok([student_to_dict(s) for s in rows])

    @app.route("/api/students/grades", methods=["GET"], endpoint="students_grades")
    def students_grades():
        return ok(service.grades())

    @app.route("/api/students", methods=["POST"], endpoint="students_create")
    def students_create():
        data = json_body()
        student = student_from_dict({**data, "id": data.get("id") or generate_id()})
        created = service.add_student(student, confirm_sibling=bool(data.get("confirmSibling")))
        return ok(student_to_dict(created), 201)

    @app.route("/api/students/<student_id>", methods=["GET"], endpoint="students_get")
    def students_get(student_id: str):
        return ok(student_to_dict(service.get(student_id)))

    @app.route("/api/students/<student_id>", methods=["PUT"], endpoint="students_update")
    def students_update(student_id: str):
        current = student_to_dict(service.get(student_id))
        data = json_body()
        merged = {**current, **data, "id": student_id}
        return ok(student_to_dict(service.update_student(student_from_dict(merged))))

    @app.route("/api/students/<student_id>/status", methods=["POST"], endpoint="students_status")
    def students_status(student_id: str):
        raw = json_body().get("status")
        try:
            status = StudentStatus(raw)
        except ValueError:
            raise ValidationError(f"Unknown status: {raw!r}")
        return ok(student_to_dict(service.set_status(student_id, status)))

    @app.route("/api/students/<student_id>", methods=["DELETE"], endpoint="students_delete")
    def students_delete(student_id: str):
        service.delete_student(student_id)
        return ok()

    @app.route("/api/students/promotion", methods=["GET"], endpoint="students_promotion_check")
    def students_promotion_check():
        return ok({"offer": service.should_offer_promotion()})

    @app.route("/api/students/promotion", methods=["POST"], endpoint="students_promote")
    def students_promote():
        year = json_body().get("year")
        try:
            year = int(year) if year else None
        except (TypeError, ValueError):
            raise ValidationError("year must be an integer")
        changed = service.promote_all(year)
        return ok({"promoted": changed})
