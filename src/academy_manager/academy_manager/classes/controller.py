from __future__ import annotations

from flask import Flask, request

from ..common.http import json_body, ok
from ..container import Container
from ..core.constants import DEFAULT_CLASS_DURATION_MINUTES
from ..storage.codec import class_to_dict


def register(app: Flask, container: Container) -> None:
    service = container.class_service

    @app.route("/api/classes", methods=["GET"], endpoint="classes_list")
    def classes_list():
        statuses = service.statuses()
        rows = []
        for c in service.list_classes(name=request.args.get("name")):
            row = class_to_dict(c)
            row["timing"] = statuses[c.id].value
            rows.append(row)
        return ok(rows)

    @app.route("/api/classes", methods=["POST"], endpoint="classes_create")
    def classes_create():
        data = json_body()
        created = service.add_class(
            name=data.get("name", ""),
            day=data.get("day", ""),
            start_time=data.get("startTime", ""),
            duration_minutes=data.get("duration", DEFAULT_CLASS_DURATION_MINUTES),
        )
        return ok(class_to_dict(created), 201)

    @app.route("/api/classes/<class_id>", methods=["PUT"], endpoint="classes_update")
    def classes_update(class_id: str):
        data = json_body()
        updated = service.update_class(
            class_id,
            name=data.get("name"),
            day=data.get("day"),
            start_time=data.get("startTime"),
            duration_minutes=data.get("duration"),
        )
        return ok(class_to_dict(updated))

    @app.route("/api/classes/<class_id>", methods=["DELETE"], endpoint="classes_delete")
    def classes_delete(class_id: str):
        service.delete_class(class_id)
        return ok()

    @app.route("/api/classes/days/<day>", methods=["GET"], endpoint="classes_for_day")
    def classes_for_day(day: str):
        groups = service.classes_for_day(day, name=request.args.get("name"))
        return ok([{"time": t, "classes": [class_to_dict(c) for c in cs]} for t, cs in groups])

    @app.route("/api/classes/options", methods=["GET"], endpoint="classes_options")
    def classes_options():
        return ok({"names": service.class_names(), "startTimes": service.start_times()})

    @app.route("/api/classes/schedule-text", methods=["GET"], endpoint="classes_schedule_text")
    def classes_schedule_text():
        return ok({"text": service.schedule_text(name=request.args.get("name"))})
