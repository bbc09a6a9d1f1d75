from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import today_local
from ..common.http import ok
from ..container import Container
from ..core.exceptions import DataShapeError


def register(app: Flask, container: Container) -> None:
    service = container.backup_service

    @app.route("/api/backup", methods=["GET"], endpoint="backup_export")
    def backup_export():
        filename = f"AcademyBackup_{today_local(container.tz).isoformat()}.json"
        response = app.json.response(service.export_backup())
        response.headers["Content-Disposition"] = f"attachment; filename={filename}"
        return response

    @app.route("/api/backup/restore", methods=["POST"], endpoint="backup_restore")
    def backup_restore():
        payload = request.get_json(silent=True)
        if payload is None:
            raise DataShapeError("Invalid backup file")
        return ok(service.restore_backup(payload))

    @app.route("/api/backup/export.xlsx", methods=["GET"], endpoint="backup_workbook")
    def backup_workbook():
        filename = f"AcademyData_{today_local(container.tz).isoformat()}.xlsx"
        return app.response_class(
            service.export_workbook(),
            mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )
