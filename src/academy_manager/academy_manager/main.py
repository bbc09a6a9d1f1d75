from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module, load_settings

from .database.bootstrap import apply_schema, list_tables

from .container import build_container
from .core.exceptions import (
    DataShapeError,
    DomainError,
    DuplicateBillingCycleError,
    DuplicateStudentError,
    GatewayError,
    PossibleSiblingError,
    SyncUnavailableError,
)
from .ai.controller import register as register_ai
from .attendance.controller import register as register_attendance
from .backup.controller import register as register_backup
from .classes.controller import register as register_classes
from .dashboard.controller import register as register_dashboard
from .exams.controller import register as register_exams
from .fees.controller import register as register_fees
from .students.controller import register as register_students
from .sync.controller import register as register_sync

logger = logging.getLogger(__name__)


def _error(message: str, status: int, **extra):
    body = {"success": False, "message": message}
    body.update(extra)
    return body, status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(PossibleSiblingError)
    def handle_sibling(e: PossibleSiblingError):
        return _error(str(e), 409, existingStudentId=e.existing_student_id, existingName=e.existing_name)

    @app.errorhandler(DuplicateStudentError)
    @app.errorhandler(DuplicateBillingCycleError)
    def handle_duplicate(e: DomainError):
        return _error(str(e), 409)

    @app.errorhandler(SyncUnavailableError)
    def handle_unavailable(e: SyncUnavailableError):
        return _error(str(e), 503)

    @app.errorhandler(GatewayError)
    def handle_gateway(e: GatewayError):
        logger.error("Remote call failed: %s", e)
        return _error(str(e), 502)

    @app.errorhandler(DataShapeError)
    @app.errorhandler(DomainError)
    def handle_domain(e: DomainError):
        return _error(str(e), 400)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        # HTTP errors (404, 405, ...) keep their own status.
        code = getattr(e, "code", None)
        if isinstance(code, int) and 400 <= code < 500:
            return _error(getattr(e, "description", str(e)), code)
        logger.exception("Unhandled error")
        return _error("Internal server error", 500)


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = load_settings()
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=str(getattr(settings, "LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    backend = str(getattr(settings, "REMOTE_BACKEND", "none")).lower()
    logger.info("settings=%s backend=%s data_dir=%s", settings_module, backend, getattr(settings, "DATA_DIR", "data"))

    if backend == "mysql" and bool(getattr(settings, "AUTO_INIT_DB", False)):
        db_config = getattr(settings, "DB_CONFIG")
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(db_config, schema_path=schema_path)
        logger.info("schema ready (tables=%d)", len(list_tables(db_config)))

    container = build_container(settings)
    app.extensions["academy_container"] = container

    register_error_handlers(app)
    register_students(app, container)
    register_classes(app, container)
    register_attendance(app, container)
    register_fees(app, container)
    register_exams(app, container)
    register_dashboard(app, container)
    register_sync(app, container)
    register_ai(app, container)
    register_backup(app, container)

    return app
