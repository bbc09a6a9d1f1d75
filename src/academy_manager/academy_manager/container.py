from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo

from .ai.client import GenerativeTextClient
from .ai.service import AssistantService
from .attendance.service import AttendanceService
from .backup.service import BackupService
from .classes.service import ClassService
from .core.constants import DEFAULT_FEE_AMOUNT, DEFAULT_GEMINI_MODEL
from .core.exceptions import ValidationError
from .dashboard.service import DashboardService
from .database.connection import DBConfig, DatabaseConnection
from .exams.service import ExamService
from .fees.service import FeeService
from .storage.snapshot_store import LocalSnapshotStore
from .students.service import StudentService
from .sync.connectivity import ConnectivityMonitor, HttpConnectivityMonitor
from .sync.coordinator import SyncCoordinator
from .sync.gateway import RemoteTableGateway
from .sync.mysql_gateway import MySQLTableGateway
from .sync.queue import DurableMutationQueue
from .sync.supabase_gateway import SupabaseTableGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    store: LocalSnapshotStore
    queue: DurableMutationQueue
    connectivity: ConnectivityMonitor
    gateway: Optional[RemoteTableGateway]
    sync: SyncCoordinator
    tz: Optional[tzinfo]

    student_service: StudentService
    class_service: ClassService
    attendance_service: AttendanceService
    fee_service: FeeService
    exam_service: ExamService
    dashboard_service: DashboardService
    assistant_service: AssistantService
    backup_service: BackupService


def _setting(settings: Any, name: str, default: Any = None) -> Any:
    return getattr(settings, name, default)


def _build_gateway(settings: Any) -> tuple[Optional[RemoteTableGateway], Optional[DatabaseConnection]]:
    backend = str(_setting(settings, "REMOTE_BACKEND", "none") or "none").lower()
    if backend == "none":
        return None, None
    if backend == "mysql":
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(_setting(settings, "DB_CONFIG", {})))
        return MySQLTableGateway(conn), conn
    if backend == "supabase":
        url = _setting(settings, "SUPABASE_URL")
        key = _setting(settings, "SUPABASE_KEY")
        if not url or not key:
            logger.warning("REMOTE_BACKEND=supabase but SUPABASE_URL/SUPABASE_KEY missing; running local only")
            return None, None
        return SupabaseTableGateway(url, key), None
    raise ValidationError(f"Unknown REMOTE_BACKEND: {backend!r}")


def build_container(settings: Any) -> Container:
    tz = ZoneInfo(_setting(settings, "TIMEZONE", "Asia/Colombo"))
    academy_name = _setting(settings, "ACADEMY_NAME", "Academy")

    store = LocalSnapshotStore(_setting(settings, "DATA_DIR", "data"))
    queue = DurableMutationQueue(store)

    probe_url = _setting(settings, "CONNECTIVITY_PROBE_URL")
    connectivity = HttpConnectivityMonitor(probe_url) if probe_url else ConnectivityMonitor()

    gateway, conn = _build_gateway(settings)
    if gateway is not None and not gateway.check_connection():
        logger.warning("Remote backend is unreachable; writes will queue until it responds")
    sync = SyncCoordinator(store, queue, connectivity, gateway)

    client = GenerativeTextClient(
        _setting(settings, "GEMINI_API_KEY"), model=_setting(settings, "GEMINI_MODEL", DEFAULT_GEMINI_MODEL)
    )

    return Container(
        conn=conn,
        store=store,
        queue=queue,
        connectivity=connectivity,
        gateway=gateway,
        sync=sync,
        tz=tz,
        student_service=StudentService(sync, tz=tz),
        class_service=ClassService(sync, tz=tz),
        attendance_service=AttendanceService(sync, academy_name=academy_name, tz=tz),
        fee_service=FeeService(
            sync,
            academy_name=academy_name,
            tz=tz,
            default_amount=float(_setting(settings, "DEFAULT_FEE_AMOUNT", DEFAULT_FEE_AMOUNT)),
        ),
        exam_service=ExamService(sync, tz=tz),
        dashboard_service=DashboardService(sync, tz=tz),
        assistant_service=AssistantService(client),
        backup_service=BackupService(sync),
    )
