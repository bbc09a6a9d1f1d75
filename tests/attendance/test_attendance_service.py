from __future__ import annotations

from datetime import date, datetime, timezone
from urllib.parse import unquote
from zoneinfo import ZoneInfo

import pytest

from src.academy_manager.academy_manager.attendance.service import AttendanceService
from src.academy_manager.academy_manager.classes.model import ClassGroup
from src.academy_manager.academy_manager.common import datetime_utils
from src.academy_manager.academy_manager.core.enums import RecordStatus, StudentStatus, Table
from src.academy_manager.academy_manager.core.exceptions import ValidationError
from src.academy_manager.academy_manager.storage.snapshot_store import LocalSnapshotStore
from src.academy_manager.academy_manager.students.model import Student
from src.academy_manager.academy_manager.sync.connectivity import ConnectivityMonitor
from src.academy_manager.academy_manager.sync.coordinator import SyncCoordinator
from src.academy_manager.academy_manager.sync.queue import DurableMutationQueue

SAT, SUN, MON, TUE = date(2025, 3, 1), date(2025, 3, 2), date(2025, 3, 3), date(2025, 3, 4)
TODAY = date(2025, 3, 10)


@pytest.fixture
def sync(tmp_path):
    store = LocalSnapshotStore(tmp_path)
    for s in (
        Student(id="s1", name="Amal", grade="6", joined_date="2025-01-01", whatsapp_number="077 123 4567"),
        Student(id="s2", name="Nimal", grade="7", joined_date="2025-01-01"),
        Student(id="s3", name="Kasun", grade="6", joined_date="2025-03-05"),
        Student(id="s4", name="Zara", grade="6", status=StudentStatus.TEMPORARY_SUSPENDED),
    ):
        store.upsert(Table.STUDENTS, s)
    store.upsert(Table.CLASSES, ClassGroup(id="c1", name="Grade 6", day="Saturday", start_time="16:00"))
    return SyncCoordinator(store, DurableMutationQueue(store), ConnectivityMonitor(online=False))


@pytest.fixture
def service(sync):
    return AttendanceService(sync, academy_name="Test Academy")


def test_roster_filters_joined_suspended_and_grade(service):
    assert [s.id for s in service.roster(SAT)] == ["s1", "s2"]
    assert [s.id for s in service.roster(SAT, class_id="Grade 6")] == ["s1"]
    assert [s.id for s in service.roster(SAT, start_time="16:00")] == ["s1"]
    assert [s.id for s in service.roster(SAT, search="nim")] == ["s2"]
    assert service.roster(TUE) == []


def test_save_rejects_non_class_and_future_days(service):
    with pytest.raises(ValidationError):
        service.save_attendance(None, TUE, ["s1"], today=TODAY)
    with pytest.raises(ValidationError):
        service.save_attendance(None, date(2025, 3, 15), ["s1"], today=TODAY)


def test_save_reuses_the_existing_record(service, sync):
    first = service.save_attendance(None, SAT, ["s1"], today=TODAY)
    second = service.save_attendance("All", SAT, ["s1", "s2", "s1"], today=TODAY)

    assert second.id == first.id
    assert second.class_id == "general"
    assert second.student_ids_present == ("s1", "s2")
    assert len(sync.store.all(Table.ATTENDANCE)) == 1


def test_toggle_cancelled_keeps_marks(service):
    service.save_attendance("6", SAT, ["s1"], today=TODAY)

    cancelled = service.toggle_cancelled("6", SAT)
    assert cancelled.status == RecordStatus.CANCELLED
    assert cancelled.student_ids_present == ("s1",)
    assert service.is_cancelled(SAT, "6") is True
    assert service.is_cancelled(SAT) is False

    assert service.toggle_cancelled("6", SAT).status == RecordStatus.ACTIVE


def test_general_cancellation_applies_to_classes(service):
    record = service.toggle_cancelled(None, SUN)
    assert record.status == RecordStatus.CANCELLED
    assert service.is_cancelled(SUN, "6") is True


def test_alerts_and_contact(service, sync):
    service.save_attendance(None, SAT, [], today=TODAY)
    service.save_attendance(None, SUN, ["s2"], today=TODAY)

    alerts = service.absence_alerts(SUN)
    assert [(a.student_id, a.streak, a.contacted) for a in alerts] == [("s1", 2, False)]

    link = service.contact_absentee("s1", SUN)
    link_again = service.contact_absentee("s1", SUN)

    assert link == link_again
    assert link.startswith("https://wa.me/94771234567?text=")
    assert "missed the last *2* classes" in unquote(link)
    record = service.find_record("general", SUN)
    assert record.contacted_absentees == ("s1",)
    assert sync.store.get(Table.STUDENTS, "s1").last_inquiry_sent_date == "2025-03-02"
    assert service.absence_alerts(SUN)[0].contacted is True


def test_contact_without_number_fails(service):
    with pytest.raises(ValidationError):
        service.contact_absentee("s2", SUN)


def test_day_sheet_merges_presence_across_records(service):
    service.save_attendance(None, SAT, ["s2"], today=TODAY)
    service.save_attendance("6", SAT, ["s1"], contacted_ids=["s3"], today=TODAY)

    sheet = service.day_sheet(SAT, class_id="6")
    assert sheet.present_ids == frozenset({"s1", "s2"})
    assert sheet.contacted_ids == frozenset({"s3"})
    assert sheet.class_id == "6"
    assert sheet.is_class_day is True


def test_report_range_validation(service):
    with pytest.raises(ValidationError):
        service.attendance_report(MON, SAT)


def test_future_guard_uses_the_academy_day(sync, monkeypatch):
    # 20:00 UTC on Sat 1 March is already Sunday 2 March in Colombo.
    monkeypatch.setattr(datetime_utils, "_utc_now", lambda: datetime(2025, 3, 1, 20, 0, tzinfo=timezone.utc))
    service = AttendanceService(sync, academy_name="Test Academy", tz=ZoneInfo("Asia/Colombo"))

    assert service.save_attendance(None, SUN, ["s1"]).date == "2025-03-02"
    with pytest.raises(ValidationError):
        service.save_attendance(None, MON, ["s1"])
