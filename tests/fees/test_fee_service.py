from __future__ import annotations

from datetime import date, datetime, timezone
from urllib.parse import unquote
from zoneinfo import ZoneInfo

import pytest

from src.academy_manager.academy_manager.common import datetime_utils
from src.academy_manager.academy_manager.core.enums import FeeFilter, Table
from src.academy_manager.academy_manager.core.exceptions import DuplicateBillingCycleError, ValidationError
from src.academy_manager.academy_manager.fees.model import FeeRecord
from src.academy_manager.academy_manager.fees.service import FeeService, payment_notes, was_sent_recently
from src.academy_manager.academy_manager.storage.snapshot_store import LocalSnapshotStore
from src.academy_manager.academy_manager.students.model import Student
from src.academy_manager.academy_manager.sync.connectivity import ConnectivityMonitor
from src.academy_manager.academy_manager.sync.coordinator import SyncCoordinator
from src.academy_manager.academy_manager.sync.queue import DurableMutationQueue


@pytest.fixture
def sync(tmp_path):
    store = LocalSnapshotStore(tmp_path)
    store.upsert(Table.STUDENTS, Student(id="s1", name="Amal", grade="6", joined_date="2024-01-10", mobile_number="0771234567"))
    store.upsert(Table.STUDENTS, Student(id="s2", name="Nimal", grade="7", joined_date="2024-01-20"))
    return SyncCoordinator(store, DurableMutationQueue(store), ConnectivityMonitor(online=False))


@pytest.fixture
def service(sync):
    return FeeService(sync, academy_name="Test Academy", default_amount=1500)


def test_payment_notes_format():
    assert payment_notes(date(2024, 3, 10)) == "Billing Month: Mar 2024"
    assert payment_notes(date(2024, 3, 10), skipped=True, skip_reason=" ") == "Billing Month: Mar 2024 (Skipped: No reason)"


def test_record_payment_writes_cycle_and_queues(service, sync):
    record = service.record_payment("s1", billing_month=date(2024, 1, 10), paid_on=date(2024, 1, 12))

    assert record.amount == 1500
    assert record.billing_month == "2024-01-10"
    assert record.next_due_date == "2024-02-10"
    assert record.notes == "Billing Month: Jan 2024"
    assert sync.queue.pending()[-1].table == "fees"
    assert service.fee_status("s1", today=date(2024, 2, 1)).next_due == date(2024, 2, 10)


def test_second_payment_for_same_month_is_rejected(service):
    service.record_payment("s1", billing_month=date(2024, 1, 10))
    with pytest.raises(DuplicateBillingCycleError):
        service.record_payment("s1", billing_month=date(2024, 1, 25))


def test_skipped_month_is_zero_amount(service):
    record = service.record_payment("s1", billing_month=date(2024, 2, 10), skipped=True, skip_reason="Sick")
    assert record.amount == 0
    assert record.notes == "Billing Month: Feb 2024 (Skipped: Sick)"


def test_negative_amount_is_rejected(service):
    with pytest.raises(ValidationError):
        service.record_payment("s1", billing_month=date(2024, 2, 10), amount=-5)


def test_update_payment_moves_cycle_and_keeps_skip_suffix(service):
    record = service.record_payment("s1", billing_month=date(2024, 2, 10), skipped=True, skip_reason="Sick")
    updated = service.update_payment(record.id, billing_month=date(2024, 3, 10))

    assert updated.billing_month == "2024-03-10"
    assert updated.next_due_date == "2024-04-10"
    assert updated.notes == "Billing Month: Mar 2024 (Skipped: Sick)"


def test_list_students_filters_by_status(service):
    service.record_payment("s1", billing_month=date(2024, 2, 10))
    today = date(2024, 2, 15)

    paid = service.list_students(status=FeeFilter.PAID, today=today)
    overdue = service.list_students(status=FeeFilter.OVERDUE, today=today)

    assert [s.id for s, _ in paid] == ["s1"]
    assert [s.id for s, _ in overdue] == ["s2"]
    assert len(service.list_students(today=today)) == 2


def test_send_reminder_updates_student(service, sync):
    link = service.send_reminder("s1", now=datetime(2024, 2, 15, 9, 0))

    assert link.startswith("https://wa.me/94771234567?text=")
    assert "10 Jan 2024" in unquote(link)
    student = sync.store.get(Table.STUDENTS, "s1")
    assert student.reminder_count == 1
    assert student.last_reminder_sent_at == "2024-02-15T09:00:00"
    assert was_sent_recently(student.last_reminder_sent_at, datetime(2024, 2, 16, 8, 59)) is True
    assert was_sent_recently(student.last_reminder_sent_at, datetime(2024, 2, 16, 9, 1)) is False


def test_reminder_without_number_fails(service):
    with pytest.raises(ValidationError):
        service.send_reminder("s2")


def test_receipt_link_marks_receipt_sent(service, sync):
    record = service.record_payment("s1", billing_month=date(2024, 1, 10), amount=2000)
    link = service.receipt_link(record.id)

    text = unquote(link)
    assert "Rs. 2000" in text
    assert "January 2024" in text
    assert "10 Feb 2024" in text
    assert "Test Academy" in text
    assert sync.store.get(Table.FEES, record.id).receipt_sent is True


def test_mark_receipt_sent(service, sync):
    record = service.record_payment("s1", billing_month=date(2024, 1, 10))
    assert record.receipt_sent is False

    service.mark_receipt_sent(record.id)
    assert sync.store.get(Table.FEES, record.id).receipt_sent is True
    with pytest.raises(ValidationError):
        service.mark_receipt_sent("missing")


def test_overdue_follows_the_academy_day_not_the_host_clock(sync, monkeypatch):
    # 20:00 UTC on 15 Jan is already 16 Jan in Colombo.
    monkeypatch.setattr(datetime_utils, "_utc_now", lambda: datetime(2024, 1, 15, 20, 0, tzinfo=timezone.utc))
    sync.store.upsert(Table.STUDENTS, Student(id="s3", name="Kasun", joined_date="2024-01-15"))
    service = FeeService(sync, academy_name="Test Academy", tz=ZoneInfo("Asia/Colombo"))

    status = service.fee_status("s3")
    assert status.next_due == date(2024, 1, 15)
    assert status.is_overdue is True

    record = service.record_payment("s3", billing_month=date(2024, 1, 15))
    assert record.date == "2024-01-16"


def test_first_payment_moves_due_date_one_month(sync, service):
    sync.store.upsert(Table.STUDENTS, Student(id="s3", name="Kasun", joined_date="2024-01-15"))

    before = service.fee_status("s3", today=date(2024, 1, 20))
    assert (before.next_due, before.is_overdue) == (date(2024, 1, 15), True)

    service.record_payment("s3", billing_month=date(2024, 1, 15), paid_on=date(2024, 1, 15))
    after = service.fee_status("s3", today=date(2024, 2, 10))
    assert (after.next_due, after.is_overdue) == (date(2024, 2, 15), False)


def test_moving_paid_date_of_legacy_record_checks_the_new_month(sync, service):
    sync.store.upsert(Table.FEES, FeeRecord(id="old", student_id="s1", amount=1500, date="2024-01-12"))
    service.record_payment("s1", billing_month=date(2024, 2, 10), paid_on=date(2024, 2, 10))

    with pytest.raises(DuplicateBillingCycleError):
        service.update_payment("old", paid_on=date(2024, 2, 20))
    assert sync.store.get(Table.FEES, "old").date == "2024-01-12"

    moved = service.update_payment("old", paid_on=date(2024, 3, 5))
    assert moved.date == "2024-03-05"
