from __future__ import annotations

from datetime import date
from itertools import permutations
from zoneinfo import ZoneInfo

import pytest

from src.academy_manager.academy_manager.core.exceptions import DuplicateBillingCycleError
from src.academy_manager.academy_manager.fees import billing
from src.academy_manager.academy_manager.fees.model import FeeRecord
from src.academy_manager.academy_manager.students.model import Student

COLOMBO = ZoneInfo("Asia/Colombo")


def _fee(fid, *, paid="2024-02-01", billing_month=None, notes="", student_id="s1"):
    return FeeRecord(id=fid, student_id=student_id, amount=1000, date=paid, billing_month=billing_month, notes=notes)


def test_no_payments_due_on_join_date_and_overdue():
    student = Student(id="s1", name="Amal", joined_date="2024-03-10")
    status = billing.fee_status(student, [], today=date(2024, 4, 1))

    assert status.next_due == date(2024, 3, 10)
    assert status.is_overdue is True
    assert status.payment_count == 0
    assert status.last_paid is None


def test_next_due_is_one_month_after_latest_explicit_cycle_clamped():
    student = Student(id="s1", name="Amal", joined_date="2024-01-31")
    records = [
        _fee("f1", billing_month="2024-01-31"),
        # A later transaction date for an earlier cycle does not move the anchor.
        _fee("f2", paid="2024-05-01", billing_month="2023-12-31"),
    ]

    assert billing.next_due_date(student, records, today=date(2024, 2, 10)) == date(2024, 2, 29)


def test_legacy_note_is_used_when_billing_month_missing():
    student = Student(id="s1", name="Amal", joined_date="2023-11-20")
    records = [_fee("f1", paid="2024-03-02", notes="Billing Month: Feb 2024 (Skipped: Sick)")]

    assert billing.legacy_note_month(records[0].notes) == "Feb 2024"
    assert billing.next_due_date(student, records, today=date(2024, 3, 5)) == date(2024, 3, 20)


def test_payment_date_is_the_last_resort_anchor():
    student = Student(id="s1", name="Amal", joined_date="2024-01-05")
    records = [_fee("f1", paid="2024-02-07"), _fee("f2", paid="2024-01-06")]

    assert billing.next_due_date(student, records, today=date(2024, 2, 10)) == date(2024, 3, 5)


def test_utc_billing_timestamp_is_read_in_academy_timezone():
    student = Student(id="s1", name="Amal", joined_date="2024-01-15")
    records = [_fee("f1", billing_month="2024-01-14T18:30:00.000Z")]

    assert billing.next_due_date(student, records, today=date(2024, 1, 20), tz=COLOMBO) == date(2024, 2, 15)


def test_fee_status_ignores_other_students():
    student = Student(id="s1", name="Amal", joined_date="2024-01-10")
    records = [_fee("f1", billing_month="2024-06-10", student_id="other")]

    status = billing.fee_status(student, records, today=date(2024, 2, 1))
    assert status.next_due == date(2024, 1, 10)
    assert status.payment_count == 0


def test_not_overdue_on_due_date():
    student = Student(id="s1", name="Amal", joined_date="2024-01-10")
    records = [_fee("f1", billing_month="2024-01-10")]

    assert billing.fee_status(student, records, today=date(2024, 2, 10)).is_overdue is False
    assert billing.fee_status(student, records, today=date(2024, 2, 11)).is_overdue is True


def test_duplicate_cycle_is_rejected_unless_editing_same_record():
    records = [_fee("f1", billing_month="2024-03-10"), _fee("f2", paid="2024-04-12")]

    with pytest.raises(DuplicateBillingCycleError):
        billing.ensure_cycle_free(records, date(2024, 3, 1), day=10)
    with pytest.raises(DuplicateBillingCycleError):
        # Transaction date of f2 counts when it has no explicit cycle.
        billing.ensure_cycle_free(records, date(2024, 4, 10), day=10)

    billing.ensure_cycle_free(records, date(2024, 3, 10), day=10, editing_id="f1")
    billing.ensure_cycle_free(records, date(2024, 5, 10), day=10)


def test_billing_options_window():
    student = Student(id="s1", name="Amal", joined_date="2024-01-31")
    options = billing.billing_options(student, [_fee("f1", billing_month="2024-05-31")], today=date(2024, 6, 1))

    assert len(options) == 8
    assert options[0].billing_date == date(2024, 3, 31)
    due = [o for o in options if o.is_due_month]
    assert [o.billing_date for o in due] == [date(2024, 6, 30)]
    assert due[0].label == "June 2024 (Current Due)"
    assert options[-1].billing_date == date(2024, 10, 31)


def test_cycle_label_prefers_explicit_month():
    assert billing.cycle_label(_fee("f1", billing_month="2024-03-10"), day=10) == "March 2024"
    assert billing.cycle_label(_fee("f2", notes="Billing Month: Feb 2024"), day=10) == "Feb 2024"
    assert billing.cycle_label(_fee("f3", paid="2024-07-02"), day=10) == "July 2024"


@pytest.mark.parametrize("order", list(permutations(["2024-01-31", "2024-02-29", "2024-03-31"])))
def test_explicit_cycles_in_any_order_advance_from_join_date(order):
    student = Student(id="s1", name="Amal", joined_date="2024-01-31")
    records = [_fee(f"f{i}", paid="2024-04-01", billing_month=month) for i, month in enumerate(order)]

    assert billing.next_due_date(student, records, today=date(2024, 4, 1)) == date(2024, 4, 30)
