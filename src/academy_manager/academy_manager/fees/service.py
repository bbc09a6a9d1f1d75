from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from ..common.datetime_utils import now_local, parse_timestamp_or_none, today_local
from ..common.ids import generate_id
from ..common.validators import require_non_negative
from ..core.constants import DEFAULT_FEE_AMOUNT, LEGACY_BILLING_NOTE_PREFIX, REMINDER_COOLDOWN_HOURS
from ..core.enums import FeeFilter, Table
from ..core.exceptions import ValidationError
from ..messaging.whatsapp import fee_reminder_message, payment_receipt_message, whatsapp_link
from ..students.model import Student
from ..sync.coordinator import SyncCoordinator
from . import billing
from .model import BillingOption, FeeRecord, FeeStatus

logger = logging.getLogger(__name__)

_SKIP_MARKER = " (Skipped:"


def payment_notes(cycle: date, *, skipped: bool = False, skip_reason: Optional[str] = None) -> str:
    notes = f"{LEGACY_BILLING_NOTE_PREFIX} {cycle.strftime('%b %Y')}"
    if skipped:
        notes += f"{_SKIP_MARKER} {(skip_reason or '').strip() or 'No reason'})"
    return notes


def was_sent_recently(sent_at: Optional[str], now: datetime) -> bool:
    sent = parse_timestamp_or_none(sent_at)
    if sent is None:
        return False
    if (sent.tzinfo is None) != (now.tzinfo is None):
        sent = sent.replace(tzinfo=None) if now.tzinfo is None else sent.replace(tzinfo=now.tzinfo)
    return now - sent < timedelta(hours=REMINDER_COOLDOWN_HOURS)


class FeeService:
    def __init__(
        self,
        sync: SyncCoordinator,
        *,
        academy_name: str,
        tz: Optional[tzinfo] = None,
        default_amount: float = DEFAULT_FEE_AMOUNT,
    ):
        self._sync = sync
        self._academy_name = academy_name
        self._tz = tz
        self._default_amount = float(default_amount)

    def _student(self, student_id: str) -> Student:
        s = self._sync.store.get(Table.STUDENTS, student_id)
        if not s:
            raise ValidationError("Student not found")
        return s

    def _record(self, fee_id: str) -> FeeRecord:
        r = self._sync.store.get(Table.FEES, fee_id)
        if not r:
            raise ValidationError("Fee record not found")
        return r

    def records_for(self, student_id: str) -> list[FeeRecord]:
        rows = [r for r in self._sync.store.all(Table.FEES) if r.student_id == student_id]
        return sorted(rows, key=lambda r: r.date, reverse=True)

    def fee_status(self, student_id: str, *, today: Optional[date] = None) -> FeeStatus:
        return billing.fee_status(
            self._student(student_id), self._sync.store.all(Table.FEES), today=today or today_local(self._tz), tz=self._tz
        )

    def billing_options(self, student_id: str, *, today: Optional[date] = None) -> list[BillingOption]:
        return billing.billing_options(
            self._student(student_id), self._sync.store.all(Table.FEES), today=today or today_local(self._tz), tz=self._tz
        )

    def list_students(
        self,
        *,
        status: FeeFilter = FeeFilter.ALL,
        grade: Optional[str] = None,
        search: Optional[str] = None,
        today: Optional[date] = None,
    ) -> list[tuple[Student, FeeStatus]]:
        today = today or today_local(self._tz)
        fees = self._sync.store.all(Table.FEES)
        needle = (search or "").strip().lower()
        status = FeeFilter(status)

        out = []
        for s in self._sync.store.all(Table.STUDENTS):
            if needle and needle not in s.name.lower():
                continue
            if grade and s.grade != grade:
                continue
            st = billing.fee_status(s, fees, today=today, tz=self._tz)
            if status == FeeFilter.PAID and st.is_overdue:
                continue
            if status == FeeFilter.OVERDUE and not st.is_overdue:
                continue
            out.append((s, st))
        return out

    def record_payment(
        self,
        student_id: str,
        *,
        billing_month: date,
        amount: Optional[float] = None,
        paid_on: Optional[date] = None,
        skipped: bool = False,
        skip_reason: Optional[str] = None,
        receipt_sent: bool = False,
    ) -> FeeRecord:
        """Record a payment (or a waiver, amount 0) clearing ``billing_month``."""
        student = self._student(student_id)
        day = billing.billing_day(student)
        billing.ensure_cycle_free(self.records_for(student_id), billing_month, day=day, tz=self._tz)

        final_amount = 0.0 if skipped else require_non_negative(
            self._default_amount if amount is None else amount, "amount"
        )
        record = FeeRecord(
            id=generate_id(),
            student_id=student_id,
            amount=final_amount,
            date=(paid_on or today_local(self._tz)).isoformat(),
            billing_month=billing_month.isoformat(),
            next_due_date=billing.next_due_after(billing_month, day=day).isoformat(),
            notes=payment_notes(billing_month, skipped=skipped, skip_reason=skip_reason),
            receipt_sent=receipt_sent,
        )
        self._sync.save(Table.FEES, record)
        logger.info(
            "%s %s for student %s", "Waived" if skipped else "Paid", billing_month.strftime("%b %Y"), student_id
        )
        return record

    def update_payment(
        self,
        fee_id: str,
        *,
        amount: Optional[float] = None,
        billing_month: Optional[date] = None,
        paid_on: Optional[date] = None,
        notes: Optional[str] = None,
        receipt_sent: Optional[bool] = None,
    ) -> FeeRecord:
        current = self._record(fee_id)
        student = self._student(current.student_id)
        day = billing.billing_day(student)
        record = current

        if billing_month is not None:
            billing.ensure_cycle_free(
                self.records_for(student.id), billing_month, day=day, tz=self._tz, editing_id=fee_id
            )
            old_notes = current.notes if notes is None else notes
            skip_suffix = old_notes[old_notes.index(_SKIP_MARKER):] if _SKIP_MARKER in old_notes else ""
            record = replace(
                record,
                billing_month=billing_month.isoformat(),
                next_due_date=billing.next_due_after(billing_month, day=day).isoformat(),
                notes=payment_notes(billing_month) + skip_suffix,
            )
        elif notes is not None:
            record = replace(record, notes=notes)

        if amount is not None:
            record = replace(record, amount=require_non_negative(amount, "amount"))
        if paid_on is not None:
            # Without a recorded billing month the paid date is the cycle.
            if billing.explicit_cycle(record, day=day, tz=self._tz) is None:
                billing.ensure_cycle_free(
                    self.records_for(student.id), paid_on, day=day, tz=self._tz, editing_id=fee_id
                )
            record = replace(record, date=paid_on.isoformat())
        if receipt_sent is not None:
            record = replace(record, receipt_sent=bool(receipt_sent))

        self._sync.save(Table.FEES, record)
        return record

    def delete_payment(self, fee_id: str) -> None:
        self._record(fee_id)
        self._sync.discard(Table.FEES, fee_id)

    def mark_receipt_sent(self, fee_id: str) -> FeeRecord:
        record = replace(self._record(fee_id), receipt_sent=True)
        self._sync.save(Table.FEES, record)
        return record

    def send_reminder(self, student_id: str, *, now: Optional[datetime] = None) -> str:
        now = now or now_local(self._tz)
        student = self._student(student_id)
        number = student.contact_number
        if not number:
            raise ValidationError("No mobile number found")

        status = billing.fee_status(student, self._sync.store.all(Table.FEES), today=now.date(), tz=self._tz)
        link = whatsapp_link(
            number,
            fee_reminder_message(student_name=student.name, next_due=status.next_due, academy_name=self._academy_name),
        )
        self._sync.save(
            Table.STUDENTS,
            replace(student, last_reminder_sent_at=now.isoformat(), reminder_count=student.reminder_count + 1),
        )
        return link

    def receipt_link(self, fee_id: str) -> str:
        """Payment-received message for an existing record; marks its receipt as sent."""
        record = self._record(fee_id)
        student = self._student(record.student_id)
        number = student.contact_number
        if not number:
            raise ValidationError("No number found")

        day = billing.billing_day(student)
        cycle = billing.resolved_cycle(record, day=day, tz=self._tz)
        next_due = billing.next_due_after(cycle, day=day) if cycle else None
        message = payment_receipt_message(
            student_name=student.name,
            billing_month_label=billing.cycle_label(record, day=day, tz=self._tz),
            amount=record.amount,
            next_due_label=f"{next_due.day} {next_due.strftime('%b %Y')}" if next_due else "Check App",
            academy_name=self._academy_name,
        )
        if not record.receipt_sent:
            self._sync.save(Table.FEES, replace(record, receipt_sent=True))
        return whatsapp_link(number, message)
