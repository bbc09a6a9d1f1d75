"""Billing-cycle arithmetic.

Nothing here reads the stored ``next_due_date``; every value is derived from
the join date and the billing month each payment clears.
"""
from __future__ import annotations

import re
from datetime import date, datetime, tzinfo
from typing import Iterable, Optional

from ..common.datetime_utils import add_months, last_day_of_month, parse_timestamp_date, same_month
from ..core.constants import BILLING_OPTIONS_COUNT, BILLING_OPTIONS_MONTHS_BACK, LEGACY_BILLING_NOTE_PREFIX
from ..core.exceptions import DuplicateBillingCycleError
from ..students.model import Student
from .model import BillingOption, FeeRecord, FeeStatus

_LEGACY_NOTE = re.compile(re.escape(LEGACY_BILLING_NOTE_PREFIX) + r"\s*([^(]+)")


def billing_day(student: Student) -> int:
    joined = student.joined_on
    return joined.day if joined else 1


def legacy_note_month(notes: str) -> Optional[str]:
    """The ``<Month Year>`` text of a ``Billing Month: ...`` note, if any."""
    m = _LEGACY_NOTE.search(notes or "")
    if not m:
        return None
    return m.group(1).strip() or None


def _parse_month_label(label: str, day: int) -> Optional[date]:
    for fmt in ("%b %Y", "%B %Y"):
        try:
            parsed = datetime.strptime(label, fmt)
        except ValueError:
            continue
        return date(parsed.year, parsed.month, min(day, last_day_of_month(parsed.year, parsed.month)))
    return None


def explicit_cycle(record: FeeRecord, *, day: int, tz: Optional[tzinfo] = None) -> Optional[date]:
    """Billing month recorded on the payment: the field first, then the legacy note."""
    if record.billing_month:
        parsed = parse_timestamp_date(record.billing_month, tz=tz)
        if parsed is not None:
            return parsed
    label = legacy_note_month(record.notes)
    if label:
        return _parse_month_label(label, day)
    return None


def resolved_cycle(record: FeeRecord, *, day: int, tz: Optional[tzinfo] = None) -> Optional[date]:
    """Explicit billing month, falling back to the transaction date."""
    return explicit_cycle(record, day=day, tz=tz) or parse_timestamp_date(record.date, tz=tz)


def anchor_date(records: Iterable[FeeRecord], *, day: int, tz: Optional[tzinfo] = None) -> Optional[date]:
    records = list(records)
    explicit = [c for c in (explicit_cycle(r, day=day, tz=tz) for r in records) if c is not None]
    if explicit:
        return max(explicit)
    paid = [d for d in (parse_timestamp_date(r.date, tz=tz) for r in records) if d is not None]
    return max(paid) if paid else None


def next_due_after(cycle: date, *, day: int) -> date:
    return add_months(cycle, 1, day=day)


def next_due_date(
    student: Student, records: Iterable[FeeRecord], *, today: date, tz: Optional[tzinfo] = None
) -> date:
    day = billing_day(student)
    anchor = anchor_date(records, day=day, tz=tz)
    if anchor is not None:
        return next_due_after(anchor, day=day)
    return student.joined_on or today


def fee_status(
    student: Student, records: Iterable[FeeRecord], *, today: date, tz: Optional[tzinfo] = None
) -> FeeStatus:
    """``records`` may hold every fee; only the student's own are considered."""
    own = [r for r in records if r.student_id == student.id]
    due = next_due_date(student, own, today=today, tz=tz)
    paid_days = [d for d in (parse_timestamp_date(r.date, tz=tz) for r in own) if d is not None]
    return FeeStatus(
        next_due=due,
        is_overdue=due < today,
        last_paid=max(paid_days) if paid_days else None,
        payment_count=len(own),
    )


def ensure_cycle_free(
    records: Iterable[FeeRecord],
    cycle: date,
    *,
    day: int,
    tz: Optional[tzinfo] = None,
    editing_id: Optional[str] = None,
) -> None:
    """Raise DuplicateBillingCycleError when another payment already clears ``cycle``'s month."""
    for r in records:
        if editing_id is not None and r.id == editing_id:
            continue
        existing = resolved_cycle(r, day=day, tz=tz)
        if existing is not None and same_month(existing, cycle):
            raise DuplicateBillingCycleError(f"Fee for {cycle.strftime('%B %Y')} is already recorded")


def billing_options(
    student: Student, records: Iterable[FeeRecord], *, today: date, tz: Optional[tzinfo] = None
) -> list[BillingOption]:
    """Candidate months for a new payment, starting a few months before the current due month."""
    day = billing_day(student)
    due = next_due_date(student, [r for r in records if r.student_id == student.id], today=today, tz=tz)
    start = add_months(due, -BILLING_OPTIONS_MONTHS_BACK, day=day)

    options: list[BillingOption] = []
    for i in range(BILLING_OPTIONS_COUNT):
        d = add_months(start, i, day=day)
        is_due = same_month(d, due)
        label = d.strftime("%B %Y") + (" (Current Due)" if is_due else "")
        options.append(BillingOption(billing_date=d, label=label, is_due_month=is_due))
    return options


def cycle_label(record: FeeRecord, *, day: int, tz: Optional[tzinfo] = None) -> str:
    """Month a payment was for, as shown on receipts."""
    if record.billing_month:
        parsed = parse_timestamp_date(record.billing_month, tz=tz)
        if parsed is not None:
            return parsed.strftime("%B %Y")
    label = legacy_note_month(record.notes)
    if label:
        return label
    paid = parse_timestamp_date(record.date, tz=tz)
    return paid.strftime("%B %Y") if paid else "Unknown Month"
