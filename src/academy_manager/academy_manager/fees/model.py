from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class FeeRecord:
    """Domain entity: one payment (or waiver, amount 0) for one billing month.

    ``next_due_date`` is a display copy written at save time; the billing
    calculator always derives the real value from ``billing_month``.
    """

    id: str
    student_id: str
    amount: float
    date: str
    billing_month: Optional[str] = None
    next_due_date: Optional[str] = None
    notes: str = ""
    receipt_sent: bool = False


@dataclass(frozen=True)
class FeeStatus:
    next_due: date
    is_overdue: bool
    last_paid: Optional[date]
    payment_count: int


@dataclass(frozen=True)
class BillingOption:
    billing_date: date
    label: str
    is_due_month: bool
