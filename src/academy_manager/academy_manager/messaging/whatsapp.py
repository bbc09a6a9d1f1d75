from __future__ import annotations

import re
from datetime import date
from urllib.parse import quote

from ..core.constants import COUNTRY_CODE, WHATSAPP_BASE_URL

_NON_DIGITS = re.compile(r"\D")


def format_sl_number(number: str) -> str:
    """Normalise a Sri Lankan phone number to the ``94XXXXXXXXX`` form wa.me expects.

    Unknown shapes are passed through (digits only), never rejected.
    """
    cleaned = _NON_DIGITS.sub("", number or "")
    if len(cleaned) == 10 and cleaned.startswith("0"):
        return COUNTRY_CODE + cleaned[1:]
    if len(cleaned) == 9:
        return COUNTRY_CODE + cleaned
    return cleaned


def whatsapp_link(number: str, message: str = "") -> str:
    url = f"{WHATSAPP_BASE_URL}/{format_sl_number(number)}"
    if message:
        url += "?text=" + quote(message, safe="")
    return url


def _long_date(d: date) -> str:
    return f"{d.day} {d.strftime('%b %Y')}"


def absence_alert_message(*, student_name: str, streak: int, academy_name: str) -> str:
    return (
        "*Absence Notice*\n\n"
        "Assalamu Alaikum,\n\n"
        f"*{student_name}* has missed the last *{streak}* classes in a row.\n"
        "Please let us know if everything is alright.\n\n"
        "Thank you.\n"
        f"{academy_name}"
    )


def fee_reminder_message(*, student_name: str, next_due: date, academy_name: str) -> str:
    return (
        "*Fee Reminder*\n\n"
        "Assalamu Alaikum,\n\n"
        f"The next fee for *{student_name}* is due on *{_long_date(next_due)}* "
        f"({next_due.strftime('%B')}).\n\n"
        "Please check the balance.\n\n"
        "Thank you.\n"
        "Teacher\n"
        f"{academy_name}"
    )


def payment_receipt_message(
    *, student_name: str, billing_month_label: str, amount: float, next_due_label: str, academy_name: str
) -> str:
    amount_text = f"{amount:g}"
    return (
        "*Payment Received*\n\n"
        "Assalamu Alaikum,\n\n"
        f"We have received *Rs. {amount_text}* for *{student_name}* "
        f"for the month of *{billing_month_label}*.\n\n"
        f"Next installment: *{next_due_label}*\n\n"
        "Thank you.\n"
        f"{academy_name}"
    )
