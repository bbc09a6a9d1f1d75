from __future__ import annotations

from flask import Flask, request

from ..common.http import json_body, ok, parse_day
from ..container import Container
from ..core.enums import FeeFilter
from ..core.exceptions import ValidationError
from ..storage.codec import fee_to_dict, student_to_dict
from .model import FeeStatus


def _status_to_dict(st: FeeStatus) -> dict:
    return {
        "nextDueDate": st.next_due.isoformat(),
        "isOverdue": st.is_overdue,
        "lastPaidDate": st.last_paid.isoformat() if st.last_paid else None,
        "paymentCount": st.payment_count,
    }


def register(app: Flask, container: Container) -> None:
    service = container.fee_service

    @app.route("/api/fees", methods=["GET"], endpoint="fees_students")
    def fees_students():
        raw = request.args.get("filter") or FeeFilter.ALL.value
        try:
            status = FeeFilter(raw)
        except ValueError:
            raise ValidationError(f"Unknown filter: {raw!r}")
        rows = service.list_students(status=status, grade=request.args.get("grade"), search=request.args.get("search"))
        return ok([{"student": student_to_dict(s), "status": _status_to_dict(st)} for s, st in rows])

    @app.route("/api/fees/students/<student_id>", methods=["GET"], endpoint="fees_student_detail")
    def fees_student_detail(student_id: str):
        return ok(
            {
                "status": _status_to_dict(service.fee_status(student_id)),
                "billingOptions": [
                    {"value": o.billing_date.isoformat(), "label": o.label, "isDueMonth": o.is_due_month}
                    for o in service.billing_options(student_id)
                ],
                "records": [fee_to_dict(r) for r in service.records_for(student_id)],
            }
        )

    @app.route("/api/fees", methods=["POST"], endpoint="fees_record_payment")
    def fees_record_payment():
        data = json_body()
        record = service.record_payment(
            data.get("studentId", ""),
            billing_month=parse_day(data.get("billingMonth"), "billingMonth"),
            amount=data.get("amount"),
            paid_on=parse_day(data.get("paidOn"), "paidOn") if data.get("paidOn") else None,
            skipped=bool(data.get("skipped")),
            skip_reason=data.get("skipReason"),
            receipt_sent=bool(data.get("receiptSent")),
        )
        return ok(fee_to_dict(record), 201)

    @app.route("/api/fees/<fee_id>", methods=["PUT"], endpoint="fees_update_payment")
    def fees_update_payment(fee_id: str):
        data = json_body()
        record = service.update_payment(
            fee_id,
            amount=data.get("amount"),
            billing_month=parse_day(data["billingMonth"], "billingMonth") if data.get("billingMonth") else None,
            paid_on=parse_day(data["paidOn"], "paidOn") if data.get("paidOn") else None,
            notes=data.get("notes"),
            receipt_sent=data.get("receiptSent"),
        )
        return ok(fee_to_dict(record))

    @app.route("/api/fees/<fee_id>", methods=["DELETE"], endpoint="fees_delete_payment")
    def fees_delete_payment(fee_id: str):
        service.delete_payment(fee_id)
        return ok()

    @app.route("/api/fees/<fee_id>/receipt", methods=["POST"], endpoint="fees_receipt")
    def fees_receipt(fee_id: str):
        return ok({"link": service.receipt_link(fee_id)})

    @app.route("/api/fees/<fee_id>/receipt-sent", methods=["POST"], endpoint="fees_receipt_sent")
    def fees_receipt_sent(fee_id: str):
        return ok(fee_to_dict(service.mark_receipt_sent(fee_id)))

    @app.route("/api/fees/reminders/<student_id>", methods=["POST"], endpoint="fees_reminder")
    def fees_reminder(student_id: str):
        return ok({"link": service.send_reminder(student_id)})
