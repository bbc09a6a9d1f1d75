from __future__ import annotations

from dataclasses import asdict

from flask import Flask, request

from ..common.http import ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/dashboard", methods=["GET"], endpoint="dashboard_summary")
    def dashboard_summary():
        summary = container.dashboard_service.summary(search=request.args.get("search"))
        data = asdict(summary)
        data["grades"] = [{"grade": g, "count": n} for g, n in summary.grades]
        data["offerPromotion"] = container.student_service.should_offer_promotion()
        return ok(data)
