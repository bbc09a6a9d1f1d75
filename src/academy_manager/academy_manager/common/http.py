from __future__ import annotations

from datetime import date, tzinfo
from typing import Any, Optional

from flask import request

from ..core.exceptions import ValidationError
from .datetime_utils import parse_iso_date, today_local


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def parse_day(value: Optional[str], field_name: str, *, default: Optional[date] = None) -> date:
    if not value:
        if default is not None:
            return default
        raise ValidationError(f"{field_name} is required")
    try:
        return parse_iso_date(str(value)[:10])
    except ValueError:
        raise ValidationError(f"{field_name} must be YYYY-MM-DD")


def arg_day(name: str, *, default_today: bool = True, tz: Optional[tzinfo] = None) -> date:
    return parse_day(request.args.get(name), name, default=today_local(tz) if default_today else None)


def arg_bool(name: str, default: bool = False) -> bool:
    value = request.args.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def ok(payload: Any = None, status: int = 200):
    body: dict[str, Any] = {"success": True}
    if payload is not None:
        body["data"] = payload
    return body, status
