from __future__ import annotations

from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_non_negative(value: object, field_name: str) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if number < 0:
        raise ValidationError(f"{field_name} must not be negative")
    return number


def require_positive(value: object, field_name: str) -> float:
    number = require_non_negative(value, field_name)
    if number == 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return number
