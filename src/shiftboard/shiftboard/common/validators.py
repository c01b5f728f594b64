from __future__ import annotations

from ..core.exceptions import ValidationError
from .datetime_utils import format_month_key, parse_iso_date, parse_month_key


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_month_key(month_key: str) -> str:
    parse_month_key(month_key)
    return month_key


def require_date_in_month(value: str, month_key: str) -> str:
    """Validate an ISO date string and check it falls inside ``month_key``."""

    parsed = parse_iso_date(value)
    if format_month_key(parsed) != month_key:
        raise ValidationError(f"{value} is not in month {month_key}")
    return parsed.isoformat()
