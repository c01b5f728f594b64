from __future__ import annotations

from datetime import date, datetime, timezone

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date (YYYY-MM-DD): {value!r}")


def now_utc() -> datetime:
    """Current time, timezone-aware.

    Note: Wrapped so stores and tests can inject a fixed clock.
    """
    return datetime.now(timezone.utc)


def format_month_key(value: date) -> str:
    return f"{value.year}{value.month:02d}"


def parse_month_key(month_key: str) -> tuple[int, int]:
    if not isinstance(month_key, str) or len(month_key) != 6 or not month_key.isdigit():
        raise ValidationError(f"Invalid month key (YYYYMM): {month_key!r}")
    year, month = int(month_key[:4]), int(month_key[4:])
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month key (YYYYMM): {month_key!r}")
    return year, month
