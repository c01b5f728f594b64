"""Lenient readers for loosely-typed document and payload values.

Documents written by other clients are not schema-checked, so every reader
returns ``None`` for values of the wrong shape instead of raising.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Mapping, Optional


def read_string(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def read_number(value: Any) -> Optional[float]:
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def read_boolean(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def read_datetime(value: Any) -> Optional[datetime]:
    return value if isinstance(value, datetime) else None


def read_mapping(value: Any) -> dict:
    return dict(value) if isinstance(value, Mapping) else {}


def read_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value
