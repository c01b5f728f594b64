from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from ..common.readers import read_string
from ..core.constants import MINUTES_PER_DAY
from ..core.enums import DayPhase
from ..core.exceptions import ValidationError


def to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def to_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


END_OF_DAY = "24:00"
_HHMM = re.compile(r"\d{2}:\d{2}")


def parse_hhmm(value: Any, *, end: bool = False) -> int:
    """Minutes of day for a strict ``HH:MM`` value; ``24:00`` only when ``end``."""

    if not isinstance(value, str) or not _HHMM.fullmatch(value):
        raise ValidationError(f"Invalid time (HH:MM): {value!r}")
    if end and value == END_OF_DAY:
        return MINUTES_PER_DAY
    try:
        parsed = datetime.strptime(value, "%H:%M")
    except ValueError:
        raise ValidationError(f"Invalid time (HH:MM): {value!r}")
    return parsed.hour * 60 + parsed.minute


@dataclass(frozen=True)
class ShiftEntry:
    store_id: str
    start: str  # HH:MM
    end: str  # HH:MM
    note: Optional[str] = None

    def __post_init__(self):
        if not self.store_id:
            raise ValidationError("Shift entry needs a store")
        start, end = parse_hhmm(self.start), parse_hhmm(self.end, end=True)
        if start >= end:
            raise ValidationError(f"Shift must end after it starts: {self.start}-{self.end}")

    @property
    def key(self) -> tuple[str, str, str, str]:
        # A missing note and an empty note are the same entry.
        return (self.store_id, self.start, self.end, self.note or "")

    def to_document(self) -> dict:
        out = {"storeId": self.store_id, "start": self.start, "end": self.end}
        if self.note:
            out["note"] = self.note
        return out

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "ShiftEntry":
        return cls(
            store_id=str(data.get("storeId") or ""),
            start=str(data.get("start") or ""),
            end=str(data.get("end") or ""),
            note=read_string(data.get("note")),
        )


@dataclass(frozen=True)
class DayRequest:
    user_id: str
    date: str  # YYYY-MM-DD
    entries: tuple[ShiftEntry, ...]
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "date": self.date,
            "entries": [e.to_document() for e in self.entries],
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class NormalizedSpan:
    start: str
    end: str

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass(frozen=True)
class SpanParseResult:
    spans: tuple[NormalizedSpan, ...]
    errors: tuple[str, ...]
    warnings: tuple[str, ...]
    normalized_text: str

    @property
    def blocking(self) -> bool:
        """Any error blocks submission; warnings never do."""
        return bool(self.errors)

    def to_dict(self) -> dict:
        return {
            "spans": [{"start": s.start, "end": s.end} for s in self.spans],
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "normalizedText": self.normalized_text,
        }


@dataclass
class Slot:
    index: int
    start: str
    end: str
    store_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {"index": self.index, "start": self.start, "end": self.end, "storeId": self.store_id}


@dataclass
class DayState:
    date: str
    entries: list[ShiftEntry] = field(default_factory=list)
    loading: bool = False
    pending: bool = False
    loaded: bool = False
    error: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def phase(self) -> DayPhase:
        if self.pending:
            return DayPhase.PENDING
        if self.loading:
            return DayPhase.LOADING
        if self.error:
            return DayPhase.ERROR
        if self.loaded:
            return DayPhase.LOADED
        return DayPhase.UNLOADED

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "entries": [e.to_document() for e in self.entries],
            "phase": self.phase.value,
            "pending": self.pending,
            "error": self.error,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
