from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Callable, Mapping, Optional

from ..common.datetime_utils import parse_iso_date
from ..common.readers import read_string
from ..common.validators import require_month_key
from ..core.constants import SUBMIT_WINDOWS
from ..core.exceptions import TransportError, ValidationError
from ..documents.model import DocumentSnapshot, document_path
from ..documents.store import DocumentStore, Unsubscribe

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShiftWindow:
    start_date: Optional[str]
    end_date: Optional[str]
    locked: bool
    admin_message: Optional[str]
    configured: bool = True

    @classmethod
    def unconfigured(cls) -> "ShiftWindow":
        return cls(start_date=None, end_date=None, locked=False, admin_message=None, configured=False)

    @classmethod
    def from_document(cls, data: Optional[Mapping[str, Any]]) -> "ShiftWindow":
        if data is None:
            return cls.unconfigured()
        return cls(
            start_date=read_string(data.get("startDate")),
            end_date=read_string(data.get("endDate")),
            locked=data.get("locked") is True,
            admin_message=read_string(data.get("adminMessage")),
        )

    def _bounds(self) -> Optional[tuple[date, date]]:
        if not self.configured or not self.start_date or not self.end_date:
            return None
        try:
            start, end = parse_iso_date(self.start_date), parse_iso_date(self.end_date)
        except ValidationError:
            logger.warning("Ignoring malformed submission window %s..%s", self.start_date, self.end_date)
            return None
        if start > end:
            logger.warning("Ignoring inverted submission window %s..%s", self.start_date, self.end_date)
            return None
        return start, end

    @property
    def has_range(self) -> bool:
        return self._bounds() is not None

    def contains(self, value: str) -> bool:
        bounds = self._bounds()
        if bounds is None:
            return False
        return bounds[0] <= parse_iso_date(value) <= bounds[1]

    def dates(self) -> list[str]:
        bounds = self._bounds()
        if bounds is None:
            return []
        start, end = bounds
        return [(start + timedelta(days=i)).isoformat() for i in range((end - start).days + 1)]

    def to_dict(self) -> dict:
        return {
            "startDate": self.start_date,
            "endDate": self.end_date,
            "locked": self.locked,
            "adminMessage": self.admin_message,
            "configured": self.configured,
        }


class ShiftWindowGate:
    """Read side of ``submitWindows/{YYYYMM}`` for one month.

    The gate reports state only; writers (``DayRequestSync``) consult it.
    """

    def __init__(self, store: DocumentStore, month_key: str):
        self._store = store
        self._month_key = require_month_key(month_key)
        self._lock = threading.RLock()
        self._window = ShiftWindow.unconfigured()
        self._error: Optional[str] = None
        self._unsubscribe: Optional[Unsubscribe] = None
        self._listeners: list[Callable[[ShiftWindow], None]] = []

    @property
    def month_key(self) -> str:
        return self._month_key

    @property
    def path(self) -> str:
        return document_path(SUBMIT_WINDOWS, self._month_key)

    @property
    def window(self) -> ShiftWindow:
        with self._lock:
            return self._window

    @property
    def error(self) -> Optional[str]:
        with self._lock:
            return self._error

    @property
    def locked(self) -> bool:
        return self.window.locked

    @property
    def subscribed(self) -> bool:
        return self._unsubscribe is not None

    def add_listener(self, listener: Callable[[ShiftWindow], None]) -> None:
        self._listeners.append(listener)

    def subscribe(self) -> "ShiftWindowGate":
        if self._unsubscribe is None:
            self._unsubscribe = self._store.watch_document(self.path, self._on_snapshot, self._on_error)
        return self

    def refresh(self) -> ShiftWindow:
        try:
            snap = self._store.get(self.path)
        except TransportError as exc:
            with self._lock:
                self._error = str(exc)
            logger.warning("Refreshing submission window %s failed: %s", self._month_key, exc)
            raise
        self._on_snapshot(snap)
        return self.window

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_snapshot(self, snap: DocumentSnapshot) -> None:
        window = ShiftWindow.from_document(snap.data)
        with self._lock:
            self._window = window
            self._error = None
        for listener in list(self._listeners):
            listener(window)

    def _on_error(self, exc: Exception) -> None:
        logger.warning("Submission window subscription for %s failed: %s", self._month_key, exc)
        with self._lock:
            self._window = ShiftWindow.unconfigured()
            self._error = str(exc) or "Failed to load submission window."
