from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Any, Iterable, Optional

from ..common.datetime_utils import format_month_key, parse_iso_date
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_MAX_OPEN_MONTHS, DEFAULT_MAX_OPEN_SYNCS
from ..core.exceptions import ValidationError
from ..documents.store import DocumentStore
from .day_sync import DayRequestSync
from .model import DayState, ShiftEntry, SpanParseResult
from .repository import ShiftRequestRepository
from .span_input import parse_span_input
from .window import ShiftWindow, ShiftWindowGate

logger = logging.getLogger(__name__)


class ShiftRequestService:
    """Staff-side shift submission: text parsing plus per-day sync.

    One subscribed ``DayRequestSync`` is kept per (user, month) and one
    ``ShiftWindowGate`` per month, so every write for a month is checked
    against the same live window. Both caches are bounded; the least
    recently used entry is closed when a cache is full, and evicting a
    month's gate also closes that month's syncs.
    """

    def __init__(
        self,
        store: DocumentStore,
        repository: ShiftRequestRepository,
        *,
        max_open_syncs: int = DEFAULT_MAX_OPEN_SYNCS,
        max_open_months: int = DEFAULT_MAX_OPEN_MONTHS,
    ):
        self._store = store
        self._repo = repository
        self._max_open_syncs = max(1, int(max_open_syncs))
        self._max_open_months = max(1, int(max_open_months))
        self._lock = threading.Lock()
        self._gates: OrderedDict[str, ShiftWindowGate] = OrderedDict()
        self._syncs: OrderedDict[tuple[str, str], DayRequestSync] = OrderedDict()

    def window_gate(self, month_key: str) -> ShiftWindowGate:
        with self._lock:
            return self._open_gate(month_key)

    def sync_for(self, *, user_id: str, month_key: str) -> DayRequestSync:
        key = (user_id, month_key)
        with self._lock:
            gate = self._open_gate(month_key)
            sync = self._syncs.get(key)
            if sync is not None:
                self._syncs.move_to_end(key)
                return sync
            sync = DayRequestSync(self._repo, user_id=user_id, month_key=month_key, window_gate=gate)
            self._syncs[key] = sync.subscribe()
            logger.debug("Opened shift request sync for %s/%s", user_id, month_key)
            while len(self._syncs) > self._max_open_syncs:
                (old_user, old_month), old_sync = self._syncs.popitem(last=False)
                old_sync.close()
                logger.debug("Closed idle shift request sync for %s/%s", old_user, old_month)
            return sync

    def _open_gate(self, month_key: str) -> ShiftWindowGate:
        # Caller holds self._lock.
        gate = self._gates.get(month_key)
        if gate is not None:
            self._gates.move_to_end(month_key)
            return gate
        gate = self._gates[month_key] = ShiftWindowGate(self._store, month_key).subscribe()
        while len(self._gates) > self._max_open_months:
            old_month, old_gate = self._gates.popitem(last=False)
            for key in [k for k in self._syncs if k[1] == old_month]:
                self._syncs.pop(key).close()
            old_gate.close()
            logger.debug("Closed idle submission window gate for %s", old_month)
        return gate

    @property
    def open_syncs(self) -> int:
        with self._lock:
            return len(self._syncs)

    def close(self) -> None:
        with self._lock:
            syncs, gates = list(self._syncs.values()), list(self._gates.values())
            self._syncs.clear()
            self._gates.clear()
        for sync in syncs:
            sync.close()
        for gate in gates:
            gate.close()

    # -------- Parsing --------
    @staticmethod
    def parse(text: str) -> SpanParseResult:
        return parse_span_input(text or "")

    def entries_from_text(self, text: str, *, store_id: str, note: Optional[str] = None) -> list[ShiftEntry]:
        store_id = require_non_empty(store_id, "Store")
        result = self.parse(text)
        if result.blocking:
            raise ValidationError(" ".join(result.errors))
        return [ShiftEntry(store_id, span.start, span.end, note) for span in result.spans]

    @staticmethod
    def entries_from_payload(raw: Any) -> list[ShiftEntry]:
        if not isinstance(raw, list):
            raise ValidationError("entries must be a list")
        entries = []
        for item in raw:
            if not isinstance(item, dict):
                raise ValidationError("Each entry must be an object")
            entries.append(ShiftEntry.from_document(item))
        return entries

    # -------- Days --------
    def get_window(self, month_key: str) -> ShiftWindow:
        return self.window_gate(month_key).window

    def get_day(self, *, user_id: str, date: str) -> DayState:
        sync = self._sync_for_date(user_id, date)
        sync.load_day(date)
        return sync.day(date)

    def save_day(self, *, user_id: str, date: str, entries: Iterable[ShiftEntry]) -> DayState:
        sync = self._sync_for_date(user_id, date)
        sync.save_day_diff(date, entries)
        return sync.day(date)

    def submit_text(
        self, *, user_id: str, date: str, text: str, store_id: str, note: Optional[str] = None
    ) -> DayState:
        entries = self.entries_from_text(text, store_id=store_id, note=note)
        return self.save_day(user_id=user_id, date=date, entries=entries)

    def clear_day(self, *, user_id: str, date: str) -> DayState:
        return self.save_day(user_id=user_id, date=date, entries=[])

    def _sync_for_date(self, user_id: str, date: str) -> DayRequestSync:
        user_id = require_non_empty(user_id, "User")
        month_key = format_month_key(parse_iso_date(date))
        return self.sync_for(user_id=user_id, month_key=month_key)
