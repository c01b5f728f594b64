from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Iterable, Optional

from ..common.validators import require_date_in_month, require_month_key, require_non_empty
from ..core.exceptions import ErrorCode, SubmissionLockedError, ValidationError
from ..documents.store import Unsubscribe
from .merge import entries_equal, merge_entries
from .model import DayRequest, DayState, ShiftEntry
from .repository import ShiftRequestRepository
from .window import ShiftWindowGate

logger = logging.getLogger(__name__)


class DayRequestSync:
    """Optimistic per-day sync of one user's shift requests for one month.

    Local state is a map of ``DayState`` keyed by ISO date. Saves update the
    local entries and mark the day pending before the write goes out; a
    failed write restores the previous entries. While a day is pending, the
    month subscription never overwrites its entries, so a snapshot that
    predates the local write cannot clobber it.

    Writes to one date are serialized by a per-date lock. Writes to
    different dates are independent.
    """

    def __init__(
        self,
        repository: ShiftRequestRepository,
        *,
        user_id: str,
        month_key: str,
        window_gate: Optional[ShiftWindowGate] = None,
    ):
        self._repo = repository
        self._user_id = require_non_empty(user_id, "User")
        self._month_key = require_month_key(month_key)
        if window_gate is not None and window_gate.month_key != self._month_key:
            raise ValidationError("Submission window belongs to a different month")
        self._gate = window_gate

        self._lock = threading.RLock()
        self._days: dict[str, DayState] = {}
        self._date_locks: dict[str, threading.Lock] = {}
        self._in_flight = 0
        self._last_error: Optional[str] = None
        self._unsubscribe: Optional[Unsubscribe] = None

    def __enter__(self) -> "DayRequestSync":
        return self.subscribe()

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def month_key(self) -> str:
        return self._month_key

    @property
    def is_saving(self) -> bool:
        with self._lock:
            return self._in_flight > 0

    @property
    def last_error(self) -> Optional[str]:
        with self._lock:
            return self._last_error

    @property
    def days(self) -> dict[str, DayState]:
        with self._lock:
            return {date: self._copy(state) for date, state in self._days.items()}

    def day(self, date: str) -> DayState:
        with self._lock:
            state = self._days.get(date)
            return self._copy(state) if state is not None else DayState(date=date)

    # -------- Subscription --------
    @property
    def subscribed(self) -> bool:
        return self._unsubscribe is not None

    def subscribe(self) -> "DayRequestSync":
        if self._unsubscribe is None:
            self._unsubscribe = self._repo.watch_month(
                user_id=self._user_id,
                month_key=self._month_key,
                callback=self._reconcile,
                on_error=self._on_subscription_error,
            )
        return self

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _reconcile(self, requests: list[DayRequest]) -> None:
        incoming = {r.date: r for r in requests}
        with self._lock:
            for date, request in incoming.items():
                entries = merge_entries(request.entries)
                state = self._days.get(date)
                if state is not None and state.pending:
                    if entries_equal(state.entries, entries):
                        state.updated_at = request.updated_at
                    continue
                self._days[date] = DayState(date=date, entries=entries, loaded=True, updated_at=request.updated_at)

            # Known days missing from the snapshot were deleted (cleared) on the server.
            for date, state in self._days.items():
                if date in incoming or state.pending or state.loading or not state.loaded:
                    continue
                state.entries = []
                state.updated_at = None
                state.error = None

    def _on_subscription_error(self, exc: Exception) -> None:
        logger.warning("Shift request subscription for %s/%s failed: %s", self._user_id, self._month_key, exc)
        with self._lock:
            self._last_error = str(exc) or "Failed to load shift requests."

    # -------- Reads --------
    def load_day(self, date: str, *, force: bool = False) -> Optional[DayRequest]:
        """Load one day; ``None`` means the day has no document (Loaded-Empty)."""

        date = require_date_in_month(date, self._month_key)
        with self._lock:
            state = self._state(date)
            if not force and not state.loading and (state.loaded or state.pending):
                return self._as_request(state)
            state.loading = True
            state.error = None

        try:
            request = self._repo.get_day(user_id=self._user_id, month_key=self._month_key, date=date)
        except Exception as exc:
            with self._lock:
                state = self._state(date)
                state.loading = False
                state.error = str(exc) or "Failed to load day request."
                self._last_error = state.error
            logger.warning("Loading %s for %s failed: %s", date, self._user_id, exc)
            raise

        with self._lock:
            state = self._state(date)
            state.loading = False
            if state.pending:
                # A local write started while loading; its intent wins until confirmed.
                return self._as_request(state)
            state.entries = merge_entries(request.entries) if request else []
            state.updated_at = request.updated_at if request else None
            state.loaded = True
            state.error = None
            return self._as_request(state)

    # -------- Writes --------
    def save_day_diff(self, date: str, next_entries: Iterable[ShiftEntry]) -> None:
        """Persist ``next_entries`` for ``date`` if they differ from the known entries.

        Raises the store's ``TransportError`` after rolling local state back.
        """

        date = require_date_in_month(date, self._month_key)
        self._check_window(date)
        entries = merge_entries(next_entries)

        with self._date_lock(date):
            with self._lock:
                state = self._state(date)
                previous = list(state.entries)
                if entries_equal(previous, entries):
                    return
                state.entries = list(entries)
                state.pending = True
                state.loading = False
                state.error = None
                self._in_flight += 1
                self._last_error = None

            try:
                self._repo.save_day(user_id=self._user_id, month_key=self._month_key, date=date, entries=entries)
            except Exception as exc:
                with self._lock:
                    state = self._state(date)
                    state.entries = previous
                    state.pending = False
                    state.error = str(exc) or "Failed to save shift request."
                    self._last_error = state.error
                logger.warning("Saving %s for %s failed, rolled back: %s", date, self._user_id, exc)
                raise
            else:
                with self._lock:
                    state = self._state(date)
                    state.pending = False
                    state.loaded = True
            finally:
                with self._lock:
                    self._in_flight = max(0, self._in_flight - 1)

    def remove_day(self, date: str) -> None:
        self.save_day_diff(date, [])

    # -------- Helpers --------
    def _check_window(self, date: str) -> None:
        if self._gate is None:
            return
        window = self._gate.window
        if window.locked:
            raise SubmissionLockedError(window.admin_message or "Submission window is locked.")
        if window.has_range and not window.contains(date):
            raise ValidationError(
                f"{date} is outside the submission window {window.start_date}..{window.end_date}.",
                ErrorCode.DATE_OUTSIDE_WINDOW,
            )

    def _state(self, date: str) -> DayState:
        state = self._days.get(date)
        if state is None:
            state = self._days[date] = DayState(date=date)
        return state

    def _date_lock(self, date: str) -> threading.Lock:
        with self._lock:
            return self._date_locks.setdefault(date, threading.Lock())

    def _as_request(self, state: DayState) -> Optional[DayRequest]:
        if not state.entries:
            return None
        return DayRequest(self._user_id, state.date, tuple(state.entries), state.updated_at)

    @staticmethod
    def _copy(state: DayState) -> DayState:
        return dataclasses.replace(state, entries=list(state.entries))
