from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence

from ..common.readers import read_datetime, read_string
from ..core.constants import DAYS, MONTHS, SHIFT_REQUESTS
from ..core.exceptions import ValidationError
from ..documents.model import SERVER_TIMESTAMP, DocumentSnapshot, collection_path, document_path
from ..documents.store import DocumentStore, ErrorCallback, Unsubscribe
from .model import DayRequest, ShiftEntry

logger = logging.getLogger(__name__)


def entries_from_document(raw: Any, *, where: str = "") -> list[ShiftEntry]:
    """Read an ``entries`` array, skipping malformed items written by other clients."""

    if not isinstance(raw, list):
        return []
    out: list[ShiftEntry] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            out.append(ShiftEntry.from_document(item))
        except ValidationError as exc:
            logger.warning("Skipping malformed shift entry %s: %s", where, exc)
    return out


def day_request_from_snapshot(snap: DocumentSnapshot, user_id: str) -> DayRequest:
    return DayRequest(
        user_id=user_id,
        date=read_string(snap.get("date")) or snap.id,
        entries=tuple(entries_from_document(snap.get("entries"), where=snap.path)),
        updated_at=read_datetime(snap.get("updatedAt")),
    )


class ShiftRequestRepository:
    """Per-day shift request documents under ``shiftRequests/{user}/months/{YYYYMM}``."""

    def __init__(self, store: DocumentStore):
        self._store = store

    @staticmethod
    def month_path(user_id: str, month_key: str) -> str:
        return document_path(SHIFT_REQUESTS, user_id, MONTHS, month_key)

    @staticmethod
    def days_path(user_id: str, month_key: str) -> str:
        return collection_path(SHIFT_REQUESTS, user_id, MONTHS, month_key, DAYS)

    @staticmethod
    def day_path(user_id: str, month_key: str, date: str) -> str:
        return document_path(SHIFT_REQUESTS, user_id, MONTHS, month_key, DAYS, date)

    def get_day(self, *, user_id: str, month_key: str, date: str) -> Optional[DayRequest]:
        snap = self._store.get(self.day_path(user_id, month_key, date))
        if not snap.exists:
            return None
        return day_request_from_snapshot(snap, user_id)

    def list_days(self, *, user_id: str, month_key: str) -> list[DayRequest]:
        return [day_request_from_snapshot(s, user_id) for s in self._store.list(self.days_path(user_id, month_key))]

    def save_day(self, *, user_id: str, month_key: str, date: str, entries: Sequence[ShiftEntry]) -> None:
        """Write the day in one atomic batch; an empty list deletes the day document."""

        batch = self._store.batch()
        batch.set(
            self.month_path(user_id, month_key),
            {"userId": user_id, "month": month_key, "updatedAt": SERVER_TIMESTAMP},
            merge=True,
        )
        day_path = self.day_path(user_id, month_key, date)
        if entries:
            batch.set(
                day_path,
                {
                    "userId": user_id,
                    "date": date,
                    "entries": [e.to_document() for e in entries],
                    "updatedAt": SERVER_TIMESTAMP,
                },
            )
        else:
            batch.delete(day_path)
        batch.commit()

    def watch_month(
        self,
        *,
        user_id: str,
        month_key: str,
        callback: Callable[[list[DayRequest]], None],
        on_error: Optional[ErrorCallback] = None,
    ) -> Unsubscribe:
        return self._store.watch_collection(
            self.days_path(user_id, month_key),
            lambda snaps: callback([day_request_from_snapshot(s, user_id) for s in snaps]),
            on_error,
        )
