from __future__ import annotations

import copy
import threading
from typing import Callable, Optional, Sequence, TypeVar

from ..common.datetime_utils import now_utc
from .model import DocumentSnapshot, WriteOp, apply_write, parent_collection
from .store import BaseDocumentStore, Transaction

T = TypeVar("T")


class InMemoryDocumentStore(BaseDocumentStore):
    """Process-local document store used by tests and the development profile.

    A single re-entrant lock serializes commits and transactions, so a
    transaction never observes contention.
    """

    def __init__(self, *, clock=now_utc, transaction_attempts: int = 1, initial: Optional[dict[str, dict]] = None):
        super().__init__(clock=clock, transaction_attempts=transaction_attempts)
        self._lock = threading.RLock()
        self._docs: dict[str, dict] = {}
        for path, data in (initial or {}).items():
            self._docs[path] = copy.deepcopy(data)

    def _read(self, path: str) -> DocumentSnapshot:
        with self._lock:
            data = self._docs.get(path)
            return DocumentSnapshot(path, copy.deepcopy(data) if data is not None else None)

    def _read_collection(self, collection: str) -> list[DocumentSnapshot]:
        with self._lock:
            return [
                DocumentSnapshot(path, copy.deepcopy(data))
                for path, data in sorted(self._docs.items())
                if parent_collection(path) == collection
            ]

    def _commit(self, ops: Sequence[WriteOp]) -> set[str]:
        with self._lock:
            return self._apply(ops)

    def _run_transaction_once(self, fn: Callable[[Transaction], T]) -> tuple[T, set[str]]:
        with self._lock:
            txn = Transaction(self._read)
            result = fn(txn)
            return result, self._apply(txn.ops)

    def _apply(self, ops: Sequence[WriteOp]) -> set[str]:
        # Compute every new state first so a failing op leaves nothing half-written.
        now = self.now()
        staged: dict[str, Optional[dict]] = {}
        for op in ops:
            existing = staged[op.path] if op.path in staged else self._docs.get(op.path)
            staged[op.path] = apply_write(existing, op, now)

        for path, data in staged.items():
            if data is None:
                self._docs.pop(path, None)
            else:
                self._docs[path] = data
        return set(staged)

    def dump(self) -> dict[str, dict]:
        """Copy of every stored document keyed by path."""

        with self._lock:
            return copy.deepcopy(self._docs)
