from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Callable, Iterable, Optional, Protocol, Sequence, TypeVar

from ..common.datetime_utils import now_utc
from ..core.constants import DEFAULT_TRANSACTION_ATTEMPTS
from ..core.exceptions import TransactionContention
from .model import DocumentSnapshot, WriteOp, document_path, parent_collection

logger = logging.getLogger(__name__)

T = TypeVar("T")

DocumentCallback = Callable[[DocumentSnapshot], None]
CollectionCallback = Callable[[list[DocumentSnapshot]], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class Transaction:
    """Buffered writes plus reads routed through the store's locking reader.

    Writes become visible only when the surrounding ``run_transaction`` call
    commits; an exception raised by the transaction function discards them.
    """

    def __init__(self, reader: Callable[[str], DocumentSnapshot]):
        self._reader = reader
        self._ops: list[WriteOp] = []

    def get(self, path: str) -> DocumentSnapshot:
        return self._reader(path)

    def set(self, path: str, data: dict, *, merge: bool = False) -> None:
        self._ops.append(WriteOp("set", path, dict(data), merge))

    def update(self, path: str, data: dict) -> None:
        self._ops.append(WriteOp("update", path, dict(data)))

    def delete(self, path: str) -> None:
        self._ops.append(WriteOp("delete", path))

    @property
    def ops(self) -> Sequence[WriteOp]:
        return tuple(self._ops)


class WriteBatch:
    """Atomic multi-document write: all operations commit or none do."""

    def __init__(self, store: "BaseDocumentStore"):
        self._store = store
        self._ops: list[WriteOp] = []
        self._committed = False

    def set(self, path: str, data: dict, *, merge: bool = False) -> "WriteBatch":
        self._ops.append(WriteOp("set", path, dict(data), merge))
        return self

    def update(self, path: str, data: dict) -> "WriteBatch":
        self._ops.append(WriteOp("update", path, dict(data)))
        return self

    def delete(self, path: str) -> "WriteBatch":
        self._ops.append(WriteOp("delete", path))
        return self

    def __len__(self) -> int:
        return len(self._ops)

    def commit(self) -> None:
        if self._committed:
            raise RuntimeError("Write batch already committed")
        self._committed = True
        if self._ops:
            self._store.commit_ops(self._ops)


class DocumentStore(Protocol):
    def get(self, path: str) -> DocumentSnapshot:
        raise NotImplementedError

    def list(self, collection: str) -> list[DocumentSnapshot]:
        raise NotImplementedError

    def query(self, collection: str, **equals: Any) -> list[DocumentSnapshot]:
        """Documents of ``collection`` whose top-level fields equal ``equals``."""

        raise NotImplementedError

    def set(self, path: str, data: dict, *, merge: bool = False) -> None:
        raise NotImplementedError

    def update(self, path: str, data: dict) -> None:
        raise NotImplementedError

    def delete(self, path: str) -> None:
        raise NotImplementedError

    def add(self, collection: str, data: dict) -> str:
        raise NotImplementedError

    def new_id(self) -> str:
        raise NotImplementedError

    def batch(self) -> WriteBatch:
        raise NotImplementedError

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        raise NotImplementedError

    def watch_document(
        self, path: str, callback: DocumentCallback, on_error: Optional[ErrorCallback] = None
    ) -> Unsubscribe:
        raise NotImplementedError

    def watch_collection(
        self, collection: str, callback: CollectionCallback, on_error: Optional[ErrorCallback] = None
    ) -> Unsubscribe:
        raise NotImplementedError


class BaseDocumentStore(DocumentStore):
    """Shared plumbing: batches, transaction retry and change listeners.

    Subclasses provide ``_read``, ``_read_collection``, ``_commit`` and
    ``_run_transaction_once``; both write paths return the set of changed
    document paths so listeners can be notified after the commit.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], Any] = now_utc,
        transaction_attempts: int = DEFAULT_TRANSACTION_ATTEMPTS,
    ):
        self._clock = clock
        self._transaction_attempts = max(1, int(transaction_attempts))
        self._watch_lock = threading.RLock()
        self._doc_watchers: dict[str, dict[int, tuple[DocumentCallback, Optional[ErrorCallback]]]] = {}
        self._col_watchers: dict[str, dict[int, tuple[CollectionCallback, Optional[ErrorCallback]]]] = {}
        self._next_watch_id = 0

    # -------- Backend hooks --------
    def _read(self, path: str) -> DocumentSnapshot:
        raise NotImplementedError

    def _read_collection(self, collection: str) -> list[DocumentSnapshot]:
        raise NotImplementedError

    def _commit(self, ops: Sequence[WriteOp]) -> set[str]:
        raise NotImplementedError

    def _run_transaction_once(self, fn: Callable[[Transaction], T]) -> tuple[T, set[str]]:
        raise NotImplementedError

    # -------- Reads --------
    def get(self, path: str) -> DocumentSnapshot:
        return self._read(path)

    def list(self, collection: str) -> list[DocumentSnapshot]:
        return self._read_collection(collection)

    def query(self, collection: str, **equals: Any) -> list[DocumentSnapshot]:
        return [
            snap
            for snap in self._read_collection(collection)
            if all(snap.get(field) == value for field, value in equals.items())
        ]

    # -------- Writes --------
    def set(self, path: str, data: dict, *, merge: bool = False) -> None:
        self.commit_ops([WriteOp("set", path, dict(data), merge)])

    def update(self, path: str, data: dict) -> None:
        self.commit_ops([WriteOp("update", path, dict(data))])

    def delete(self, path: str) -> None:
        self.commit_ops([WriteOp("delete", path)])

    def add(self, collection: str, data: dict) -> str:
        doc_id = self.new_id()
        self.set(document_path(*collection.split("/"), doc_id), data)
        return doc_id

    def new_id(self) -> str:
        return uuid.uuid4().hex

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    def commit_ops(self, ops: Iterable[WriteOp]) -> None:
        changed = self._commit(list(ops))
        self._notify(changed)

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                result, changed = self._run_transaction_once(fn)
            except TransactionContention:
                if attempt >= self._transaction_attempts:
                    raise
                logger.warning("Transaction contention, retrying (attempt %s/%s)", attempt, self._transaction_attempts)
                continue
            self._notify(changed)
            return result

    def now(self):
        return self._clock()

    # -------- Listeners --------
    def watch_document(
        self, path: str, callback: DocumentCallback, on_error: Optional[ErrorCallback] = None
    ) -> Unsubscribe:
        watch_id = self._register(self._doc_watchers, path, callback, on_error)
        self._deliver_document(path, callback, on_error)
        return lambda: self._unregister(self._doc_watchers, path, watch_id)

    def watch_collection(
        self, collection: str, callback: CollectionCallback, on_error: Optional[ErrorCallback] = None
    ) -> Unsubscribe:
        watch_id = self._register(self._col_watchers, collection, callback, on_error)
        self._deliver_collection(collection, callback, on_error)
        return lambda: self._unregister(self._col_watchers, collection, watch_id)

    def _register(self, table: dict, key: str, callback, on_error) -> int:
        with self._watch_lock:
            self._next_watch_id += 1
            table.setdefault(key, {})[self._next_watch_id] = (callback, on_error)
            return self._next_watch_id

    def _unregister(self, table: dict, key: str, watch_id: int) -> None:
        with self._watch_lock:
            watchers = table.get(key)
            if watchers is None:
                return
            watchers.pop(watch_id, None)
            if not watchers:
                table.pop(key, None)

    def _notify(self, changed: set[str]) -> None:
        if not changed:
            return
        with self._watch_lock:
            doc_targets = [(p, list(self._doc_watchers.get(p, {}).values())) for p in sorted(changed)]
            collections = {parent_collection(p) for p in changed}
            col_targets = [(c, list(self._col_watchers.get(c, {}).values())) for c in sorted(collections)]

        for path, watchers in doc_targets:
            for callback, on_error in watchers:
                self._deliver_document(path, callback, on_error)
        for collection, watchers in col_targets:
            for callback, on_error in watchers:
                self._deliver_collection(collection, callback, on_error)

    def _deliver_document(self, path: str, callback: DocumentCallback, on_error: Optional[ErrorCallback]) -> None:
        try:
            snap = self._read(path)
        except Exception as exc:
            self._deliver_error(exc, on_error)
            return
        callback(snap)

    def _deliver_collection(
        self, collection: str, callback: CollectionCallback, on_error: Optional[ErrorCallback]
    ) -> None:
        try:
            snaps = self._read_collection(collection)
        except Exception as exc:
            self._deliver_error(exc, on_error)
            return
        callback(snaps)

    @staticmethod
    def _deliver_error(exc: Exception, on_error: Optional[ErrorCallback]) -> None:
        if on_error is None:
            logger.error("Listener read failed with no error handler: %s", exc)
            return
        on_error(exc)
