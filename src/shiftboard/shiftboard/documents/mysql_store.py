from __future__ import annotations

from typing import Callable, Optional, Sequence, TypeVar

from ..common.datetime_utils import now_utc
from ..core.constants import DEFAULT_TRANSACTION_ATTEMPTS
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, decode_document, encode_document, fetchall, fetchone, translate_errors
from .model import DocumentSnapshot, WriteOp, apply_write, document_id, parent_collection
from .store import BaseDocumentStore, Transaction

T = TypeVar("T")


class MySQLDocumentStore(BaseDocumentStore):
    """Document store over a single ``documents`` table (see database/schema.sql).

    Transactions run on one connection and lock the rows they read with
    ``SELECT ... FOR UPDATE``; deadlocks surface as ``TransactionContention``
    and are retried by ``run_transaction``. Listeners only observe writes made
    through this process.
    """

    def __init__(
        self,
        conn_factory: DatabaseConnection,
        *,
        clock=now_utc,
        transaction_attempts: int = DEFAULT_TRANSACTION_ATTEMPTS,
    ):
        super().__init__(clock=clock, transaction_attempts=transaction_attempts)
        self._conn_factory = conn_factory

    def _read(self, path: str) -> DocumentSnapshot:
        with translate_errors(f"read {path}"), db_cursor(self._conn_factory) as (_, cur):
            return self._select(cur, path, lock=False)

    def _read_collection(self, collection: str) -> list[DocumentSnapshot]:
        with translate_errors(f"list {collection}"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT path, data
                FROM documents
                WHERE collection_path=%s
                ORDER BY doc_id
                """,
                (collection,),
            )
            return [DocumentSnapshot(r["path"], decode_document(r["data"])) for r in fetchall(cur)]

    def _commit(self, ops: Sequence[WriteOp]) -> set[str]:
        with translate_errors("commit"), db_cursor(self._conn_factory) as (_, cur):
            return self._apply(cur, ops)

    def _run_transaction_once(self, fn: Callable[[Transaction], T]) -> tuple[T, set[str]]:
        with translate_errors("transaction"), db_cursor(self._conn_factory) as (_, cur):
            txn = Transaction(lambda path: self._select(cur, path, lock=True))
            result = fn(txn)
            return result, self._apply(cur, txn.ops)

    @staticmethod
    def _select(cur, path: str, *, lock: bool) -> DocumentSnapshot:
        sql = "SELECT data FROM documents WHERE path=%s"
        if lock:
            sql += " FOR UPDATE"
        cur.execute(sql, (path,))
        row = fetchone(cur)
        return DocumentSnapshot(path, decode_document(row["data"]) if row else None)

    def _apply(self, cur, ops: Sequence[WriteOp]) -> set[str]:
        now = self.now()
        staged: dict[str, Optional[dict]] = {}
        for op in ops:
            if op.path in staged:
                existing = staged[op.path]
            else:
                existing = self._select(cur, op.path, lock=True).data
            staged[op.path] = apply_write(existing, op, now)

        for path, data in staged.items():
            if data is None:
                cur.execute("DELETE FROM documents WHERE path=%s", (path,))
                continue
            cur.execute(
                """
                INSERT INTO documents(path, collection_path, doc_id, data)
                VALUES(%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE data=VALUES(data)
                """,
                (path, parent_collection(path), document_id(path), encode_document(data)),
            )
        return set(staged)
