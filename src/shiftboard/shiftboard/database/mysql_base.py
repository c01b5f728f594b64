from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import mysql.connector

from ..core.exceptions import TransactionContention, TransportError
from .connection import DatabaseConnection

# InnoDB deadlock / lock wait timeout: safe to retry the whole transaction.
RETRYABLE_ERRNOS = {1205, 1213}

_DATETIME_TAG = "$datetime"


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def translate_errors(action: str):
    """Re-raise mysql-connector failures as store-level transport errors."""

    try:
        yield
    except mysql.connector.Error as exc:
        if getattr(exc, "errno", None) in RETRYABLE_ERRNOS:
            raise TransactionContention(f"{action}: {exc}") from exc
        raise TransportError(f"{action}: {exc}") from exc


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def _encode_default(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return {_DATETIME_TAG: value.isoformat()}
    raise TypeError(f"Unsupported document value type: {type(value)!r}")


def _decode_hook(obj: dict) -> Any:
    if len(obj) == 1 and _DATETIME_TAG in obj:
        return datetime.fromisoformat(obj[_DATETIME_TAG])
    return obj


def encode_document(data: dict) -> str:
    return json.dumps(data, default=_encode_default, ensure_ascii=False, sort_keys=True)


def decode_document(raw: Any) -> dict:
    """Decode a JSON column value.

    mysql-connector can return JSON columns as ``str``, ``bytes`` or
    ``bytearray`` depending on the implementation in use.
    """

    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        return json.loads(raw, object_hook=_decode_hook)
    if isinstance(raw, dict):
        return json.loads(json.dumps(raw), object_hook=_decode_hook)
    raise TypeError(f"Unsupported JSON column value type: {type(raw)!r}")
