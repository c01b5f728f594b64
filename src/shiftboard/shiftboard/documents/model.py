from __future__ import annotations

import copy
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from ..core.exceptions import NotFoundError, ErrorCode, ValidationError


class _ServerTimestamp:
    """Placeholder replaced by the store clock when a write commits."""

    _instance: Optional["_ServerTimestamp"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"

    def __deepcopy__(self, memo):
        return self


SERVER_TIMESTAMP = _ServerTimestamp()


def document_path(*segments: str) -> str:
    path = "/".join(_check_segment(s) for s in segments)
    if len(segments) % 2 != 0:
        raise ValidationError(f"Not a document path: {path!r}")
    return path


def collection_path(*segments: str) -> str:
    path = "/".join(_check_segment(s) for s in segments)
    if len(segments) % 2 != 1:
        raise ValidationError(f"Not a collection path: {path!r}")
    return path


def parent_collection(path: str) -> str:
    return path.rsplit("/", 1)[0]


def document_id(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def _check_segment(segment: str) -> str:
    segment = str(segment)
    if not segment or "/" in segment:
        raise ValidationError(f"Invalid path segment: {segment!r}")
    return segment


@dataclass(frozen=True)
class DocumentSnapshot:
    path: str
    data: Optional[dict] = None

    @property
    def id(self) -> str:
        return document_id(self.path)

    @property
    def exists(self) -> bool:
        return self.data is not None

    def get(self, key: str, default: Any = None) -> Any:
        if self.data is None:
            return default
        return self.data.get(key, default)

    def to_dict(self) -> dict:
        return copy.deepcopy(self.data) if self.data is not None else {}


@dataclass(frozen=True)
class WriteOp:
    kind: str  # "set" | "update" | "delete"
    path: str
    data: Optional[dict] = None
    merge: bool = False


def resolve_timestamps(value: Any, now: datetime) -> Any:
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, Mapping):
        return {k: resolve_timestamps(v, now) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_timestamps(v, now) for v in value]
    return value


def deep_merge(base: Mapping, patch: Mapping) -> dict:
    out = copy.deepcopy(dict(base))
    for key, value in patch.items():
        if isinstance(value, Mapping) and isinstance(out.get(key), Mapping):
            out[key] = deep_merge(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def apply_write(existing: Optional[dict], op: WriteOp, now: datetime) -> Optional[dict]:
    """Return the document data after ``op``; ``None`` means deleted."""

    if op.kind == "delete":
        return None

    data = resolve_timestamps(op.data or {}, now)
    if op.kind == "set":
        if op.merge and existing is not None:
            return deep_merge(existing, data)
        return copy.deepcopy(data)

    if op.kind == "update":
        if existing is None:
            raise NotFoundError(f"No document to update: {op.path}", ErrorCode.DOCUMENT_NOT_FOUND)
        out = copy.deepcopy(existing)
        out.update(copy.deepcopy(data))
        return out

    raise ValueError(f"Unknown write kind: {op.kind!r}")
