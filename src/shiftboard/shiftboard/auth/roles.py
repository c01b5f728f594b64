from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..common.readers import read_boolean, read_datetime, read_mapping, read_string
from ..core.constants import USER_STORE_ROLES
from ..documents.model import DocumentSnapshot, document_path
from ..documents.store import DocumentStore
from .capabilities import highest_role, role_for_store


def role_doc_id(user_id: str, store_id: str) -> str:
    return f"{user_id}_{store_id}"


@dataclass(frozen=True)
class UserStoreRole:
    id: str
    user_id: str
    store_id: str
    role: Optional[str]
    is_resigned: bool = False
    employment: dict = field(default_factory=dict)
    commute: dict = field(default_factory=dict)
    updated_at: Optional[datetime] = None

    @classmethod
    def from_snapshot(cls, snap: DocumentSnapshot) -> "UserStoreRole":
        return cls(
            id=snap.id,
            user_id=read_string(snap.get("userId")) or "",
            store_id=read_string(snap.get("storeId")) or "",
            role=read_string(snap.get("role")),
            is_resigned=read_boolean(snap.get("isResigned")) or False,
            employment=read_mapping(snap.get("employment")),
            commute=read_mapping(snap.get("commute")),
            updated_at=read_datetime(snap.get("updatedAt")),
        )


class RoleDirectory:
    """Read side of ``userStoreRoles``."""

    def __init__(self, store: DocumentStore):
        self._store = store

    def get(self, user_id: str, store_id: str) -> Optional[UserStoreRole]:
        snap = self._store.get(document_path(USER_STORE_ROLES, role_doc_id(user_id, store_id)))
        return UserStoreRole.from_snapshot(snap) if snap.exists else None

    def roles_for_user(self, user_id: str) -> list[UserStoreRole]:
        return [UserStoreRole.from_snapshot(s) for s in self._store.query(USER_STORE_ROLES, userId=user_id)]

    def resolve_role(self, user_id: str, store_id: Optional[str]) -> Optional[str]:
        """Active role in ``store_id``, else the highest active role anywhere."""

        roles = self.roles_for_user(user_id)
        if store_id:
            role = role_for_store(roles, store_id)
            if role is not None:
                return role
        return highest_role(r.role for r in roles if not r.is_resigned)
