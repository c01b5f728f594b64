from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from ..core.constants import ALLOWANCES, APPROVAL_LOGS, APPROVALS, DEFAULT_APPROVAL_LIST_LIMIT
from ..core.enums import ApprovalStatus, ApprovalType
from ..core.exceptions import ValidationError
from ..documents.model import document_path
from ..documents.store import DocumentStore
from .model import AllowanceAssignment, ApprovalSummary

logger = logging.getLogger(__name__)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class ApprovalRepository:
    def __init__(self, store: DocumentStore):
        self._store = store

    @staticmethod
    def approval_path(approval_id: str) -> str:
        return document_path(APPROVALS, approval_id)

    def get(self, approval_id: str) -> Optional[ApprovalSummary]:
        snap = self._store.get(self.approval_path(approval_id))
        return ApprovalSummary.from_snapshot(snap) if snap.exists else None

    def list(
        self,
        *,
        store_id: Optional[str] = None,
        status: Optional[ApprovalStatus] = None,
        approval_type: Optional[ApprovalType] = None,
        limit: int = DEFAULT_APPROVAL_LIST_LIMIT,
    ) -> list[ApprovalSummary]:
        """Approvals matching every given filter, newest submission first."""

        equals = {}
        if store_id:
            equals["storeId"] = store_id
        if status is not None:
            equals["status"] = status.value
        if approval_type is not None:
            equals["type"] = approval_type.value

        out: list[ApprovalSummary] = []
        for snap in self._store.query(APPROVALS, **equals):
            try:
                out.append(ApprovalSummary.from_snapshot(snap))
            except ValidationError as exc:
                logger.warning("Skipping unreadable approval %s: %s", snap.id, exc)
        out.sort(key=lambda a: a.submitted_at or _OLDEST, reverse=True)
        return out[:limit]

    def logs_for(self, approval_id: str) -> list[dict]:
        return [s.to_dict() for s in self._store.query(APPROVAL_LOGS, approvalId=approval_id)]

    def get_allowance(self, allowance_id: str) -> Optional[AllowanceAssignment]:
        snap = self._store.get(document_path(ALLOWANCES, allowance_id))
        return AllowanceAssignment.from_snapshot(snap) if snap.exists else None
