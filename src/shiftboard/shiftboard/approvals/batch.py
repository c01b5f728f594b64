from __future__ import annotations

import copy
import logging
import uuid
from typing import Iterable, Optional, Sequence, Union

from ..core.constants import APPROVALS, USER_STORE_ROLES
from ..core.enums import ApprovalStatus, ApprovalType
from ..core.exceptions import MixedBatchError, ValidationError
from ..documents.model import SERVER_TIMESTAMP, document_path
from ..documents.store import DocumentStore
from .keys import parse_role_doc_id
from .model import ApprovalSummary, BatchResult, BatchSelection, Requester

logger = logging.getLogger(__name__)


class BatchApprovalCoordinator:
    """Fans one proxy submission out into one pending approval per target."""

    def __init__(self, store: DocumentStore):
        self._store = store

    def create_batch_approvals(
        self,
        *,
        store_id: Optional[str],
        target_role_doc_ids: Sequence[str],
        approval_type: Union[ApprovalType, str],
        payload: dict,
        requester: Requester,
        title: Optional[str] = None,
        comment_required: bool = False,
    ) -> BatchResult:
        """Write every approval in one atomic batch.

        An empty target list is a no-op and returns ``BatchResult("", 0)``.
        """

        try:
            approval_type = ApprovalType(approval_type)
        except ValueError:
            raise ValidationError(f"Unknown approval type: {approval_type!r}")

        targets = list(target_role_doc_ids)
        if not targets:
            return BatchResult(batch_id="", created=0)
        if any(not t for t in targets):
            raise ValidationError("Target role ids must not be empty")
        if len(set(targets)) != len(targets):
            raise ValidationError("Duplicate target role ids in batch")

        batch_id = uuid.uuid4().hex
        batch = self._store.batch()
        approval_ids = []
        for index, role_doc_id in enumerate(targets):
            approval_id = self._store.new_id()
            user_id, _ = parse_role_doc_id(role_doc_id)
            batch.set(
                document_path(APPROVALS, approval_id),
                {
                    "type": approval_type.value,
                    "status": ApprovalStatus.PENDING.value,
                    "storeId": store_id,
                    "title": title or approval_type.value,
                    "submittedBy": requester.uid,
                    "submittedByName": requester.name,
                    "submittedAt": SERVER_TIMESTAMP,
                    "commentRequired": bool(comment_required),
                    "payload": {**copy.deepcopy(payload or {}), "targetRoleDocId": role_doc_id, "targetUserId": user_id},
                    "target": {"col": USER_STORE_ROLES, "id": role_doc_id},
                    "batchContext": {"id": batch_id, "index": index, "count": len(targets)},
                },
            )
            approval_ids.append(approval_id)

        batch.commit()
        logger.info(
            "Created %s %s approvals in batch %s for store %s", len(targets), approval_type.value, batch_id, store_id
        )
        return BatchResult(batch_id=batch_id, created=len(targets), approval_ids=tuple(approval_ids))


def classify_selection(approvals: Iterable[ApprovalSummary]) -> BatchSelection:
    """A selection is mixed when it spans two batches or batched and unbatched items."""

    batch_ids = {a.batch_id for a in approvals}
    if len(batch_ids) > 1:
        return BatchSelection(batch_id=None, mixed=True)
    return BatchSelection(batch_id=next(iter(batch_ids), None), mixed=False)


def ensure_single_batch(approvals: Iterable[ApprovalSummary]) -> Optional[str]:
    selection = classify_selection(approvals)
    if selection.mixed:
        raise MixedBatchError()
    return selection.batch_id
