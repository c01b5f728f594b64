from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence, Union

from ..auth.capabilities import (
    APPROVE_CAPABILITY_BY_TYPE,
    REQUEST_CAPABILITY_BY_TYPE,
    has_capability,
    is_admin_role,
)
from ..auth.roles import RoleDirectory
from ..common.readers import read_string
from ..core.enums import ApprovalStatus, ApprovalType
from ..core.exceptions import AuthorizationError, ErrorCode, NotFoundError, ValidationError
from .batch import BatchApprovalCoordinator, ensure_single_batch
from .engine import ApprovalTransactionEngine
from .model import ApprovalAction, ApprovalSummary, BatchResult, Requester
from .repository import ApprovalRepository

logger = logging.getLogger(__name__)


class ApprovalService:
    def __init__(
        self,
        approvals: ApprovalRepository,
        engine: ApprovalTransactionEngine,
        coordinator: BatchApprovalCoordinator,
        roles: RoleDirectory,
    ):
        self._approvals = approvals
        self._engine = engine
        self._coordinator = coordinator
        self._roles = roles

    # -------- Reads --------
    def get(self, approval_id: str) -> ApprovalSummary:
        approval = self._approvals.get(approval_id)
        if approval is None:
            raise NotFoundError(f"Approval {approval_id} not found", ErrorCode.APPROVAL_NOT_FOUND)
        return approval

    def list_approvals(
        self,
        *,
        current_user_id: str,
        store_id: Optional[str] = None,
        status: Optional[ApprovalStatus] = None,
        approval_type: Optional[ApprovalType] = None,
    ) -> list[ApprovalSummary]:
        if not is_admin_role(self._roles.resolve_role(current_user_id, store_id)):
            raise AuthorizationError("Only store managers can review approvals")
        return self._approvals.list(store_id=store_id, status=status, approval_type=approval_type)

    # -------- Proxy submissions --------
    def submit_proxy_request(
        self,
        *,
        requester: Requester,
        store_id: str,
        target_role_doc_ids: Sequence[str],
        approval_type: Union[ApprovalType, str],
        payload: dict,
        title: Optional[str] = None,
        comment_required: bool = False,
    ) -> BatchResult:
        try:
            approval_type = ApprovalType(approval_type)
        except ValueError:
            raise ValidationError(f"Unknown approval type: {approval_type!r}")
        capability = REQUEST_CAPABILITY_BY_TYPE.get(approval_type)
        if capability is None:
            raise ValidationError(f"{approval_type.value} approvals cannot be submitted on behalf of staff")

        role = self._roles.resolve_role(requester.uid, store_id)
        if not has_capability(role, capability):
            raise AuthorizationError(f"Role {role or 'none'} cannot request {approval_type.value}")

        return self._coordinator.create_batch_approvals(
            store_id=store_id,
            target_role_doc_ids=target_role_doc_ids,
            approval_type=approval_type,
            payload=payload,
            requester=requester,
            title=title,
            comment_required=comment_required,
        )

    # -------- Decisions --------
    def approve(self, approval_id: str, action: ApprovalAction) -> ApprovalSummary:
        approval = self._checked(self.get(approval_id), action)
        self._engine.approve_approval(approval, action)
        return self.get(approval_id)

    def reject(self, approval_id: str, action: ApprovalAction) -> ApprovalSummary:
        approval = self._checked(self.get(approval_id), action)
        self._engine.reject_approval(approval, action)
        return self.get(approval_id)

    def approve_many(self, approval_ids: Iterable[str], action: ApprovalAction) -> list[str]:
        """Approve a same-batch selection; returns the ids that were applied."""

        approvals = self._load_selection(approval_ids, action)
        for approval in approvals:
            self._engine.approve_approval(approval, action)
        return [a.id for a in approvals]

    def reject_many(self, approval_ids: Iterable[str], action: ApprovalAction) -> list[str]:
        approvals = self._load_selection(approval_ids, action)
        for approval in approvals:
            self._engine.reject_approval(approval, action)
        return [a.id for a in approvals]

    def _load_selection(self, approval_ids: Iterable[str], action: ApprovalAction) -> list[ApprovalSummary]:
        # Every check runs before the first write so a refused selection applies nothing.
        unique_ids = list(dict.fromkeys(i for i in approval_ids if i))
        approvals = []
        for approval_id in unique_ids:
            approval = self._approvals.get(approval_id)
            if approval is None:
                logger.info("Skipping missing approval %s in bulk action", approval_id)
                continue
            approvals.append(approval)

        ensure_single_batch(approvals)
        pending = []
        for approval in approvals:
            if not approval.is_pending:
                logger.info("Skipping approval %s already %s", approval.id, approval.status.value)
                continue
            pending.append(self._checked(approval, action))
        return pending

    def _checked(self, approval: ApprovalSummary, action: ApprovalAction) -> ApprovalSummary:
        capability = APPROVE_CAPABILITY_BY_TYPE[approval.type]
        role = self._roles.resolve_role(action.actor_user_id, approval.store_id)
        if not has_capability(role, capability):
            raise AuthorizationError(f"Role {role or 'none'} cannot decide {approval.type.value} approvals")
        if approval.comment_required and not read_string(action.comment):
            raise ValidationError("A comment is required for this approval", ErrorCode.COMMENT_REQUIRED)
        return approval
