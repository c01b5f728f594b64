"""Approval transitions applied as single store transactions.

Every approve/reject re-reads the approval inside the transaction, refuses
anything that is no longer pending, applies the type-specific effect on the
target documents, stamps the decision and appends an ``approvalLogs`` entry.
Either all of these writes land or none do.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from ..common.readers import read_string
from ..core.constants import (
    ALLOWANCES,
    APPROVAL_LOGS,
    APPROVALS,
    CORRECTION_REQUESTS,
    RECEIPTS,
    STORE_JOIN_REQUESTS,
    USER_STORE_ROLES,
)
from ..core.enums import AllowanceStatus, ApprovalStatus, ApprovalType, ReceiptStatus, Role
from ..core.exceptions import ConflictError, ErrorCode, NotFoundError, ValidationError
from ..documents.model import SERVER_TIMESTAMP, DocumentSnapshot, document_path
from ..documents.store import DocumentStore, Transaction
from .keys import build_allowance_doc_id, resolve_target_role
from .model import (
    AllowanceChangePayload,
    ApprovalAction,
    ApprovalSummary,
    CommuteUpdatePayload,
    EmploymentChangePayload,
    ReceiptPayload,
    ShiftCorrectionPayload,
    StoreMembershipPayload,
    parse_payload,
)

logger = logging.getLogger(__name__)

Handler = Callable[[Transaction, ApprovalSummary, Any, ApprovalAction], None]

_KNOWN_ROLES = frozenset(r.value for r in Role)


def assert_fresh(submitted_at: Optional[datetime], updated_at: Any, code: ErrorCode) -> None:
    """Refuse when the target changed after the request was submitted."""

    if not isinstance(submitted_at, datetime) or not isinstance(updated_at, datetime):
        return
    if updated_at > submitted_at:
        raise ConflictError(f"Target was modified at {updated_at.isoformat()} after submission", code)


def _actor_stamp(action: ApprovalAction) -> dict:
    return {
        "updatedAt": SERVER_TIMESTAMP,
        "updatedBy": action.actor_user_id,
        "updatedByName": action.actor_display_name,
    }


def _require_existing(snap: DocumentSnapshot, what: str) -> DocumentSnapshot:
    if not snap.exists:
        raise NotFoundError(f"{what} not found: {snap.path}", ErrorCode.DOCUMENT_NOT_FOUND)
    return snap


class ApprovalTransactionEngine:
    def __init__(self, store: DocumentStore):
        self._store = store
        self._on_approve: dict[ApprovalType, Handler] = {
            ApprovalType.SHIFT_CORRECTION: self._approve_shift_correction,
            ApprovalType.RECEIPT: self._approve_receipt,
            ApprovalType.STORE_MEMBERSHIP: self._approve_store_membership,
            ApprovalType.EMPLOYMENT_CHANGE: self._approve_employment_change,
            ApprovalType.ALLOWANCE_ADD: self._apply_allowance_change,
            ApprovalType.ALLOWANCE_UPDATE: self._apply_allowance_change,
            ApprovalType.ALLOWANCE_END: self._apply_allowance_change,
            ApprovalType.COMMUTE_UPDATE: self._approve_commute_update,
        }
        # Types missing here only record the decision.
        self._on_reject: dict[ApprovalType, Handler] = {
            ApprovalType.RECEIPT: self._reject_receipt,
            ApprovalType.STORE_MEMBERSHIP: self._reject_store_membership,
        }

    def approve_approval(self, approval: ApprovalSummary, action: ApprovalAction) -> None:
        self._decide(approval.id, ApprovalStatus.APPROVED, action)

    def reject_approval(self, approval: ApprovalSummary, action: ApprovalAction) -> None:
        self._decide(approval.id, ApprovalStatus.REJECTED, action)

    def _decide(self, approval_id: str, decision: ApprovalStatus, action: ApprovalAction) -> None:
        handlers = self._on_approve if decision == ApprovalStatus.APPROVED else self._on_reject
        action = ApprovalAction(action.actor_user_id, action.actor_display_name, read_string(action.comment))

        def apply(txn: Transaction) -> ApprovalSummary:
            current = self._read_pending(txn, approval_id)
            handler = handlers.get(current.type)
            if handler is not None:
                handler(txn, current, parse_payload(current), action)
            txn.update(
                document_path(APPROVALS, current.id),
                {
                    "status": decision.value,
                    "decidedBy": action.actor_user_id,
                    "decidedByName": action.actor_display_name,
                    "decidedAt": SERVER_TIMESTAMP,
                    "comment": action.comment,
                },
            )
            txn.set(
                document_path(APPROVAL_LOGS, self._store.new_id()),
                {
                    "approvalId": current.id,
                    "storeId": current.store_id,
                    "type": current.type.value,
                    "action": decision.value,
                    "actorUserId": action.actor_user_id,
                    "actorDisplayName": action.actor_display_name,
                    "comment": action.comment,
                    "batchId": current.batch_id,
                    "createdAt": SERVER_TIMESTAMP,
                },
            )
            return current

        current = self._store.run_transaction(apply)
        logger.info(
            "Approval %s (%s) %s by %s", current.id, current.type.value, decision.value, action.actor_user_id
        )

    @staticmethod
    def _read_pending(txn: Transaction, approval_id: str) -> ApprovalSummary:
        snap = txn.get(document_path(APPROVALS, approval_id))
        if not snap.exists:
            raise NotFoundError(f"Approval {approval_id} not found", ErrorCode.APPROVAL_NOT_FOUND)
        current = ApprovalSummary.from_snapshot(snap)
        if not current.is_pending:
            raise ValidationError(
                f"Approval {approval_id} is already {current.status.value}", ErrorCode.APPROVAL_ALREADY_DECIDED
            )
        return current

    # -------- shiftCorrection --------
    def _approve_shift_correction(
        self, txn: Transaction, approval: ApprovalSummary, payload: ShiftCorrectionPayload, action: ApprovalAction
    ) -> None:
        correction_path = document_path(CORRECTION_REQUESTS, payload.correction_request_id)
        _require_existing(txn.get(correction_path), "Correction request")
        txn.update(
            correction_path,
            {
                "status": ApprovalStatus.APPROVED.value,
                "resolvedAt": SERVER_TIMESTAMP,
                "resolvedBy": action.actor_user_id,
                "resolvedByName": action.actor_display_name,
            },
        )
        if payload.attendance_path and payload.attendance_patch:
            txn.set(
                document_path(*payload.attendance_path),
                {**payload.attendance_patch, **_actor_stamp(action)},
                merge=True,
            )

    # -------- receipt --------
    def _approve_receipt(
        self, txn: Transaction, approval: ApprovalSummary, payload: ReceiptPayload, action: ApprovalAction
    ) -> None:
        receipt_path = document_path(RECEIPTS, payload.receipt_id)
        _require_existing(txn.get(receipt_path), "Receipt")
        txn.update(
            receipt_path,
            {
                "status": ReceiptStatus.LOCKED.value,
                "approvalComment": action.comment,
                "approvedAt": SERVER_TIMESTAMP,
                "approvedBy": action.actor_user_id,
                "approvedByName": action.actor_display_name,
            },
        )

    def _reject_receipt(
        self, txn: Transaction, approval: ApprovalSummary, payload: ReceiptPayload, action: ApprovalAction
    ) -> None:
        receipt_path = document_path(RECEIPTS, payload.receipt_id)
        _require_existing(txn.get(receipt_path), "Receipt")
        txn.update(
            receipt_path,
            {
                "status": ReceiptStatus.DRAFT.value,
                "rejectionComment": action.comment,
                "rejectedAt": SERVER_TIMESTAMP,
                "rejectedBy": action.actor_user_id,
                "rejectedByName": action.actor_display_name,
            },
        )

    # -------- storeMembership --------
    def _approve_store_membership(
        self, txn: Transaction, approval: ApprovalSummary, payload: StoreMembershipPayload, action: ApprovalAction
    ) -> None:
        if payload.role not in _KNOWN_ROLES:
            raise ValidationError(f"Unknown role {payload.role!r} in membership request {approval.id}")
        join_path = document_path(STORE_JOIN_REQUESTS, payload.join_request_id)
        join_snap = txn.get(join_path)

        if payload.store_id and payload.user_id:
            role_path = document_path(USER_STORE_ROLES, f"{payload.user_id}_{payload.store_id}")
            existing = txn.get(role_path)
            data = {
                "userId": payload.user_id,
                "storeId": payload.store_id,
                "role": payload.role,
                "isResigned": False,
                **_actor_stamp(action),
                "source": "approval",
            }
            if existing.get("createdAt") is None:
                data["createdAt"] = SERVER_TIMESTAMP
            txn.set(role_path, data, merge=True)
        else:
            logger.warning("Membership approval %s has no resolvable user/store", approval.id)

        self._resolve_join_request(txn, join_snap, ApprovalStatus.APPROVED, action)

    def _reject_store_membership(
        self, txn: Transaction, approval: ApprovalSummary, payload: StoreMembershipPayload, action: ApprovalAction
    ) -> None:
        join_snap = txn.get(document_path(STORE_JOIN_REQUESTS, payload.join_request_id))
        self._resolve_join_request(txn, join_snap, ApprovalStatus.REJECTED, action)

    @staticmethod
    def _resolve_join_request(
        txn: Transaction, join_snap: DocumentSnapshot, status: ApprovalStatus, action: ApprovalAction
    ) -> None:
        # Proxy-created membership approvals have no join request to resolve.
        if not join_snap.exists:
            return
        txn.update(
            join_snap.path,
            {
                "status": status.value,
                "resolvedAt": SERVER_TIMESTAMP,
                "resolvedBy": action.actor_user_id,
                "resolvedByName": action.actor_display_name,
                "managerComment": action.comment,
            },
        )

    # -------- userStoreRoles updates --------
    def _read_fresh_role(self, txn: Transaction, approval: ApprovalSummary) -> str:
        target = resolve_target_role(approval)
        role_path = document_path(USER_STORE_ROLES, target.role_doc_id)
        snap = txn.get(role_path)
        if not snap.exists:
            raise NotFoundError(
                f"Role document {target.role_doc_id} does not exist", ErrorCode.MISSING_ROLE_DOCUMENT
            )
        assert_fresh(approval.submitted_at, snap.get("updatedAt"), ErrorCode.STALE_ROLE_DOCUMENT)
        return role_path

    def _approve_employment_change(
        self, txn: Transaction, approval: ApprovalSummary, payload: EmploymentChangePayload, action: ApprovalAction
    ) -> None:
        role_path = self._read_fresh_role(txn, approval)
        txn.update(
            role_path,
            {
                "employment": {
                    "type": payload.employment_type,
                    "baseRate": payload.base_rate,
                    "baseHours": payload.base_hours,
                    "note": payload.note,
                    "effectiveFrom": payload.effective_from,
                },
                **_actor_stamp(action),
            },
        )

    def _approve_commute_update(
        self, txn: Transaction, approval: ApprovalSummary, payload: CommuteUpdatePayload, action: ApprovalAction
    ) -> None:
        role_path = self._read_fresh_role(txn, approval)
        txn.update(
            role_path,
            {
                "commute": {
                    "mode": payload.mode.value if payload.mode else None,
                    "amount": payload.amount,
                    "taxExempt": payload.tax_exempt,
                    "effectiveFrom": payload.effective_from,
                },
                **_actor_stamp(action),
            },
        )

    # -------- allowances --------
    def _apply_allowance_change(
        self, txn: Transaction, approval: ApprovalSummary, payload: AllowanceChangePayload, action: ApprovalAction
    ) -> None:
        target = resolve_target_role(approval)
        if not target.store_id or not target.user_id:
            raise NotFoundError(
                f"Cannot resolve user and store from {target.role_doc_id}", ErrorCode.MISSING_ROLE_DOCUMENT
            )
        allowance_path = document_path(ALLOWANCES, build_allowance_doc_id(target.role_doc_id, payload.name))

        snap = txn.get(allowance_path)
        existing = snap.data
        if existing is not None:
            assert_fresh(approval.submitted_at, existing.get("updatedAt"), ErrorCode.STALE_ALLOWANCE_DOCUMENT)

        base = {
            "roleDocId": target.role_doc_id,
            "storeId": target.store_id,
            "userId": target.user_id,
            "name": payload.name,
            **_actor_stamp(action),
        }
        if payload.master_id:
            base["masterId"] = payload.master_id

        if approval.type == ApprovalType.ALLOWANCE_ADD:
            prior = existing or {}
            data = {
                **base,
                "createdAt": prior.get("createdAt") or SERVER_TIMESTAMP,
                "status": AllowanceStatus.ACTIVE.value,
                "amount": payload.amount,
                "taxExempt": payload.tax_exempt if payload.tax_exempt is not None else False,
                "note": payload.note,
                "effectiveFrom": payload.effective_from or prior.get("effectiveFrom"),
                "effectiveTo": payload.effective_to or prior.get("effectiveTo"),
            }
        elif existing is None:
            raise NotFoundError(f"Allowance {snap.id} does not exist", ErrorCode.ALLOWANCE_NOT_FOUND)
        elif approval.type == ApprovalType.ALLOWANCE_UPDATE:
            data = {
                **existing,
                **base,
                "status": AllowanceStatus.ACTIVE.value,
                "amount": payload.amount if payload.amount is not None else existing.get("amount"),
                "taxExempt": payload.tax_exempt if payload.tax_exempt is not None else existing.get("taxExempt", False),
                "note": payload.note or existing.get("note"),
                "effectiveFrom": payload.effective_from or existing.get("effectiveFrom"),
                "effectiveTo": payload.effective_to or existing.get("effectiveTo"),
            }
        else:
            data = {
                **existing,
                **base,
                "status": AllowanceStatus.ENDED.value,
                "endedAt": SERVER_TIMESTAMP,
                "effectiveTo": payload.effective_to or payload.effective_from or existing.get("effectiveTo"),
            }
        txn.set(allowance_path, data, merge=True)
