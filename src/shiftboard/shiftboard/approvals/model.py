from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Union

from ..common.readers import read_boolean, read_datetime, read_int, read_mapping, read_number, read_string
from ..core.constants import DEFAULT_MEMBERSHIP_ROLE
from ..core.enums import AllowanceStatus, ApprovalStatus, ApprovalType, CommuteMode
from ..core.exceptions import ValidationError
from ..documents.model import DocumentSnapshot


@dataclass(frozen=True)
class ApprovalTarget:
    col: Optional[str]
    id: Optional[str]

    def to_dict(self) -> dict:
        return {"col": self.col, "id": self.id}


@dataclass(frozen=True)
class BatchContext:
    id: Optional[str]
    index: Optional[int]
    count: Optional[int]

    def to_dict(self) -> dict:
        return {"id": self.id, "index": self.index, "count": self.count}


@dataclass(frozen=True)
class ApprovalSummary:
    id: str
    store_id: Optional[str]
    type: ApprovalType
    status: ApprovalStatus
    title: str
    submitted_by: Optional[str]
    submitted_by_name: Optional[str]
    submitted_at: Optional[datetime]
    comment_required: bool
    payload: dict = field(default_factory=dict)
    target: Optional[ApprovalTarget] = None
    batch_context: Optional[BatchContext] = None
    decided_by: Optional[str] = None
    decided_by_name: Optional[str] = None
    decided_at: Optional[datetime] = None
    comment: Optional[str] = None

    @property
    def batch_id(self) -> Optional[str]:
        return self.batch_context.id if self.batch_context else None

    @property
    def is_pending(self) -> bool:
        return self.status == ApprovalStatus.PENDING

    @classmethod
    def from_snapshot(cls, snap: DocumentSnapshot) -> "ApprovalSummary":
        data = snap.data or {}
        try:
            approval_type = ApprovalType(data.get("type"))
        except ValueError:
            raise ValidationError(f"Unknown approval type {data.get('type')!r} on {snap.id}")
        try:
            status = ApprovalStatus(data.get("status") or ApprovalStatus.PENDING.value)
        except ValueError:
            raise ValidationError(f"Unknown approval status {data.get('status')!r} on {snap.id}")

        raw_target = data.get("target")
        target = None
        if isinstance(raw_target, Mapping):
            target = ApprovalTarget(col=read_string(raw_target.get("col")), id=read_string(raw_target.get("id")))

        raw_batch = data.get("batchContext")
        batch_context = None
        if isinstance(raw_batch, Mapping):
            batch_context = BatchContext(
                id=read_string(raw_batch.get("id")),
                index=read_int(raw_batch.get("index")),
                count=read_int(raw_batch.get("count")),
            )

        return cls(
            id=snap.id,
            store_id=read_string(data.get("storeId")),
            type=approval_type,
            status=status,
            title=read_string(data.get("title")) or snap.id,
            submitted_by=read_string(data.get("submittedBy")),
            submitted_by_name=read_string(data.get("submittedByName")),
            submitted_at=read_datetime(data.get("submittedAt")),
            comment_required=data.get("commentRequired") is True,
            payload=read_mapping(data.get("payload")),
            target=target,
            batch_context=batch_context,
            decided_by=read_string(data.get("decidedBy")),
            decided_by_name=read_string(data.get("decidedByName")),
            decided_at=read_datetime(data.get("decidedAt")),
            comment=read_string(data.get("comment")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "storeId": self.store_id,
            "type": self.type.value,
            "status": self.status.value,
            "title": self.title,
            "submittedBy": self.submitted_by,
            "submittedByName": self.submitted_by_name,
            "submittedAt": self.submitted_at.isoformat() if self.submitted_at else None,
            "commentRequired": self.comment_required,
            "payload": self.payload,
            "target": self.target.to_dict() if self.target else None,
            "batchContext": self.batch_context.to_dict() if self.batch_context else None,
            "decidedBy": self.decided_by,
            "decidedByName": self.decided_by_name,
            "decidedAt": self.decided_at.isoformat() if self.decided_at else None,
            "comment": self.comment,
        }


@dataclass(frozen=True)
class ApprovalAction:
    actor_user_id: str
    actor_display_name: Optional[str] = None
    comment: Optional[str] = None


@dataclass(frozen=True)
class Requester:
    uid: str
    name: Optional[str] = None


@dataclass(frozen=True)
class BatchResult:
    batch_id: str
    created: int
    approval_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"batchId": self.batch_id, "created": self.created, "approvalIds": list(self.approval_ids)}


@dataclass(frozen=True)
class BatchSelection:
    batch_id: Optional[str]
    mixed: bool


@dataclass(frozen=True)
class AllowanceAssignment:
    id: str
    store_id: Optional[str]
    role_doc_id: Optional[str]
    user_id: Optional[str]
    name: Optional[str]
    status: Optional[AllowanceStatus]
    master_id: Optional[str]
    amount: Optional[float]
    tax_exempt: bool
    note: Optional[str]
    effective_from: Optional[str]
    effective_to: Optional[str]
    updated_at: Optional[datetime]

    @classmethod
    def from_snapshot(cls, snap: DocumentSnapshot) -> "AllowanceAssignment":
        status = read_string(snap.get("status"))
        return cls(
            id=snap.id,
            store_id=read_string(snap.get("storeId")),
            role_doc_id=read_string(snap.get("roleDocId")),
            user_id=read_string(snap.get("userId")),
            name=read_string(snap.get("name")),
            status=AllowanceStatus(status) if status in {s.value for s in AllowanceStatus} else None,
            master_id=read_string(snap.get("masterId")),
            amount=read_number(snap.get("amount")),
            tax_exempt=snap.get("taxExempt") is True,
            note=read_string(snap.get("note")),
            effective_from=read_string(snap.get("effectiveFrom")),
            effective_to=read_string(snap.get("effectiveTo")),
            updated_at=read_datetime(snap.get("updatedAt")),
        )


# -------- Payloads (tagged by ApprovalType) --------
@dataclass(frozen=True)
class ShiftCorrectionPayload:
    correction_request_id: str
    attendance_path: Optional[tuple[str, ...]]
    attendance_patch: dict


@dataclass(frozen=True)
class ReceiptPayload:
    receipt_id: str


@dataclass(frozen=True)
class StoreMembershipPayload:
    join_request_id: str
    store_id: Optional[str]
    user_id: Optional[str]
    role: str


@dataclass(frozen=True)
class EmploymentChangePayload:
    employment_type: Optional[str]
    base_rate: Optional[float]
    base_hours: Optional[float]
    note: Optional[str]
    effective_from: Optional[str]


@dataclass(frozen=True)
class AllowanceChangePayload:
    name: Optional[str]
    amount: Optional[float]
    tax_exempt: Optional[bool]
    note: Optional[str]
    effective_from: Optional[str]
    effective_to: Optional[str]
    master_id: Optional[str]


@dataclass(frozen=True)
class CommuteUpdatePayload:
    # Unknown modes are stored as None rather than rejected.
    mode: Optional[CommuteMode]
    amount: Optional[float]
    tax_exempt: Optional[bool]
    effective_from: Optional[str]


ApprovalPayload = Union[
    ShiftCorrectionPayload,
    ReceiptPayload,
    StoreMembershipPayload,
    EmploymentChangePayload,
    AllowanceChangePayload,
    CommuteUpdatePayload,
]


def _first_id(payload: Mapping[str, Any], key: str, fallback: str) -> str:
    return read_string(payload.get(key)) or read_string(payload.get("targetId")) or fallback


def _shift_correction(approval: ApprovalSummary) -> ShiftCorrectionPayload:
    p = approval.payload
    raw_path = p.get("attendancePath")
    path = None
    if isinstance(raw_path, (list, tuple)) and len(raw_path) >= 2:
        path = tuple(str(segment) for segment in raw_path)
    return ShiftCorrectionPayload(
        correction_request_id=_first_id(p, "correctionRequestId", approval.id),
        attendance_path=path,
        attendance_patch=read_mapping(p.get("attendancePatch")),
    )


def _receipt(approval: ApprovalSummary) -> ReceiptPayload:
    return ReceiptPayload(receipt_id=_first_id(approval.payload, "receiptId", approval.id))


def _store_membership(approval: ApprovalSummary) -> StoreMembershipPayload:
    p = approval.payload
    return StoreMembershipPayload(
        join_request_id=_first_id(p, "joinRequestId", approval.id),
        store_id=read_string(p.get("storeId")) or approval.store_id,
        user_id=read_string(p.get("userId")) or read_string(p.get("submittedBy")) or approval.submitted_by,
        role=read_string(p.get("role")) or DEFAULT_MEMBERSHIP_ROLE,
    )


def _employment_change(approval: ApprovalSummary) -> EmploymentChangePayload:
    p = approval.payload
    return EmploymentChangePayload(
        employment_type=read_string(p.get("employmentType")),
        base_rate=read_number(p.get("baseRate")),
        base_hours=read_number(p.get("baseHours")),
        note=read_string(p.get("note")),
        effective_from=read_string(p.get("effectiveFrom")),
    )


def _allowance_change(approval: ApprovalSummary) -> AllowanceChangePayload:
    p = approval.payload
    allowance = read_mapping(p.get("allowance"))
    return AllowanceChangePayload(
        name=read_string(allowance.get("name")),
        amount=read_number(allowance.get("amount")),
        tax_exempt=read_boolean(allowance.get("taxExempt")),
        note=read_string(allowance.get("note")),
        effective_from=read_string(p.get("effectiveFrom")),
        effective_to=read_string(allowance.get("effectiveTo")),
        master_id=read_string(allowance.get("masterId")),
    )


def _commute_update(approval: ApprovalSummary) -> CommuteUpdatePayload:
    p = approval.payload
    commute = read_mapping(p.get("commute"))
    mode = read_string(commute.get("mode"))
    return CommuteUpdatePayload(
        mode=CommuteMode(mode) if mode in {m.value for m in CommuteMode} else None,
        amount=read_number(commute.get("amount")),
        tax_exempt=read_boolean(commute.get("taxExempt")),
        effective_from=read_string(p.get("effectiveFrom")),
    )


_PAYLOAD_PARSERS: dict[ApprovalType, Callable[[ApprovalSummary], ApprovalPayload]] = {
    ApprovalType.SHIFT_CORRECTION: _shift_correction,
    ApprovalType.RECEIPT: _receipt,
    ApprovalType.STORE_MEMBERSHIP: _store_membership,
    ApprovalType.EMPLOYMENT_CHANGE: _employment_change,
    ApprovalType.ALLOWANCE_ADD: _allowance_change,
    ApprovalType.ALLOWANCE_UPDATE: _allowance_change,
    ApprovalType.ALLOWANCE_END: _allowance_change,
    ApprovalType.COMMUTE_UPDATE: _commute_update,
}

_unparsed = set(ApprovalType) - set(_PAYLOAD_PARSERS)
if _unparsed:
    raise RuntimeError(f"No payload parser for approval types: {sorted(t.value for t in _unparsed)}")


def parse_payload(approval: ApprovalSummary) -> ApprovalPayload:
    return _PAYLOAD_PARSERS[approval.type](approval)
