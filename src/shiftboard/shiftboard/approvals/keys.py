"""Document id helpers for role and allowance targets."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

from ..common.readers import read_string
from ..core.exceptions import ErrorCode, NotFoundError, ValidationError
from .model import ApprovalSummary

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return _NON_SLUG.sub("-", value.strip().lower()).strip("-")


def build_allowance_doc_id(role_doc_id: str, name: Any) -> str:
    slug = slugify(name)
    if not slug:
        raise ValidationError("Allowance name is required", ErrorCode.ALLOWANCE_NAME_REQUIRED)
    return f"{role_doc_id}__{slug}"


def parse_role_doc_id(role_doc_id: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """Split ``{userId}_{storeId}`` on the last underscore.

    Without a usable separator the whole id is taken as the user id.
    """

    if not role_doc_id:
        return None, None
    cut = role_doc_id.rfind("_")
    if cut <= 0 or cut == len(role_doc_id) - 1:
        return role_doc_id, None
    return role_doc_id[:cut], role_doc_id[cut + 1:]


@dataclass(frozen=True)
class TargetRole:
    role_doc_id: str
    user_id: Optional[str]
    store_id: Optional[str]


def resolve_target_role(approval: ApprovalSummary) -> TargetRole:
    role_doc_id = (approval.target.id if approval.target else None) or read_string(
        approval.payload.get("targetRoleDocId")
    )
    if not role_doc_id:
        raise NotFoundError(f"Approval {approval.id} has no target role document", ErrorCode.MISSING_ROLE_DOCUMENT)
    parsed_user, parsed_store = parse_role_doc_id(role_doc_id)
    return TargetRole(
        role_doc_id=role_doc_id,
        user_id=read_string(approval.payload.get("targetUserId")) or parsed_user,
        store_id=parsed_store or approval.store_id,
    )
