"""Role ranks and the capability table.

A capability is granted when the role's rank reaches the capability's
minimum rank. Unknown roles rank 0; unknown capabilities are never granted.
"""

from __future__ import annotations

from typing import Iterable, Optional, Union

from ..core.enums import ApprovalType, Capability, Role

ROLE_RANKS: dict[str, int] = {
    Role.KIOSK.value: 0,
    Role.STAFF.value: 1,
    Role.EMPLOYEE.value: 2,
    Role.SENIOR.value: 3,
    Role.MANAGER.value: 4,
    Role.ADMIN.value: 5,
    Role.OWNER.value: 6,
}

CAPABILITY_RANKS: dict[str, int] = {
    Capability.APPROVE_ATTENDANCE.value: 4,
    Capability.APPROVE_RECEIPT.value: 4,
    Capability.APPROVE_JOIN_STORE.value: 4,
    Capability.APPROVE_EMPLOYMENT.value: 5,
    Capability.APPROVE_ALLOWANCE.value: 4,
    Capability.APPROVE_COMMUTE.value: 4,
    Capability.REQUEST_EMPLOYMENT.value: 3,
    Capability.REQUEST_ALLOWANCE.value: 3,
    Capability.REQUEST_COMMUTE.value: 3,
    Capability.REQUEST_JOIN_STORE.value: 1,
}

MANAGEMENT_RANK = ROLE_RANKS[Role.MANAGER.value]

APPROVE_CAPABILITY_BY_TYPE: dict[ApprovalType, Capability] = {
    ApprovalType.SHIFT_CORRECTION: Capability.APPROVE_ATTENDANCE,
    ApprovalType.RECEIPT: Capability.APPROVE_RECEIPT,
    ApprovalType.STORE_MEMBERSHIP: Capability.APPROVE_JOIN_STORE,
    ApprovalType.EMPLOYMENT_CHANGE: Capability.APPROVE_EMPLOYMENT,
    ApprovalType.ALLOWANCE_ADD: Capability.APPROVE_ALLOWANCE,
    ApprovalType.ALLOWANCE_UPDATE: Capability.APPROVE_ALLOWANCE,
    ApprovalType.ALLOWANCE_END: Capability.APPROVE_ALLOWANCE,
    ApprovalType.COMMUTE_UPDATE: Capability.APPROVE_COMMUTE,
}

# Types submitted by proxy through batch creation.
REQUEST_CAPABILITY_BY_TYPE: dict[ApprovalType, Capability] = {
    ApprovalType.STORE_MEMBERSHIP: Capability.REQUEST_JOIN_STORE,
    ApprovalType.EMPLOYMENT_CHANGE: Capability.REQUEST_EMPLOYMENT,
    ApprovalType.ALLOWANCE_ADD: Capability.REQUEST_ALLOWANCE,
    ApprovalType.ALLOWANCE_UPDATE: Capability.REQUEST_ALLOWANCE,
    ApprovalType.ALLOWANCE_END: Capability.REQUEST_ALLOWANCE,
    ApprovalType.COMMUTE_UPDATE: Capability.REQUEST_COMMUTE,
}

RoleLike = Union[Role, str, None]
CapabilityLike = Union[Capability, str]


def _value(item) -> Optional[str]:
    if item is None:
        return None
    return item.value if isinstance(item, (Role, Capability)) else str(item)


def rank_of_role(role: RoleLike) -> int:
    return ROLE_RANKS.get(_value(role), 0)


def has_capability(role: RoleLike, capability: CapabilityLike) -> bool:
    required = CAPABILITY_RANKS.get(_value(capability))
    if required is None:
        return False
    return rank_of_role(role) >= required


def is_admin_role(role: RoleLike) -> bool:
    return rank_of_role(role) >= MANAGEMENT_RANK


def is_owner_role(role: RoleLike) -> bool:
    return _value(role) == Role.OWNER.value


def is_kiosk_role(role: RoleLike) -> bool:
    return _value(role) == Role.KIOSK.value


def highest_role(roles: Iterable[RoleLike]) -> Optional[str]:
    best: Optional[str] = None
    for role in roles:
        value = _value(role)
        if value is None:
            continue
        if best is None or rank_of_role(value) > rank_of_role(best):
            best = value
    return best


def role_for_store(assignments: Iterable, store_id: str) -> Optional[str]:
    """Role of the first active assignment for ``store_id``.

    ``assignments`` are ``UserStoreRole``-like objects with ``store_id``,
    ``role`` and ``is_resigned`` attributes.
    """

    for assignment in assignments:
        if assignment.store_id == store_id and not assignment.is_resigned:
            return assignment.role
    return None
