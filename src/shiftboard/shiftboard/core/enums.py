from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Store-level roles, ordered by rank in ``auth.capabilities``."""

    KIOSK = "kiosk"
    STAFF = "staff"
    EMPLOYEE = "employee"
    SENIOR = "senior"
    MANAGER = "manager"
    ADMIN = "admin"
    OWNER = "owner"


class Capability(str, Enum):
    APPROVE_ATTENDANCE = "approve_attendance"
    APPROVE_RECEIPT = "approve_receipt"
    APPROVE_JOIN_STORE = "approve_join_store"
    APPROVE_EMPLOYMENT = "approve_employment"
    APPROVE_ALLOWANCE = "approve_allowance"
    APPROVE_COMMUTE = "approve_commute"
    REQUEST_EMPLOYMENT = "request_employment"
    REQUEST_ALLOWANCE = "request_allowance"
    REQUEST_COMMUTE = "request_commute"
    REQUEST_JOIN_STORE = "request_join_store"


class ApprovalType(str, Enum):
    SHIFT_CORRECTION = "shiftCorrection"
    RECEIPT = "receipt"
    STORE_MEMBERSHIP = "storeMembership"
    EMPLOYMENT_CHANGE = "employment_change"
    ALLOWANCE_ADD = "allowance_add"
    ALLOWANCE_UPDATE = "allowance_update"
    ALLOWANCE_END = "allowance_end"
    COMMUTE_UPDATE = "commute_update"


class ApprovalStatus(str, Enum):
    """Approval lifecycle: PENDING moves once to APPROVED or REJECTED."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AllowanceStatus(str, Enum):
    ACTIVE = "active"
    ENDED = "ended"


class CommuteMode(str, Enum):
    PER_DAY = "perDay"
    FIXED_MONTHLY = "fixedMonthly"


class ReceiptStatus(str, Enum):
    DRAFT = "draft"
    LOCKED = "locked"


class DayPhase(str, Enum):
    """Local sync state of one day in ``DayRequestSync``."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    PENDING = "pending"
    ERROR = "error"
