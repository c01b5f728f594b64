from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    MISSING_ROLE_DOCUMENT = "MISSING_ROLE_DOCUMENT"
    STALE_ROLE_DOCUMENT = "STALE_ROLE_DOCUMENT"
    STALE_ALLOWANCE_DOCUMENT = "STALE_ALLOWANCE_DOCUMENT"
    ALLOWANCE_NAME_REQUIRED = "ALLOWANCE_NAME_REQUIRED"
    ALLOWANCE_NOT_FOUND = "ALLOWANCE_NOT_FOUND"
    APPROVAL_NOT_FOUND = "APPROVAL_NOT_FOUND"
    APPROVAL_ALREADY_DECIDED = "APPROVAL_ALREADY_DECIDED"
    COMMENT_REQUIRED = "COMMENT_REQUIRED"
    MIXED_BATCH = "MIXED_BATCH"
    WINDOW_LOCKED = "WINDOW_LOCKED"
    DATE_OUTSIDE_WINDOW = "DATE_OUTSIDE_WINDOW"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    TRANSPORT = "TRANSPORT"


class DomainError(Exception):
    """Base exception for business rule violations.

    ``code`` is a stable machine-readable identifier; ``str(exc)`` stays a
    human-readable message.
    """

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.code = code


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when the target of an operation does not exist."""


class ConflictError(DomainError):
    """Raised when a target changed after the request was submitted."""


class TransportError(DomainError):
    """Raised when the underlying document store fails."""

    def __init__(self, message: str, code: Optional[ErrorCode] = ErrorCode.TRANSPORT):
        super().__init__(message, code)


class TransactionContention(TransportError):
    """Transient store contention; the transaction may be retried."""


class SubmissionLockedError(DomainError):
    """Raised when a write targets a locked submission window."""

    def __init__(self, message: str = "Submission window is locked."):
        super().__init__(message, ErrorCode.WINDOW_LOCKED)


class MixedBatchError(ValidationError):
    def __init__(self, message: str = "Select approvals from the same batch to continue."):
        super().__init__(message, ErrorCode.MIXED_BATCH)
