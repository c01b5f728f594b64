"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

SLOT_MINUTES = 30
MINUTES_PER_DAY = 24 * 60
SLOTS_PER_DAY = MINUTES_PER_DAY // SLOT_MINUTES

DEFAULT_MEMBERSHIP_ROLE = "staff"
DEFAULT_TRANSACTION_ATTEMPTS = 5
DEFAULT_APPROVAL_LIST_LIMIT = 500

# Collection names (document paths are "/"-joined segments).
SHIFT_REQUESTS = "shiftRequests"
MONTHS = "months"
DAYS = "days"
SUBMIT_WINDOWS = "submitWindows"
APPROVALS = "approvals"
APPROVAL_LOGS = "approvalLogs"
ALLOWANCES = "allowances"
USER_STORE_ROLES = "userStoreRoles"
CORRECTION_REQUESTS = "correctionRequests"
RECEIPTS = "receipts"
STORE_JOIN_REQUESTS = "storeJoinRequests"

# Live subscriptions kept open by the shift request service.
DEFAULT_MAX_OPEN_SYNCS = 256
DEFAULT_MAX_OPEN_MONTHS = 24
