"""
Fixed limits shared by validation, persistence and the workflow engine.

WHY: These values are part of the helpdesk's security and data contract,
not deployment tuning, so they live in code rather than in Settings.
"""

# ============================================================================
# Authentication
# ============================================================================

# Failed attempts at which an account refuses authentication outright
LOCKOUT_THRESHOLD = 5

PASSWORD_MIN_LENGTH = 8
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
USERNAME_PATTERN = r"^[A-Za-z0-9_]+$"

# Shape of the special-character requirement in the password policy
PASSWORD_SPECIAL_CHARACTERS = r"[^A-Za-z0-9]"

# ============================================================================
# Field lengths
# ============================================================================

EMAIL_MAX_LENGTH = 255
TICKET_TITLE_MAX_LENGTH = 200
TICKET_DESCRIPTION_MAX_LENGTH = 5000
REPORTER_NAME_MAX_LENGTH = 100
DEPARTMENT_MAX_LENGTH = 100
PHONE_MAX_LENGTH = 20
COMMENT_MIN_LENGTH = 1
COMMENT_MAX_LENGTH = 5000
AUDIT_ACTION_MAX_LENGTH = 50
IP_ADDRESS_MAX_LENGTH = 45  # IPv6

# ============================================================================
# Audit queries
# ============================================================================

AUDIT_QUERY_DEFAULT_LIMIT = 50
AUDIT_QUERY_MAX_LIMIT = 500
