"""
Custom exception hierarchy for structured error handling.

WHY: Every failure the helpdesk can surface falls into one of five families,
and each family has a fixed outward behavior:

1. Authentication rejected (401): bad credentials, locked or inactive account,
   missing session. Always the same message, so callers cannot tell which
   precondition failed.
2. Authorization denied (403): known caller, forbidden operation, including a
   session revoked by the live account check. Never says which role was needed.
3. Validation failed (400): malformed input or an illegal transition. Reports
   exactly which field and constraint failed.
4. Conflicting state (409): the request is well formed but the referenced
   state forbids it (assignee inactive, unknown role value).
5. Infrastructure failure (500): storage or audit write failures. Users see a
   generic message; operators see the logged context.

IMPORTANT: NEVER raise the base Exception class from application code.
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    WHY: Centralizing exception handling in a base class ensures consistent
    error responses, HTTP status code mapping, and prevents sensitive data
    leaks in error messages.
    """

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    # Context keys that never leave the process
    # WHY: Credential material and operator-only reasons must not reach clients.
    sensitive_fields = frozenset(
        {"password", "token", "secret", "key", "api_key", "hashed_password", "reason"}
    )

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        """
        Initialize exception with message and context.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (overrides class default)
            **context: Additional context for debugging (filtered in to_dict)
        """
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to dictionary for JSON response.

        Returns:
            Dictionary with error details (sensitive fields filtered out)
        """
        filtered_context = {
            k: v for k, v in self.context.items() if k.lower() not in self.sensitive_fields
        }

        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": filtered_context if filtered_context else None,
        }


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(AppException):
    """
    Raised when the caller cannot be identified.

    WHY: Bad password, unknown user, locked account and inactive account all
    raise this one type with one message, so nothing about the account leaks.

    HTTP Status: 401 Unauthorized
    """

    status_code = 401
    default_message = "Please log in to access this page"


class AuthorizationError(AppException):
    """
    Raised when a known caller is not allowed to perform an action.

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    default_message = "You do not have permission to access this page"

    def to_dict(self) -> Dict[str, Any]:
        # WHY: Denials never explain themselves (no role names, no user ids)
        data = super().to_dict()
        data["details"] = None
        return data


class InsufficientPermissionsError(AuthorizationError):
    """Raised when the caller's role is not in the operation's allow-list."""


class SessionRevokedError(AuthorizationError):
    """
    Raised when the live account check invalidates a session.

    WHY: The account behind an otherwise valid session was deactivated,
    deleted or removed. The session is destroyed before this is raised.
    """


# ============================================================================
# Validation Exceptions
# ============================================================================


class ValidationError(AppException):
    """
    Raised when input fails a field-level rule.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Validation failed"


class InvalidStateTransitionError(ValidationError):
    """
    Raised when an actor requests a status, priority or assignment change
    its role may not make.

    HTTP Status: 400 Bad Request
    """

    default_message = "Invalid state transition"


# ============================================================================
# Conflicting State Exceptions
# ============================================================================


class ConflictingStateError(AppException):
    """
    Raised when stored state forbids an otherwise well-formed request.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Request conflicts with the current state"


class AssignmentConflictError(ConflictingStateError):
    """Raised when the requested assignee is missing or not active."""

    default_message = "Cannot assign to inactive or non-existent user"


class InvalidRoleError(ConflictingStateError):
    """Raised when a role value outside the known role set reaches a filter."""

    default_message = "Invalid user role"


class ResourceAlreadyExistsError(ConflictingStateError):
    """Raised when a unique value (username, email) is already taken."""

    default_message = "Resource already exists"


# ============================================================================
# Resource & Business Rule Exceptions
# ============================================================================


class ResourceNotFoundError(AppException):
    """
    Raised when a requested resource doesn't exist.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    default_message = "Resource not found"


class TicketNotFoundError(ResourceNotFoundError):
    """
    Raised when a ticket is missing or outside the caller's scope.

    WHY: Department users asking for another department's ticket get the
    same 404 as for a ticket that does not exist.
    """

    default_message = "Ticket not found"


class UserNotFoundError(ResourceNotFoundError):
    """Raised when a user account is missing."""

    default_message = "User not found"


class BusinessRuleViolation(AppException):
    """
    Raised when an account-management rule would be broken (last super
    admin, self-deletion).

    HTTP Status: 422 Unprocessable Entity
    """

    status_code = 422
    default_message = "Business rule violation"


class RateLimitExceeded(AppException):
    """
    Raised when a client exceeds the request budget of a rate-limited endpoint.

    HTTP Status: 429 Too Many Requests
    """

    status_code = 429
    default_message = "Too many requests. Please try again later."


# ============================================================================
# Infrastructure Exceptions
# ============================================================================


class DatabaseError(AppException):
    """
    Raised when a storage operation fails.

    WHY: Wrapping driver errors hides SQL, table names and connection details
    from clients. The original error is chained and logged.

    HTTP Status: 500 Internal Server Error
    """

    status_code = 500
    default_message = "A database error occurred"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["details"] = None
        return data


class AuditWriteError(DatabaseError):
    """Raised when an audit entry cannot be persisted."""

    default_message = "An unexpected error occurred"


class AuditLogImmutableError(AppException):
    """
    Raised when code attempts to update or delete an audit entry.

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    default_message = "Audit log entries cannot be modified or deleted"
