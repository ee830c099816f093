"""
Domain exceptions - Semantic error types for identity and access control.

Each exception carries an ErrorKind so the API layer can map business rule
violations to responses without knowing individual exception classes.
Verification code checks do not raise; they return VerifyResult values.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Failure classification shared by every identity operation."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAUTHORIZED_CODE = "unauthorized_code"
    INVALID_CREDENTIALS = "invalid_credentials"
    FORBIDDEN = "forbidden"
    DEPENDENCY_FAILURE = "dependency_failure"
    INTERNAL = "internal"


class IdentityError(Exception):
    """Base class for identity domain errors."""

    kind: ErrorKind = ErrorKind.INTERNAL
    message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class UsernameTaken(IdentityError):
    """Username already belongs to a registered user."""

    kind = ErrorKind.CONFLICT
    message = "Username already exists"


class EmailTaken(IdentityError):
    """Email already belongs to a registered user."""

    kind = ErrorKind.CONFLICT
    message = "Email already exists"


class VerificationInProgress(IdentityError):
    """An active verification record already exists for the email."""

    kind = ErrorKind.CONFLICT
    message = "Email verification already in progress. Please check your email or try again later."


class NoPendingRegistration(IdentityError):
    kind = ErrorKind.NOT_FOUND
    message = "No pending registration found for this email"


class UserNotFound(IdentityError):
    kind = ErrorKind.NOT_FOUND
    message = "User not found"


class SamePassword(IdentityError):
    """New password equals the current one."""

    kind = ErrorKind.VALIDATION
    message = "Use a different password"


class InvalidCredentials(IdentityError):
    """Login failed. Deliberately silent about which part was wrong."""

    kind = ErrorKind.INVALID_CREDENTIALS
    message = "Invalid email or password"


class AdminInactive(IdentityError):
    kind = ErrorKind.FORBIDDEN
    message = "This admin account has been deactivated"


class InvalidSessionId(IdentityError):
    kind = ErrorKind.VALIDATION
    message = "Invalid session ID format"


class InvalidOwnership(IdentityError):
    """A result must be owned by exactly one of user id or guest token."""

    kind = ErrorKind.VALIDATION
    message = "Exactly one of user_id or guest_token is required"


class ResultNotFound(IdentityError):
    kind = ErrorKind.NOT_FOUND
    message = "No test results found for this session"


class ResultAccessDenied(IdentityError):
    """Caller may not read the result. Reveals privacy class, never the owner."""

    kind = ErrorKind.FORBIDDEN
    message = "You don't have permission to view these test results"

    def __init__(self, is_private: bool) -> None:
        super().__init__()
        self.is_private = is_private


class MalformedResult(IdentityError):
    """Stored result has neither owner field set."""

    kind = ErrorKind.INTERNAL
    message = "Result ownership is inconsistent"
