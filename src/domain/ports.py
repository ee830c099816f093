"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from contextlib import AbstractContextManager
from datetime import datetime
from enum import Enum
from typing import Any, Protocol
from uuid import UUID

from .models import Admin, AssessmentResult, PasswordReset, PendingRegistration, User


class VerifyResult(Enum):
    """
    Result of a verification code check.

    Used by confirm_code() and execute_reset() to indicate success or the
    specific failure. Every value except SUCCESS is a rejection.
    """

    SUCCESS = "success"
    INVALID_CODE = "invalid_code"
    EXPIRED = "expired"
    LOCKED = "locked"
    CONSUMED = "consumed"
    NOT_FOUND = "not_found"


class Purpose(str, Enum):
    """What a verification code was issued for."""

    REGISTER = "register"
    RESET = "reset"


class Clock(Protocol):
    """Port interface for the current time (timezone-aware UTC)."""

    def now(self) -> datetime: ...


class EmailSender(Protocol):
    """Port interface for outbound notifications. Callers treat failures as non-fatal."""

    def send_verification_code(self, email: str, code: str) -> None:
        """
        Send a registration verification code.

        Args:
            email: Recipient email address
            code: 6-digit verification code in plaintext
        """
        ...

    def send_password_reset_link(self, email: str, url: str) -> None:
        """Send a password reset link carrying the reset code."""
        ...

    def send_verification_success(self, email: str, username: str) -> None:
        """Confirm that a registration completed."""
        ...

    def send_account_deletion_notice(self, email: str, username: str) -> None:
        """Notify that an account is being deleted."""
        ...


class IdentitySession(Protocol):
    """
    Port interface for store access inside one transaction.

    Lookups by email lock the matching row until the unit of work ends, so
    lookup-check-mutate sequences on a single record are serialized.
    """

    # Users

    def find_user_by_email(self, email: str) -> User | None: ...

    def find_user_by_id(self, user_id: int) -> User | None: ...

    def username_exists(self, username: str, exclude_user_id: int | None = None) -> bool: ...

    def email_exists(self, email: str, exclude_user_id: int | None = None) -> bool: ...

    def create_user(self, username: str, email: str, password: str) -> User:
        """
        Insert a user.

        Raises:
            UsernameTaken: username is already used
            EmailTaken: email is already used
        """
        ...

    def update_user(self, user: User) -> None: ...

    def update_user_password(self, user_id: int, password: str) -> None: ...

    def delete_user(self, user_id: int) -> None:
        """Delete a user together with the user's assessment results."""
        ...

    # Admins

    def find_admin_by_email(self, email: str) -> Admin | None: ...

    def update_admin_password(self, admin_id: int, password: str) -> None: ...

    # Pending registrations

    def purge_expired_registrations(self, now: datetime) -> int:
        """Delete pending registrations with expires_at <= now. Returns row count."""
        ...

    def find_pending_registration(self, email: str) -> PendingRegistration | None: ...

    def insert_pending_registration(self, record: PendingRegistration) -> bool:
        """Insert a record. Returns False if one already exists for the email."""
        ...

    def save_pending_registration(self, record: PendingRegistration) -> None: ...

    def delete_pending_registration(self, email: str) -> None: ...

    # Password resets

    def purge_expired_password_resets(self, now: datetime) -> int:
        """Delete password resets that expired (expires_at <= now) or were consumed."""
        ...

    def find_password_reset(self, email: str) -> PasswordReset | None:
        """Return the unconsumed reset for the email, else the newest consumed one."""
        ...

    def insert_password_reset(self, record: PasswordReset) -> bool:
        """Insert a record. Returns False if an unconsumed one already exists."""
        ...

    def save_password_reset(self, record: PasswordReset) -> None: ...

    # Assessment results

    def find_result(self, session_id: UUID) -> AssessmentResult | None: ...

    def insert_result(
        self,
        session_id: UUID,
        user_id: int | None,
        guest_token: UUID | None,
        payload: dict[str, Any],
    ) -> AssessmentResult: ...


class IdentityStore(Protocol):
    """Port interface for the relational store."""

    def unit_of_work(self) -> AbstractContextManager[IdentitySession]:
        """
        Open a transaction.

        Commits when the block exits normally (including when a service
        returns a rejection result), rolls back when it raises.
        """
        ...
