"""
Domain records - Plain dataclasses mirrored by the persistence adapters.

Adapters return copies of these records; mutating one has no effect until
it is written back through the session that loaded it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


class RecordState(str, Enum):
    """
    Lifecycle of a verification record (pending registration or password reset).

    State Transitions:
    - ACTIVE -> CONSUMED (correct code, record used)
    - ACTIVE -> EXPIRED  (evaluated lazily: now > expires_at)
    - ACTIVE -> LOCKED   (attempt budget exhausted)

    EXPIRED and LOCKED are terminal for the issued code. Issuing a new code
    (resend) puts the same record back in ACTIVE.
    """

    ACTIVE = "ACTIVE"
    CONSUMED = "CONSUMED"
    EXPIRED = "EXPIRED"
    LOCKED = "LOCKED"


@dataclass
class User:
    id: int
    username: str
    email: str
    password: str  # stored credential, hashed or legacy plaintext
    age: int | None = None
    gender: str | None = None
    created_at: datetime | None = None


@dataclass
class Admin:
    id: int
    username: str
    email: str
    password: str
    full_name: str | None = None
    is_active: bool = True


@dataclass
class VerificationRecord:
    """Fields shared by pending registrations and password resets."""

    email: str
    code_hash: str
    expires_at: datetime
    attempts: int = 0
    consumed: bool = False
    id: int | None = None
    created_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def state(self, now: datetime, max_attempts: int) -> RecordState:
        """Evaluate the record state at ``now``. Checks run in a fixed order."""
        if self.consumed:
            return RecordState.CONSUMED
        if self.is_expired(now):
            return RecordState.EXPIRED
        if self.attempts >= max_attempts:
            return RecordState.LOCKED
        return RecordState.ACTIVE

    def reissue(self, code_hash: str, expires_at: datetime) -> None:
        """Replace the code. The previous code stops matching immediately."""
        self.code_hash = code_hash
        self.expires_at = expires_at
        self.attempts = 0


@dataclass
class PendingRegistration(VerificationRecord):
    username: str = ""
    password_hash: str = ""


@dataclass
class PasswordReset(VerificationRecord):
    user_id: int = 0


@dataclass
class AssessmentResult:
    """
    Stored assessment result. Only the ownership facet matters here.

    Exactly one of user_id / guest_token is set. The payload is opaque data
    produced by the scoring collaborator.
    """

    session_id: UUID
    user_id: int | None = None
    guest_token: UUID | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    id: int | None = None
    created_at: datetime | None = None

    @property
    def is_private(self) -> bool:
        return self.user_id is not None
