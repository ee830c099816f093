"""
In-memory repository adapter - Implements IdentityStore protocol.

Holds all tables in dictionaries guarded by one re-entrant lock. A unit of
work owns the lock for its whole duration, which serializes units of work
the way row locks serialize them in PostgreSQL. An exception inside a unit
of work restores the snapshot taken when it began.

Records handed to callers are copies; changes persist only through the
session's save/update methods.
"""

import copy
import itertools
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from src.domain.exceptions import EmailTaken, UsernameTaken
from src.domain.models import Admin, AssessmentResult, PasswordReset, PendingRegistration, User


class _Tables:
    def __init__(self) -> None:
        self.users: dict[int, User] = {}
        self.admins: dict[int, Admin] = {}
        self.pending: dict[str, PendingRegistration] = {}
        self.resets: dict[int, PasswordReset] = {}
        self.results: dict[UUID, AssessmentResult] = {}


class InMemoryIdentitySession:
    """Implements IdentitySession protocol over InMemoryIdentityStore tables."""

    def __init__(self, store: "InMemoryIdentityStore") -> None:
        self._store = store
        self._t = store._tables

    # Users

    def find_user_by_email(self, email: str) -> User | None:
        for user in self._t.users.values():
            if user.email == email:
                return replace(user)
        return None

    def find_user_by_id(self, user_id: int) -> User | None:
        user = self._t.users.get(user_id)
        return replace(user) if user else None

    def username_exists(self, username: str, exclude_user_id: int | None = None) -> bool:
        return any(
            u.username == username and u.id != exclude_user_id for u in self._t.users.values()
        )

    def email_exists(self, email: str, exclude_user_id: int | None = None) -> bool:
        return any(u.email == email and u.id != exclude_user_id for u in self._t.users.values())

    def create_user(self, username: str, email: str, password: str) -> User:
        self._check_unique(username, email, exclude_user_id=None)
        user = User(
            id=self._store._next_id(),
            username=username,
            email=email,
            password=password,
            created_at=datetime.now(timezone.utc),
        )
        self._t.users[user.id] = user
        return replace(user)

    def update_user(self, user: User) -> None:
        self._check_unique(user.username, user.email, exclude_user_id=user.id)
        if user.id in self._t.users:
            self._t.users[user.id] = replace(user)

    def update_user_password(self, user_id: int, password: str) -> None:
        if user_id in self._t.users:
            self._t.users[user_id].password = password

    def delete_user(self, user_id: int) -> None:
        self._t.users.pop(user_id, None)
        self._t.results = {k: r for k, r in self._t.results.items() if r.user_id != user_id}
        self._t.resets = {k: r for k, r in self._t.resets.items() if r.user_id != user_id}

    def _check_unique(self, username: str, email: str, exclude_user_id: int | None) -> None:
        if self.username_exists(username, exclude_user_id):
            raise UsernameTaken()
        if self.email_exists(email, exclude_user_id):
            raise EmailTaken()

    # Admins

    def find_admin_by_email(self, email: str) -> Admin | None:
        for admin in self._t.admins.values():
            if admin.email == email:
                return replace(admin)
        return None

    def update_admin_password(self, admin_id: int, password: str) -> None:
        if admin_id in self._t.admins:
            self._t.admins[admin_id].password = password

    # Pending registrations

    def purge_expired_registrations(self, now: datetime) -> int:
        expired = [email for email, r in self._t.pending.items() if r.expires_at <= now]
        for email in expired:
            del self._t.pending[email]
        return len(expired)

    def find_pending_registration(self, email: str) -> PendingRegistration | None:
        record = self._t.pending.get(email)
        return replace(record) if record else None

    def insert_pending_registration(self, record: PendingRegistration) -> bool:
        if record.email in self._t.pending:
            return False
        self._t.pending[record.email] = replace(
            record, id=self._store._next_id(), created_at=datetime.now(timezone.utc)
        )
        return True

    def save_pending_registration(self, record: PendingRegistration) -> None:
        if record.email in self._t.pending:
            self._t.pending[record.email] = replace(record)

    def delete_pending_registration(self, email: str) -> None:
        self._t.pending.pop(email, None)

    # Password resets

    def purge_expired_password_resets(self, now: datetime) -> int:
        stale = [k for k, r in self._t.resets.items() if r.expires_at <= now or r.consumed]
        for key in stale:
            del self._t.resets[key]
        return len(stale)

    def find_password_reset(self, email: str) -> PasswordReset | None:
        candidates = [r for r in self._t.resets.values() if r.email == email]
        if not candidates:
            return None
        # Unconsumed first, then newest
        candidates.sort(key=lambda r: (r.consumed, -r.id))
        return replace(candidates[0])

    def insert_password_reset(self, record: PasswordReset) -> bool:
        if any(r.email == record.email and not r.consumed for r in self._t.resets.values()):
            return False
        stored = replace(record, id=self._store._next_id(), created_at=datetime.now(timezone.utc))
        self._t.resets[stored.id] = stored
        return True

    def save_password_reset(self, record: PasswordReset) -> None:
        if record.id in self._t.resets:
            self._t.resets[record.id] = replace(record)

    # Assessment results

    def find_result(self, session_id: UUID) -> AssessmentResult | None:
        result = self._t.results.get(session_id)
        return copy.deepcopy(result) if result else None

    def insert_result(
        self,
        session_id: UUID,
        user_id: int | None,
        guest_token: UUID | None,
        payload: dict[str, Any],
    ) -> AssessmentResult:
        result = AssessmentResult(
            session_id=session_id,
            user_id=user_id,
            guest_token=guest_token,
            payload=copy.deepcopy(payload),
            id=self._store._next_id(),
            created_at=datetime.now(timezone.utc),
        )
        self._t.results[session_id] = result
        return copy.deepcopy(result)


class InMemoryIdentityStore:
    """Implements IdentityStore protocol in process memory."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tables = _Tables()
        self._ids = itertools.count(1)

    def _next_id(self) -> int:
        return next(self._ids)

    @contextmanager
    def unit_of_work(self) -> Iterator[InMemoryIdentitySession]:
        with self._lock:
            snapshot = copy.deepcopy(self._tables)
            try:
                yield InMemoryIdentitySession(self)
            except BaseException:
                self._tables = snapshot
                raise

    def add_admin(
        self, username: str, email: str, password: str, full_name: str | None = None, is_active: bool = True
    ) -> Admin:
        """Seed an admin account. Admins are provisioned out of band."""
        with self._lock:
            admin = Admin(
                id=self._next_id(),
                username=username,
                email=email,
                password=password,
                full_name=full_name,
                is_active=is_active,
            )
            self._tables.admins[admin.id] = admin
            return replace(admin)
