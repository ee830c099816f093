"""
PostgreSQL repository adapter - Implements IdentityStore protocol.

This module provides the PostgreSQL implementation of the domain's
store port using psycopg3 with raw SQL.

Concurrency Design:
-------------------
1. **One transaction per unit of work**: every domain operation runs inside
   ``conn.transaction()``. Rejections that the domain returns as values
   (e.g. INVALID_CODE after an attempt increment) still commit.

2. **Row locks**: lookups of verification records and users by email use
   SELECT ... FOR UPDATE. Two concurrent confirmations of the same code
   serialize on the row; the second one sees the first one's outcome.

3. **Unique constraints**: pending_registrations.email is UNIQUE and
   password_resets.email is unique among unconsumed rows. Inserts use
   ON CONFLICT DO NOTHING, so the losing side of a race gets rowcount 0
   instead of an exception.

4. **Clock**: expiry timestamps come from the domain's injected clock and
   are compared in SQL as parameters, never against NOW().
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from src.domain.exceptions import EmailTaken, UsernameTaken
from src.domain.models import Admin, AssessmentResult, PasswordReset, PendingRegistration, User

logger = logging.getLogger(__name__)

_USER_COLUMNS = "id, username, email, password, age, gender, created_at"
_PENDING_COLUMNS = (
    "id, username, email, password_hash, code_hash, expires_at, attempts, consumed, created_at"
)
_RESET_COLUMNS = "id, user_id, email, code_hash, expires_at, attempts, consumed, created_at"
_RESULT_COLUMNS = "id, session_id, user_id, guest_token, payload, created_at"


class PostgresIdentitySession:
    """
    Implements IdentitySession protocol on one open psycopg connection.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    def _fetchone(self, sql: str, params: tuple) -> dict[str, Any] | None:
        with self._conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            return cursor.fetchone()

    def _execute(self, sql: str, params: tuple) -> int:
        with self._conn.cursor() as cursor:
            cursor.execute(sql, params)
            return cursor.rowcount

    # Users

    def find_user_by_email(self, email: str) -> User | None:
        row = self._fetchone(
            f"SELECT {_USER_COLUMNS} FROM users WHERE email = %s FOR UPDATE", (email,)
        )
        return User(**row) if row else None

    def find_user_by_id(self, user_id: int) -> User | None:
        row = self._fetchone(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s FOR UPDATE", (user_id,)
        )
        return User(**row) if row else None

    def username_exists(self, username: str, exclude_user_id: int | None = None) -> bool:
        row = self._fetchone(
            "SELECT 1 AS found FROM users WHERE username = %s AND id IS DISTINCT FROM %s",
            (username, exclude_user_id),
        )
        return row is not None

    def email_exists(self, email: str, exclude_user_id: int | None = None) -> bool:
        row = self._fetchone(
            "SELECT 1 AS found FROM users WHERE email = %s AND id IS DISTINCT FROM %s",
            (email, exclude_user_id),
        )
        return row is not None

    def create_user(self, username: str, email: str, password: str) -> User:
        sql = f"""
            INSERT INTO users (username, email, password)
            VALUES (%s, %s, %s)
            RETURNING {_USER_COLUMNS}
        """
        try:
            row = self._fetchone(sql, (username, email, password))
        except psycopg.errors.UniqueViolation as e:
            raise _uniqueness_error(e) from e
        return User(**row)

    def update_user(self, user: User) -> None:
        sql = """
            UPDATE users
            SET username = %s, email = %s, password = %s, age = %s, gender = %s
            WHERE id = %s
        """
        try:
            self._execute(
                sql, (user.username, user.email, user.password, user.age, user.gender, user.id)
            )
        except psycopg.errors.UniqueViolation as e:
            raise _uniqueness_error(e) from e

    def update_user_password(self, user_id: int, password: str) -> None:
        self._execute("UPDATE users SET password = %s WHERE id = %s", (password, user_id))

    def delete_user(self, user_id: int) -> None:
        # assessment_results and password_resets cascade via foreign keys
        self._execute("DELETE FROM users WHERE id = %s", (user_id,))

    # Admins

    def find_admin_by_email(self, email: str) -> Admin | None:
        row = self._fetchone(
            """
            SELECT id, username, email, password, full_name, is_active
            FROM admins WHERE email = %s FOR UPDATE
            """,
            (email,),
        )
        return Admin(**row) if row else None

    def update_admin_password(self, admin_id: int, password: str) -> None:
        self._execute("UPDATE admins SET password = %s WHERE id = %s", (password, admin_id))

    # Pending registrations

    def purge_expired_registrations(self, now: datetime) -> int:
        return self._execute("DELETE FROM pending_registrations WHERE expires_at <= %s", (now,))

    def find_pending_registration(self, email: str) -> PendingRegistration | None:
        row = self._fetchone(
            f"SELECT {_PENDING_COLUMNS} FROM pending_registrations WHERE email = %s FOR UPDATE",
            (email,),
        )
        return PendingRegistration(**row) if row else None

    def insert_pending_registration(self, record: PendingRegistration) -> bool:
        sql = """
            INSERT INTO pending_registrations
                (username, email, password_hash, code_hash, expires_at, attempts, consumed)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (email) DO NOTHING
        """
        rowcount = self._execute(
            sql,
            (
                record.username,
                record.email,
                record.password_hash,
                record.code_hash,
                record.expires_at,
                record.attempts,
                record.consumed,
            ),
        )
        return rowcount == 1

    def save_pending_registration(self, record: PendingRegistration) -> None:
        sql = """
            UPDATE pending_registrations
            SET code_hash = %s, expires_at = %s, attempts = %s, consumed = %s
            WHERE email = %s
        """
        self._execute(
            sql, (record.code_hash, record.expires_at, record.attempts, record.consumed, record.email)
        )

    def delete_pending_registration(self, email: str) -> None:
        self._execute("DELETE FROM pending_registrations WHERE email = %s", (email,))

    # Password resets

    def purge_expired_password_resets(self, now: datetime) -> int:
        return self._execute(
            "DELETE FROM password_resets WHERE expires_at <= %s OR consumed", (now,)
        )

    def find_password_reset(self, email: str) -> PasswordReset | None:
        sql = f"""
            SELECT {_RESET_COLUMNS}
            FROM password_resets
            WHERE email = %s
            ORDER BY consumed ASC, created_at DESC, id DESC
            LIMIT 1
            FOR UPDATE
        """
        row = self._fetchone(sql, (email,))
        return PasswordReset(**row) if row else None

    def insert_password_reset(self, record: PasswordReset) -> bool:
        sql = """
            INSERT INTO password_resets (user_id, email, code_hash, expires_at, attempts, consumed)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (email) WHERE NOT consumed DO NOTHING
        """
        rowcount = self._execute(
            sql,
            (
                record.user_id,
                record.email,
                record.code_hash,
                record.expires_at,
                record.attempts,
                record.consumed,
            ),
        )
        return rowcount == 1

    def save_password_reset(self, record: PasswordReset) -> None:
        sql = """
            UPDATE password_resets
            SET code_hash = %s, expires_at = %s, attempts = %s, consumed = %s
            WHERE id = %s
        """
        self._execute(
            sql, (record.code_hash, record.expires_at, record.attempts, record.consumed, record.id)
        )

    # Assessment results

    def find_result(self, session_id: UUID) -> AssessmentResult | None:
        row = self._fetchone(
            f"SELECT {_RESULT_COLUMNS} FROM assessment_results WHERE session_id = %s",
            (session_id,),
        )
        return AssessmentResult(**row) if row else None

    def insert_result(
        self,
        session_id: UUID,
        user_id: int | None,
        guest_token: UUID | None,
        payload: dict[str, Any],
    ) -> AssessmentResult:
        sql = f"""
            INSERT INTO assessment_results (session_id, user_id, guest_token, payload)
            VALUES (%s, %s, %s, %s)
            RETURNING {_RESULT_COLUMNS}
        """
        row = self._fetchone(sql, (session_id, user_id, guest_token, Jsonb(payload)))
        return AssessmentResult(**row)


class PostgresIdentityStore:
    """
    Implements IdentityStore protocol via psycopg3.

    Each unit of work borrows a pooled connection and wraps it in a single
    transaction.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    @contextmanager
    def unit_of_work(self) -> Iterator[PostgresIdentitySession]:
        with self._pool.connection() as conn, conn.transaction():
            yield PostgresIdentitySession(conn)


def _uniqueness_error(error: psycopg.errors.UniqueViolation) -> Exception:
    constraint = error.diag.constraint_name or ""
    if "username" in constraint:
        return UsernameTaken()
    return EmailTaken()


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
