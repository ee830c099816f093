"""
Test helpers shared across suites.

- FrozenClock: a Clock whose time moves only when a test advances it
- Helpers to read codes out of a mocked email sender
- PostgreSQL pool setup for database-backed suites
"""

from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from psycopg import OperationalError
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings

# Lowest bcrypt cost keeps the suite fast
TEST_BCRYPT_COST = 4


class FrozenClock:
    """Implements Clock protocol. Time moves only when a test advances it."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


def last_code(sender: Mock) -> str:
    """Code passed to the most recent send_verification_code call."""
    return sender.send_verification_code.call_args[0][1]


def last_reset_token(sender: Mock) -> str:
    """Token embedded in the most recent password reset link."""
    url = sender.send_password_reset_link.call_args[0][1]
    return url.rsplit("token=", 1)[1]


def open_database_pool() -> Generator[ConnectionPool, None, None]:
    """Yield a migrated connection pool, or skip when PostgreSQL is not reachable."""
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=False)
    try:
        pool.open(wait=True, timeout=5)
    except (PoolTimeout, OperationalError):
        pool.close()
        pytest.skip("PostgreSQL is not reachable")
    run_migrations(pool)
    yield pool
    pool.close()


def truncate_tables(pool: ConnectionPool) -> None:
    with pool.connection() as conn:
        conn.execute(
            "TRUNCATE assessment_results, password_resets, pending_registrations, users, admins "
            "RESTART IDENTITY CASCADE"
        )
        conn.commit()
