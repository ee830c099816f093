"""
Shared fixtures for adversarial tests.

Provides common test infrastructure for race condition and brute force tests.
"""

from collections.abc import Generator
from unittest.mock import Mock

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresIdentityStore
from src.domain.verification import VerificationService
from tests.support import TEST_BCRYPT_COST, FrozenClock, open_database_pool, truncate_tables

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for adversarial tests."""
    yield from open_database_pool()


@pytest.fixture
def pg_store(pool: ConnectionPool) -> PostgresIdentityStore:
    """Create store instance for each test."""
    return PostgresIdentityStore(pool)


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Empty all tables before each test."""
    truncate_tables(pool)
    yield


@pytest.fixture
def pg_service(pg_store: PostgresIdentityStore, sender: Mock, clock: FrozenClock) -> VerificationService:
    return VerificationService(
        store=pg_store, email_sender=sender, clock=clock, bcrypt_cost=TEST_BCRYPT_COST
    )
