"""
Shared fixtures for integration tests.

All tests here run against a real PostgreSQL database (via docker-compose)
and are skipped when it is not reachable.
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresIdentityStore
from tests.support import open_database_pool, truncate_tables


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create migrated connection pool for integration tests."""
    yield from open_database_pool()


@pytest.fixture
def pg_store(pool: ConnectionPool) -> PostgresIdentityStore:
    return PostgresIdentityStore(pool)


@pytest.fixture(autouse=True)
def clean_database(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    """Empty all tables before each database-backed test."""
    if "pool" in request.fixturenames:
        truncate_tables(request.getfixturevalue("pool"))
    yield
