"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for expiry tests
- In-memory store and mocked email sender
- Domain services wired against them
"""

from unittest.mock import Mock

import pytest

from src.adapters.repository.memory import InMemoryIdentityStore
from src.domain.accounts import AccountService
from src.domain.results import ResultService
from src.domain.verification import VerificationService
from tests.support import TEST_BCRYPT_COST, FrozenClock


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store() -> InMemoryIdentityStore:
    return InMemoryIdentityStore()


@pytest.fixture
def sender() -> Mock:
    return Mock()


@pytest.fixture
def verification_service(
    store: InMemoryIdentityStore, sender: Mock, clock: FrozenClock
) -> VerificationService:
    return VerificationService(
        store=store,
        email_sender=sender,
        clock=clock,
        bcrypt_cost=TEST_BCRYPT_COST,
        reset_base_url="https://app.example.com/reset-password",
    )


@pytest.fixture
def account_service(store: InMemoryIdentityStore, sender: Mock) -> AccountService:
    return AccountService(store=store, email_sender=sender, bcrypt_cost=TEST_BCRYPT_COST)


@pytest.fixture
def result_service(store: InMemoryIdentityStore) -> ResultService:
    return ResultService(store=store)
