"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from datetime import timedelta

from fastapi import Request
from psycopg_pool import ConnectionPool

from src.adapters.clock import SystemClock
from src.adapters.repository.postgres import PostgresIdentityStore
from src.adapters.smtp.console import ConsoleEmailSender
from src.config.settings import get_settings
from src.domain.accounts import AccountService
from src.domain.results import ResultService
from src.domain.verification import VerificationService

# Module-level singletons - both adapters are stateless
_email_sender = ConsoleEmailSender()
_clock = SystemClock()


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_store(request: Request) -> PostgresIdentityStore:
    """Create store with connection pool from app state."""
    return PostgresIdentityStore(get_pool(request))


def get_email_sender() -> ConsoleEmailSender:
    """Get console email sender (singleton)."""
    return _email_sender


def get_clock() -> SystemClock:
    return _clock


def get_verification_service(request: Request) -> VerificationService:
    """
    Create verification service with injected dependencies.

    Wires together the store, email sender and clock for the domain service.
    """
    settings = get_settings()
    return VerificationService(
        store=get_store(request),
        email_sender=get_email_sender(),
        clock=get_clock(),
        code_ttl=timedelta(seconds=settings.code_ttl_seconds),
        max_attempts=settings.max_attempts,
        bcrypt_cost=settings.bcrypt_cost,
        reset_base_url=settings.reset_base_url,
    )


def get_account_service(request: Request) -> AccountService:
    settings = get_settings()
    return AccountService(
        store=get_store(request),
        email_sender=get_email_sender(),
        bcrypt_cost=settings.bcrypt_cost,
    )


def get_result_service(request: Request) -> ResultService:
    return ResultService(store=get_store(request))
