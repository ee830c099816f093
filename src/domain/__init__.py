"""
Domain layer - Pure business logic with zero framework imports.

This package contains the identity verification and access-control logic:
verification code lifecycle, credential codec, and result ownership checks.
It defines its own port interfaces for infrastructure abstraction.
"""

from .accounts import AccountService
from .exceptions import ErrorKind, IdentityError
from .models import Admin, AssessmentResult, PasswordReset, PendingRegistration, RecordState, User
from .ports import Clock, EmailSender, IdentitySession, IdentityStore, Purpose, VerifyResult
from .results import ResultService, authorize_result_access
from .verification import Confirmation, VerificationService

__all__ = [
    "AccountService",
    "Admin",
    "AssessmentResult",
    "Clock",
    "Confirmation",
    "EmailSender",
    "ErrorKind",
    "IdentityError",
    "IdentitySession",
    "IdentityStore",
    "PasswordReset",
    "PendingRegistration",
    "Purpose",
    "RecordState",
    "ResultService",
    "User",
    "VerificationService",
    "VerifyResult",
    "authorize_result_access",
]
