"""
Result access - Ownership-scoped authorization for stored assessment results.

A result belongs to exactly one principal: a registered user or a guest
token. Only that principal may read it.

- User-owned: the caller's user id must equal the owner id. A guest token
  is ignored.
- Guest-owned: the caller's guest token must parse as a UUID and equal the
  owner token. A user id is ignored.
- Neither owner set: denied, reported as an internal consistency error.

The caller identity is whatever the client sends; there is no signed session.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from .exceptions import (
    InvalidOwnership,
    InvalidSessionId,
    MalformedResult,
    ResultAccessDenied,
    ResultNotFound,
)
from .models import AssessmentResult
from .ports import IdentityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    is_private: bool
    consistent: bool = True


def parse_guest_token(token: str | None) -> UUID | None:
    """Return the token as a UUID, or None if absent or malformed."""
    if not token:
        return None
    try:
        return UUID(token)
    except (ValueError, TypeError, AttributeError):
        return None


def authorize_result_access(
    result: AssessmentResult,
    caller_user_id: int | None = None,
    caller_guest_token: str | None = None,
) -> AccessDecision:
    """Decide whether the caller may read ``result``. Pure function, no side effects."""
    if result.user_id is not None and result.guest_token is not None:
        return AccessDecision(allowed=False, is_private=True, consistent=False)

    if result.user_id is not None:
        allowed = caller_user_id is not None and caller_user_id == result.user_id
        return AccessDecision(allowed=allowed, is_private=True)

    if result.guest_token is not None:
        token = parse_guest_token(caller_guest_token)
        allowed = token is not None and token == result.guest_token
        return AccessDecision(allowed=allowed, is_private=False)

    return AccessDecision(allowed=False, is_private=False, consistent=False)


@dataclass
class ResultService:
    """Reads and records assessment results on behalf of callers."""

    store: IdentityStore

    def get_result(
        self,
        session_id: str,
        caller_user_id: int | None = None,
        caller_guest_token: str | None = None,
    ) -> AssessmentResult:
        """
        Fetch a result the caller owns.

        Raises:
            InvalidSessionId: session_id is not a UUID
            ResultNotFound: no result for this session
            ResultAccessDenied: caller is not the owner
            MalformedResult: stored ownership is inconsistent
        """
        try:
            session_uuid = UUID(session_id)
        except (ValueError, TypeError, AttributeError):
            raise InvalidSessionId() from None

        with self.store.unit_of_work() as session:
            result = session.find_result(session_uuid)
        if result is None:
            raise ResultNotFound()

        decision = authorize_result_access(result, caller_user_id, caller_guest_token)
        if not decision.consistent:
            logger.error("Invalid result state: ownership fields inconsistent for session %s", session_id)
            raise MalformedResult()
        if not decision.allowed:
            logger.warning(
                "Unauthorized access attempt to session %s (user result: %s, user id given: %s, guest token given: %s)",
                session_id,
                decision.is_private,
                caller_user_id is not None,
                caller_guest_token is not None,
            )
            raise ResultAccessDenied(is_private=decision.is_private)

        return result

    def record_result(
        self,
        payload: dict[str, Any],
        user_id: int | None = None,
        guest_token: UUID | None = None,
    ) -> AssessmentResult:
        """
        Store a result produced by the scoring collaborator.

        Raises:
            InvalidOwnership: both or neither of user_id / guest_token given
        """
        if (user_id is None) == (guest_token is None):
            raise InvalidOwnership()
        with self.store.unit_of_work() as session:
            return session.insert_result(uuid.uuid4(), user_id, guest_token, payload)
