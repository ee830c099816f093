"""
Error handlers - Map domain failures to HTTP responses.

Every IdentityError carries an ErrorKind; the status code is chosen from
the kind alone. Rejected verification codes are converted to CodeRejected
by the routes so they flow through the same handler.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.domain.exceptions import ErrorKind, IdentityError, ResultAccessDenied
from src.domain.ports import Purpose, VerifyResult

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.UNAUTHORIZED_CODE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_CODE_MESSAGES = {
    VerifyResult.INVALID_CODE: "Invalid code",
    VerifyResult.EXPIRED: "Verification code expired. Please request a new one.",
    VerifyResult.LOCKED: "Too many attempts. Please request a new code",
    VerifyResult.CONSUMED: "Code already used",
}

_NOT_FOUND_MESSAGES = {
    Purpose.REGISTER: "No pending registration found for this email",
    Purpose.RESET: "No valid reset request found",
}


class CodeRejected(IdentityError):
    """A verification code check returned something other than SUCCESS."""

    def __init__(self, result: VerifyResult, purpose: Purpose) -> None:
        if result is VerifyResult.NOT_FOUND:
            self.kind = ErrorKind.NOT_FOUND
            message = _NOT_FOUND_MESSAGES[purpose]
        else:
            self.kind = ErrorKind.UNAUTHORIZED_CODE
            message = _CODE_MESSAGES[result]
        super().__init__(message)
        self.result = result


async def identity_error_handler(request: Request, exc: IdentityError) -> JSONResponse:
    status_code = STATUS_BY_KIND[exc.kind]
    content: dict = {"detail": exc.message, "kind": exc.kind.value}
    if isinstance(exc, ResultAccessDenied):
        content["is_private"] = exc.is_private
    if isinstance(exc, CodeRejected):
        content["reason"] = exc.result.value

    if exc.kind is ErrorKind.INTERNAL:
        logger.error(f"Internal error on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content=content)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Store and connectivity failures. Details stay in the log."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "kind": ErrorKind.INTERNAL.value},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(IdentityError, identity_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
