"""
API v1 routes.

Defines REST endpoints for account registration, verification codes,
password reset, login, and assessment result access. Domain failures are
raised as IdentityError and rendered by the handlers in src/api/errors.py.
"""

from fastapi import APIRouter, Depends, Query, status

from src.api.dependencies import (
    get_account_service,
    get_result_service,
    get_verification_service,
)
from src.api.errors import CodeRejected
from src.api.models import (
    AdminLoginResponse,
    AdminResponse,
    ConfirmRequest,
    ConfirmResponse,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ProfileResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    ResultResponse,
    SendCodeRequest,
    UpdateProfileRequest,
    UserResponse,
)
from src.domain.accounts import AccountService
from src.domain.ports import Purpose, VerifyResult
from src.domain.results import ResultService
from src.domain.verification import VerificationService

router = APIRouter(tags=["v1"])

_CONFLICT = {409: {"model": ErrorResponse, "description": "Username, email or verification conflict"}}
_CODE_ERRORS = {
    400: {"model": ErrorResponse, "description": "Code invalid, expired, locked or already used"},
    404: {"model": ErrorResponse, "description": "No matching verification record"},
}


@router.post(
    "/auth/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_CONFLICT, 422: {"description": "Validation error"}},
    summary="Register a new user",
    description="Submit username, email and password to begin registration. "
    "A 6-digit verification code will be sent to the provided email.",
)
async def register(
    request_data: RegisterRequest,
    service: VerificationService = Depends(get_verification_service),
) -> RegisterResponse:
    """
    Register a new user and send verification code.

    - **username**: Desired username
    - **email**: Valid email address to register
    - **password**: Password (minimum 8 characters)
    """
    email = service.start_registration(
        request_data.username, request_data.email, request_data.password
    )
    return RegisterResponse(
        message="Registration successful! Please check your email for verification code.",
        email=email,
        expires_in_seconds=int(service.code_ttl.total_seconds()),
    )


@router.post(
    "/verify/send-code",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse, "description": "No pending registration"}, **_CONFLICT},
    summary="Resend a verification code or request a password reset",
)
async def send_code(
    request_data: SendCodeRequest,
    service: VerificationService = Depends(get_verification_service),
) -> MessageResponse:
    """
    With purpose **register**, replace the code of a pending registration.
    With purpose **reset**, email a reset link if the address is registered.
    The reset response is identical whether or not the email exists.
    """
    service.send_code(request_data.email, request_data.purpose, request_data.reset_base_url)
    if request_data.purpose is Purpose.RESET:
        return MessageResponse(message="If the email exists, a reset link was sent")
    return MessageResponse(message="Verification code sent")


@router.post(
    "/verify/confirm",
    response_model=ConfirmResponse,
    responses={**_CODE_ERRORS, **_CONFLICT},
    summary="Confirm a verification code",
)
async def confirm(
    request_data: ConfirmRequest,
    service: VerificationService = Depends(get_verification_service),
) -> ConfirmResponse:
    """
    Confirm a code. For registration this creates the account. For a
    password reset it only checks the code; use /password/reset to finish.
    """
    confirmation = service.confirm_code(request_data.email, request_data.code, request_data.purpose)
    if not confirmation.ok:
        raise CodeRejected(confirmation.result, request_data.purpose)

    if confirmation.user is None:
        return ConfirmResponse(message="Code verified. You may reset your password.")
    return ConfirmResponse(
        message="Email verified successfully! Welcome to CourseFinder!",
        user=UserResponse.model_validate(confirmation.user),
    )


@router.post(
    "/password/reset",
    response_model=MessageResponse,
    responses=_CODE_ERRORS,
    summary="Set a new password using a reset code",
)
async def reset_password(
    request_data: ResetPasswordRequest,
    service: VerificationService = Depends(get_verification_service),
) -> MessageResponse:
    result = service.execute_reset(request_data.email, request_data.token, request_data.new_password)
    if result is not VerifyResult.SUCCESS:
        raise CodeRejected(result, Purpose.RESET)
    return MessageResponse(message="Password updated successfully")


@router.post(
    "/auth/login",
    response_model=LoginResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid email or password"}},
    summary="Log in with email and password",
)
async def login(
    request_data: LoginRequest,
    service: AccountService = Depends(get_account_service),
) -> LoginResponse:
    user = service.login(request_data.email, request_data.password)
    return LoginResponse(message="Login successful", user=UserResponse.model_validate(user))


@router.post(
    "/admin/login",
    response_model=AdminLoginResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid email or password"},
        403: {"model": ErrorResponse, "description": "Admin account deactivated"},
    },
    summary="Log in as an admin",
)
async def admin_login(
    request_data: LoginRequest,
    service: AccountService = Depends(get_account_service),
) -> AdminLoginResponse:
    admin = service.admin_login(request_data.email, request_data.password)
    return AdminLoginResponse(
        message="Admin login successful", admin=AdminResponse.model_validate(admin)
    )


@router.put(
    "/auth/profile",
    response_model=ProfileResponse,
    responses={404: {"model": ErrorResponse, "description": "User not found"}, **_CONFLICT},
    summary="Update profile fields",
)
async def update_profile(
    request_data: UpdateProfileRequest,
    service: AccountService = Depends(get_account_service),
) -> ProfileResponse:
    user = service.update_profile(
        request_data.id,
        request_data.username,
        request_data.email,
        new_password=request_data.new_password,
        age=request_data.age,
        gender=request_data.gender,
    )
    return ProfileResponse(message="Profile updated successfully", user=UserResponse.model_validate(user))


@router.delete(
    "/auth/account/{user_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse, "description": "User not found"}},
    summary="Delete an account and its assessment results",
)
async def delete_account(
    user_id: int,
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    service.delete_account(user_id)
    return MessageResponse(message="Account deleted successfully")


@router.get(
    "/results/{session_id}",
    response_model=ResultResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Malformed session id"},
        403: {"model": ErrorResponse, "description": "Caller does not own the result"},
        404: {"model": ErrorResponse, "description": "No result for this session"},
    },
    summary="Read an assessment result",
)
async def get_result(
    session_id: str,
    user_id: int | None = Query(default=None, description="Caller's user id"),
    guest_token: str | None = Query(default=None, description="Caller's guest token"),
    service: ResultService = Depends(get_result_service),
) -> ResultResponse:
    """
    Return a result to its owner. User-owned results need the owner's
    **user_id**; guest-owned results need the matching **guest_token**.
    """
    result = service.get_result(session_id, user_id, guest_token)
    return ResultResponse(
        session_id=result.session_id,
        owner="user" if result.is_private else "guest",
        result=result.payload,
        created_at=result.created_at,
    )
