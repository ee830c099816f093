"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from src.domain.ports import Purpose

# bcrypt only looks at the first 72 bytes of a password
_PASSWORD_MAX = 72
_CODE_FIELD = dict(min_length=6, max_length=6, pattern=r"^\d{6}$")


class RegisterRequest(BaseModel):
    """Request model for user registration."""

    username: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(
        ..., min_length=8, max_length=_PASSWORD_MAX, description="User password (min 8 characters)"
    )


class RegisterResponse(BaseModel):
    """Response model for a started registration."""

    message: str
    email: str
    requires_verification: bool = True
    expires_in_seconds: int


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=_PASSWORD_MAX)


class UserResponse(BaseModel):
    """Public view of a user. Never includes the credential."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    age: int | None = None
    gender: str | None = None
    created_at: datetime | None = None


class LoginResponse(BaseModel):
    message: str
    user: UserResponse


class AdminResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    full_name: str | None = None


class AdminLoginResponse(BaseModel):
    message: str
    admin: AdminResponse


class UpdateProfileRequest(BaseModel):
    id: int
    username: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    new_password: str | None = Field(default=None, max_length=_PASSWORD_MAX)
    age: int | None = Field(default=None, ge=0, le=150)
    gender: str | None = Field(default=None, max_length=20)


class ProfileResponse(BaseModel):
    message: str
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


class SendCodeRequest(BaseModel):
    """Request a new registration code or a password reset link."""

    email: EmailStr
    purpose: Purpose = Purpose.REGISTER
    reset_base_url: str | None = Field(default=None, max_length=500)


class ConfirmRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., description="6-digit verification code", **_CODE_FIELD)
    purpose: Purpose = Purpose.REGISTER


class ConfirmResponse(BaseModel):
    message: str
    user: UserResponse | None = None


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    token: str = Field(..., description="6-digit code from the reset link", **_CODE_FIELD)
    new_password: str = Field(..., min_length=8, max_length=_PASSWORD_MAX)


class ResultResponse(BaseModel):
    session_id: UUID
    owner: Literal["user", "guest"]
    result: dict[str, Any]
    created_at: datetime | None = None


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
    kind: str
    is_private: bool | None = None
    reason: str | None = None
