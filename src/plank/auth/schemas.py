"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator


class _EmailMixin(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class RegisterRequest(_EmailMixin):
    """Sign up under a company access code."""

    password: str = Field(..., min_length=1, max_length=128)
    full_name: str = Field(..., min_length=1, max_length=128)
    company_code: str = Field(..., min_length=1, max_length=32)


class LoginRequest(_EmailMixin):
    password: str = Field(..., min_length=1, max_length=128)


class ForgotPasswordRequest(_EmailMixin):
    """Request a password reset email."""


class ResetPasswordRequest(BaseModel):
    """Reset password with a token from the reset email."""

    token: str
    new_password: str = Field(..., min_length=1, max_length=128)


class RefreshRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    refresh_token: str


class UserResponse(BaseModel):
    """The authenticated user's profile."""

    id: int
    email: str
    full_name: str
    company_id: int
    company_name: str | None = None
    company_code: str | None = None
    is_admin: bool = False
    total_plank_seconds: int = 0
    created_at: datetime | None = None
    last_login: datetime | None = None
    login_count: int = 0


class TokenResponse(BaseModel):
    """Token response returned after successful auth."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = 3600
    user: UserResponse


class StatusResponse(BaseModel):
    status: str
