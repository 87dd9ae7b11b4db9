"""Authentication router: all /api/v1/auth/* endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from plank.auth.dependencies import get_current_user
from plank.auth.jwt import create_access_token, create_refresh_token, verify_token
from plank.auth.password import PasswordStrengthError
from plank.auth.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    StatusResponse,
    TokenResponse,
    UserResponse,
)
from plank.auth.service import (
    authenticate_user,
    create_reset_token,
    get_refresh_token,
    get_user_by_email,
    get_user_by_id,
    hash_token,
    register_user,
    reset_password,
    revoke_all_tokens,
    revoke_refresh_token,
    rotate_refresh_token,
    store_refresh_token,
)
from plank.config import get_settings
from plank.database import get_session
from plank.db.models import Company, User
from plank.dependencies import get_redis_dep
from plank.email.service import get_email_service

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


def user_response(user: User, company: Company | None = None) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        company_id=user.company_id,
        company_name=company.company_name if company else None,
        company_code=company.company_code if company else None,
        is_admin=user.is_admin,
        total_plank_seconds=user.total_plank_seconds,
        created_at=user.created_at,
        last_login=user.last_login,
        login_count=user.login_count,
    )


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


async def _issue_tokens(db: AsyncSession, user: User, request: Request) -> TokenResponse:
    """Create access + refresh tokens, store the refresh token hash and commit."""
    settings = get_settings()
    token_id = str(uuid.uuid4())
    access_token = create_access_token(user.id, user.company_id, is_admin=user.is_admin)
    refresh_token = create_refresh_token(user.id, token_id=token_id)

    await store_refresh_token(
        db,
        user_id=user.id,
        token_id=token_id,
        token_hash=hash_token(refresh_token),
        expires_at=datetime.now(timezone.utc) + timedelta(days=settings.jwt_refresh_token_expire_days),
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    await db.commit()
    company = await db.get(Company, user.company_id)

    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=user_response(user, company),
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    body: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
) -> TokenResponse:
    """Register with email, password, full name and company access code."""
    try:
        user = await register_user(
            db,
            email=body.email,
            password=body.password,
            full_name=body.full_name,
            company_code=body.company_code,
        )
    except PasswordStrengthError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ValueError as e:
        detail = str(e)
        if "already registered" in detail.lower():
            raise HTTPException(status_code=409, detail=detail) from e
        raise HTTPException(status_code=400, detail=detail) from e

    tokens = await _issue_tokens(db, user, request)

    try:
        await get_email_service(redis).send_template(  # type: ignore[arg-type]
            to=user.email,
            template_name="welcome",
            context={
                "full_name": user.full_name,
                "company_name": tokens.user.company_name,
                "dashboard_url": f"{get_settings().frontend_base_url}/dashboard",
            },
        )
    except Exception:
        logger.exception("welcome_email_failed", user_id=user.id)

    return tokens


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
) -> TokenResponse:
    """Login with email + password."""
    try:
        user = await authenticate_user(db, redis, body.email, body.password)  # type: ignore[arg-type]
    except PermissionError as e:
        detail = str(e)
        if "locked" in detail.lower():
            raise HTTPException(status_code=429, detail=detail) from e
        raise HTTPException(status_code=403, detail=detail) from e
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    return await _issue_tokens(db, user, request)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    body: RefreshRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Rotate a refresh token. Reusing a rotated token revokes every session."""
    try:
        payload = verify_token(body.refresh_token, expected_type="refresh")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    jti = payload.get("jti")
    if not jti:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    old_token = await get_refresh_token(db, jti)
    if old_token is None or old_token.token_hash != hash_token(body.refresh_token):
        raise HTTPException(status_code=401, detail="Refresh token not found")
    if old_token.is_revoked:
        await revoke_all_tokens(db, old_token.user_id)
        await db.commit()
        raise HTTPException(status_code=401, detail="Refresh token has been revoked")

    user = await get_user_by_id(db, old_token.user_id)
    if user is None or user.is_banned:
        raise HTTPException(status_code=401, detail="User not found")

    settings = get_settings()
    new_token_id = str(uuid.uuid4())
    new_access = create_access_token(user.id, user.company_id, is_admin=user.is_admin)
    new_refresh = create_refresh_token(user.id, token_id=new_token_id)

    await rotate_refresh_token(
        db,
        old_token=old_token,
        new_token_id=new_token_id,
        new_token_hash=hash_token(new_refresh),
        new_expires_at=datetime.now(timezone.utc) + timedelta(days=settings.jwt_refresh_token_expire_days),
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    await db.commit()
    company = await db.get(Company, user.company_id)

    return TokenResponse(
        access_token=new_access,
        refresh_token=new_refresh,
        token_type="bearer",
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=user_response(user, company),
    )


@router.post("/logout", response_model=StatusResponse)
async def logout(
    body: LogoutRequest,
    db: AsyncSession = Depends(get_session),
) -> StatusResponse:
    """Revoke a refresh token. Always succeeds."""
    try:
        payload = verify_token(body.refresh_token, expected_type="refresh")
    except jwt.InvalidTokenError:
        return StatusResponse(status="logged_out")

    jti = payload.get("jti")
    if jti:
        await revoke_refresh_token(db, jti)
        await db.commit()
    return StatusResponse(status="logged_out")


@router.post("/forgot-password", response_model=StatusResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
) -> StatusResponse:
    """Email a reset link. The response never reveals whether the address exists."""
    user = await get_user_by_email(db, body.email)

    if user is not None:
        settings = get_settings()
        raw_token = await create_reset_token(db, user.id, ip_address=_client_ip(request))
        await db.commit()
        try:
            await get_email_service(redis).send_template(  # type: ignore[arg-type]
                to=user.email,
                template_name="password_reset",
                context={
                    "reset_url": f"{settings.frontend_base_url}/reset-password?token={raw_token}",
                    "expires_minutes": settings.password_reset_token_ttl_minutes,
                },
            )
        except Exception:
            logger.exception("password_reset_email_failed", user_id=user.id)

    return StatusResponse(status="If that email exists, a reset link has been sent.")


@router.post("/reset-password", response_model=StatusResponse)
async def reset_password_endpoint(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
) -> StatusResponse:
    """Set a new password with a reset token."""
    try:
        user = await reset_password(db, body.token, body.new_password)
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()

    try:
        await get_email_service(redis).send_template(  # type: ignore[arg-type]
            to=user.email,
            template_name="password_changed",
            context={"full_name": user.full_name},
        )
    except Exception:
        logger.exception("password_changed_email_failed", user_id=user.id)

    return StatusResponse(status="password_reset_complete")


@router.get("/me", response_model=UserResponse)
async def me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """The authenticated user's profile."""
    return user_response(user, await db.get(Company, user.company_id))
