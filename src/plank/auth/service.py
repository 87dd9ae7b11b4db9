"""
Authentication business logic.

Registration under a company access code, login with lockout, refresh
token rotation and password reset.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select, update

from plank.auth.password import (
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from plank.companies.service import resolve_signup_company
from plank.config import get_settings
from plank.db.models import PasswordResetToken, RefreshToken, User

if TYPE_CHECKING:
    from redis.asyncio import Redis
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def hash_token(raw_token: str) -> str:
    """SHA-256 hex digest used to store tokens at rest."""
    return hashlib.sha256(raw_token.encode()).hexdigest()


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower().strip()))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def register_user(
    db: AsyncSession,
    email: str,
    password: str,
    full_name: str,
    company_code: str,
) -> User:
    """
    Register a new participant under a company.

    The company is resolved before anything is written, so a failed lookup
    never leaves a user without a company behind.

    Raises:
        ValueError: Unknown/inactive company code, weak password, empty name,
            or email already registered.
    """
    company = await resolve_signup_company(db, company_code)

    validate_password_strength(password)

    name = full_name.strip()
    if not name:
        msg = "Full name is required"
        raise ValueError(msg)

    if await get_user_by_email(db, email) is not None:
        msg = "Email already registered"
        raise ValueError(msg)

    now = datetime.now(timezone.utc)
    user = User(
        company_id=company.id,
        email=email.lower().strip(),
        password_hash=hash_password(password),
        full_name=name,
        total_plank_seconds=0,
        created_at=now,
        last_login=now,
        login_count=1,
    )
    db.add(user)
    await db.flush()
    logger.info("user_created", user_id=user.id, company_id=company.id)
    return user


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate_user(
    db: AsyncSession,
    redis: Redis | None,
    email: str,
    password: str,
) -> User:
    """
    Authenticate with email + password.

    Lockout counters live in Redis; without Redis no lockout is applied.

    Raises:
        ValueError: If credentials are invalid.
        PermissionError: If the account is locked or banned.
    """
    user = await get_user_by_email(db, email)
    if user is None:
        msg = "Invalid email or password"
        raise ValueError(msg)

    if await check_account_lockout(redis, user.id):
        msg = "Account temporarily locked. Try again later."
        raise PermissionError(msg)

    if user.is_banned:
        msg = "Account is banned"
        raise PermissionError(msg)

    if not verify_password(password, user.password_hash):
        await increment_failed_login(redis, user.id)
        msg = "Invalid email or password"
        raise ValueError(msg)

    await clear_failed_login(redis, user.id)

    user.last_login = datetime.now(timezone.utc)
    user.login_count = (user.login_count or 0) + 1
    if user.password_hash and check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        logger.info("password_rehashed", user_id=user.id)
    await db.flush()
    return user


# ---------------------------------------------------------------------------
# Account lockout
# ---------------------------------------------------------------------------


async def check_account_lockout(redis: Redis | None, user_id: int) -> bool:
    if redis is None:
        return False
    count_str = await redis.get(f"login_attempts:{user_id}")
    if count_str is None:
        return False
    return int(count_str) >= get_settings().account_lockout_threshold


async def increment_failed_login(redis: Redis | None, user_id: int) -> int:
    """Bump the failed login counter. Returns the new count (0 without Redis)."""
    if redis is None:
        return 0
    key = f"login_attempts:{user_id}"
    count = await redis.incr(key)
    if count == 1:
        await redis.expire(key, get_settings().account_lockout_duration_minutes * 60)
    return int(count)


async def clear_failed_login(redis: Redis | None, user_id: int) -> None:
    if redis is not None:
        await redis.delete(f"login_attempts:{user_id}")


# ---------------------------------------------------------------------------
# Refresh tokens
# ---------------------------------------------------------------------------


async def store_refresh_token(
    db: AsyncSession,
    user_id: int,
    token_id: str,
    token_hash: str,
    expires_at: datetime,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> RefreshToken:
    token = RefreshToken(
        id=token_id,
        user_id=user_id,
        token_hash=token_hash,
        issued_at=datetime.now(timezone.utc),
        expires_at=expires_at,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(token)
    await db.flush()
    return token


async def get_refresh_token(db: AsyncSession, token_id: str) -> RefreshToken | None:
    """Look up a refresh token by its JTI."""
    result = await db.execute(select(RefreshToken).where(RefreshToken.id == token_id))
    return result.scalar_one_or_none()


async def rotate_refresh_token(
    db: AsyncSession,
    old_token: RefreshToken,
    new_token_id: str,
    new_token_hash: str,
    new_expires_at: datetime,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> RefreshToken:
    """Revoke ``old_token`` and issue its replacement."""
    old_token.is_revoked = True
    old_token.revoked_at = datetime.now(timezone.utc)
    old_token.replaced_by = new_token_id

    return await store_refresh_token(
        db,
        user_id=old_token.user_id,
        token_id=new_token_id,
        token_hash=new_token_hash,
        expires_at=new_expires_at,
        ip_address=ip_address,
        user_agent=user_agent,
    )


async def revoke_refresh_token(db: AsyncSession, token_id: str) -> bool:
    """Revoke one refresh token. Returns True if it existed."""
    token = await get_refresh_token(db, token_id)
    if token is None:
        return False
    token.is_revoked = True
    token.revoked_at = datetime.now(timezone.utc)
    await db.flush()
    return True


async def revoke_all_tokens(db: AsyncSession, user_id: int) -> int:
    """Revoke every live refresh token of a user. Returns count revoked."""
    result = await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id)
        .where(RefreshToken.is_revoked == False)  # noqa: E712
        .values(is_revoked=True, revoked_at=datetime.now(timezone.utc))
    )
    await db.flush()
    return result.rowcount  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


async def create_reset_token(
    db: AsyncSession,
    user_id: int,
    ip_address: str | None = None,
) -> str:
    """
    Create a password reset token, invalidating any earlier unused ones.

    Returns the raw token to send to the user; only its hash is stored.
    """
    settings = get_settings()
    raw_token = secrets.token_urlsafe(48)
    now = datetime.now(timezone.utc)

    await db.execute(
        update(PasswordResetToken)
        .where(PasswordResetToken.user_id == user_id)
        .where(PasswordResetToken.used_at == None)  # noqa: E711
        .values(used_at=now)
    )

    db.add(PasswordResetToken(
        user_id=user_id,
        token_hash=hash_token(raw_token),
        created_at=now,
        expires_at=now + timedelta(minutes=settings.password_reset_token_ttl_minutes),
        ip_address=ip_address,
    ))
    await db.flush()
    return raw_token


async def consume_reset_token(db: AsyncSession, raw_token: str) -> int:
    """
    Validate and mark a reset token used. Returns the user id.

    Raises:
        ValueError: If the token is unknown, expired or already used.
    """
    result = await db.execute(
        select(PasswordResetToken).where(PasswordResetToken.token_hash == hash_token(raw_token))
    )
    token = result.scalar_one_or_none()

    if token is None:
        msg = "Invalid or expired reset token"
        raise ValueError(msg)
    if token.used_at is not None:
        msg = "Token has already been used"
        raise ValueError(msg)
    if token.expires_at < datetime.now(timezone.utc):
        msg = "Reset token has expired"
        raise ValueError(msg)

    token.used_at = datetime.now(timezone.utc)
    await db.flush()
    return token.user_id


async def reset_password(db: AsyncSession, raw_token: str, new_password: str) -> User:
    """Set a new password from a reset token and sign out every session."""
    validate_password_strength(new_password)
    user_id = await consume_reset_token(db, raw_token)

    user = await get_user_by_id(db, user_id)
    if user is None:
        msg = "Invalid or expired reset token"
        raise ValueError(msg)

    user.password_hash = hash_password(new_password)
    await revoke_all_tokens(db, user.id)
    await db.flush()
    logger.info("password_reset", user_id=user.id)
    return user
