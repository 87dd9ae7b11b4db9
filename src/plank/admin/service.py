"""Admin operations on users and plank logs.

Running totals are kept consistent with the logs: deleting a log takes its
duration back off the owner and their company, and moving a user to another
company moves their total between company counters.
"""

from __future__ import annotations

import structlog
from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from plank.db.models import Company, PlankLog, User

logger = structlog.get_logger()


def _floored(column, delta: int):  # noqa: ANN001, ANN202
    """``column - delta`` clamped at zero, as a SQL expression."""
    return case((column - delta < 0, 0), else_=column - delta)


async def subtract_from_totals(db: AsyncSession, user_id: int, company_id: int, seconds: int) -> int:
    """Take up to ``seconds`` off a user's running total and the same amount off their company's.

    Both counters stop at zero. The company loses exactly what the user lost,
    so the two stay in step. Returns the number of seconds removed.
    """
    old_result = await db.execute(
        select(User.total_plank_seconds).where(User.id == user_id).with_for_update()
    )
    old_total = old_result.scalar_one()
    new_result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(total_plank_seconds=_floored(User.total_plank_seconds, seconds))
        .returning(User.total_plank_seconds)
        .execution_options(synchronize_session=False)
    )
    removed = int(old_total) - int(new_result.scalar_one())

    await db.execute(
        update(Company)
        .where(Company.id == company_id)
        .values(total_plank_seconds=_floored(Company.total_plank_seconds, removed))
        .execution_options(synchronize_session=False)
    )
    return removed


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


async def list_users(
    db: AsyncSession,
    company_id: int | None = None,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[tuple[User, str, int]], int]:
    """Users by total descending, each with company code and log count."""
    log_counts = (
        select(PlankLog.user_id, func.count(PlankLog.id).label("log_count"))
        .group_by(PlankLog.user_id)
        .subquery()
    )
    filters = [User.company_id == company_id] if company_id is not None else []

    total_result = await db.execute(select(func.count(User.id)).where(*filters))
    total = total_result.scalar_one()

    result = await db.execute(
        select(User, Company.company_code, func.coalesce(log_counts.c.log_count, 0))
        .join(Company, User.company_id == Company.id)
        .outerjoin(log_counts, log_counts.c.user_id == User.id)
        .where(*filters)
        .order_by(User.total_plank_seconds.desc(), User.id)
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return [(user, code, int(count)) for user, code, count in result], total


async def get_admin_user(db: AsyncSession, user_id: int) -> tuple[User, str, int] | None:
    """One user with company code and log count."""
    log_count = select(func.count(PlankLog.id)).where(PlankLog.user_id == User.id).scalar_subquery()
    result = await db.execute(
        select(User, Company.company_code, log_count)
        .join(Company, User.company_id == Company.id)
        .where(User.id == user_id)
        .execution_options(populate_existing=True)
    )
    row = result.first()
    if row is None:
        return None
    user, code, count = row
    return user, code, int(count)


async def reassign_company(db: AsyncSession, user_id: int, company_id: int) -> User:
    """Move a user to another company, carrying their total across company counters."""
    user = await db.get(User, user_id)
    if user is None:
        msg = "User not found"
        raise ValueError(msg)
    if await db.get(Company, company_id) is None:
        msg = "Company not found"
        raise ValueError(msg)
    if user.company_id == company_id:
        return user

    await db.refresh(user, attribute_names=["total_plank_seconds"])
    old_company_id = user.company_id
    seconds = user.total_plank_seconds

    await db.execute(
        update(Company)
        .where(Company.id == old_company_id)
        .values(total_plank_seconds=_floored(Company.total_plank_seconds, seconds))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(Company)
        .where(Company.id == company_id)
        .values(total_plank_seconds=Company.total_plank_seconds + seconds)
        .execution_options(synchronize_session=False)
    )
    user.company_id = company_id
    await db.flush()

    logger.info(
        "user_company_changed",
        user_id=user_id,
        old_company_id=old_company_id,
        new_company_id=company_id,
        seconds=seconds,
    )
    return user


# ---------------------------------------------------------------------------
# Plank log moderation
# ---------------------------------------------------------------------------


async def list_plank_logs(
    db: AsyncSession,
    company_id: int | None = None,
    limit: int = 100,
) -> list[tuple[PlankLog, str, str, str]]:
    """Latest logs with author name, email and company code."""
    query = (
        select(PlankLog, User.full_name, User.email, Company.company_code)
        .join(User, PlankLog.user_id == User.id)
        .join(Company, User.company_id == Company.id)
    )
    if company_id is not None:
        query = query.where(User.company_id == company_id)
    result = await db.execute(
        query.order_by(PlankLog.created_at.desc(), PlankLog.id.desc()).limit(limit)
    )
    return [(log, name, email, code) for log, name, email, code in result]


async def delete_plank_log(db: AsyncSession, log_id: int) -> PlankLog:
    """Delete a log and subtract its duration from the owner and their company.

    Milestones already achieved are kept.
    """
    log = await db.get(PlankLog, log_id)
    if log is None:
        msg = "Plank log not found"
        raise ValueError(msg)
    user = await db.get(User, log.user_id)
    if user is None:
        msg = "User not found"
        raise ValueError(msg)

    removed = await subtract_from_totals(db, user.id, user.company_id, log.duration_seconds)
    await db.delete(log)
    await db.flush()

    logger.info("plank_log_deleted", log_id=log_id, user_id=user.id, duration=log.duration_seconds, removed=removed)
    return log
