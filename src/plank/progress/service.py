"""Read side of plank progress: recent logs, stats and achieved milestones."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from plank.db.models import PlankLog, UserMilestone


async def get_recent_logs(db: AsyncSession, user_id: int, limit: int = 5) -> list[PlankLog]:
    """Latest plank logs for a user, newest first."""
    result = await db.execute(
        select(PlankLog)
        .where(PlankLog.user_id == user_id)
        .order_by(PlankLog.created_at.desc(), PlankLog.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_user_milestones(db: AsyncSession, user_id: int) -> list[UserMilestone]:
    """Milestones a user has reached, oldest first."""
    result = await db.execute(
        select(UserMilestone)
        .where(UserMilestone.user_id == user_id)
        .order_by(UserMilestone.achieved_at, UserMilestone.id)
    )
    return list(result.scalars().all())


async def get_log_summary(db: AsyncSession, user_id: int) -> tuple[int, int]:
    """Return (log count, longest single hold in seconds) for a user."""
    result = await db.execute(
        select(
            func.count(PlankLog.id),
            func.coalesce(func.max(PlankLog.duration_seconds), 0),
        ).where(PlankLog.user_id == user_id)
    )
    count, longest = result.one()
    return int(count), int(longest)
