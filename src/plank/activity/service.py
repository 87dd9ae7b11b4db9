"""Company activity feed recording and retrieval."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from plank.db.models import ActivityFeed, User

logger = logging.getLogger(__name__)

PLANK_LOGGED = "plank_logged"
MILESTONE_ACHIEVED = "milestone_achieved"
COMPANY_MILESTONE_ACHIEVED = "company_milestone_achieved"

ACTIVITY_TYPES = frozenset({PLANK_LOGGED, MILESTONE_ACHIEVED, COMPANY_MILESTONE_ACHIEVED})

ACTIVITY_CHANNEL = "pubsub:activity_feed"


async def record_activity(
    db: AsyncSession,
    company_id: int,
    user_id: int,
    activity_type: str,
    message: str,
    metadata: dict[str, Any] | None = None,
) -> ActivityFeed:
    """Append an entry to the company feed."""
    if activity_type not in ACTIVITY_TYPES:
        msg = f"Unknown activity type: {activity_type}"
        raise ValueError(msg)

    activity = ActivityFeed(
        company_id=company_id,
        user_id=user_id,
        activity_type=activity_type,
        message=message,
        extra_data=metadata or {},
        created_at=datetime.now(timezone.utc),
    )
    db.add(activity)
    await db.flush()
    return activity


async def publish_activities(redis: object | None, activities: list[ActivityFeed]) -> None:
    """Broadcast committed feed entries for live dashboards.

    Best effort: subscribers refetch the feed on reconnect, so a failed
    publish is only logged.
    """
    if redis is None:
        return

    for activity in activities:
        try:
            await redis.publish(  # type: ignore[attr-defined]
                ACTIVITY_CHANNEL,
                json.dumps({
                    "id": activity.id,
                    "company_id": activity.company_id,
                    "user_id": activity.user_id,
                    "activity_type": activity.activity_type,
                    "message": activity.message,
                    "metadata": activity.extra_data,
                    "created_at": activity.created_at.isoformat(),
                }),
            )
        except Exception:
            logger.warning("Failed to publish activity %s", activity.id, exc_info=True)


async def get_company_feed(
    db: AsyncSession,
    company_id: int,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[tuple[ActivityFeed, str]], int]:
    """Get a company's activity feed, newest first, with author names."""
    offset = (page - 1) * per_page

    total_result = await db.execute(
        select(func.count()).select_from(ActivityFeed).where(ActivityFeed.company_id == company_id)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(ActivityFeed, User.full_name)
        .join(User, ActivityFeed.user_id == User.id)
        .where(ActivityFeed.company_id == company_id)
        .order_by(ActivityFeed.created_at.desc(), ActivityFeed.id.desc())
        .offset(offset)
        .limit(per_page)
    )
    return [(row.ActivityFeed, row.full_name) for row in result], total


async def get_activity(db: AsyncSession, activity_id: int, company_id: int) -> tuple[ActivityFeed, str] | None:
    """Fetch a single feed entry within a company."""
    result = await db.execute(
        select(ActivityFeed, User.full_name)
        .join(User, ActivityFeed.user_id == User.id)
        .where(ActivityFeed.id == activity_id, ActivityFeed.company_id == company_id)
    )
    row = result.first()
    if row is None:
        return None
    return row.ActivityFeed, row.full_name
