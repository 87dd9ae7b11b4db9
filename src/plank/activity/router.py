"""Company activity feed endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from plank.activity.schemas import ActivityFeedResponse, ActivityResponse
from plank.activity.service import get_activity, get_company_feed
from plank.auth.dependencies import get_current_user
from plank.config import get_settings
from plank.database import get_session
from plank.db.models import ActivityFeed, User

router = APIRouter(prefix="/api/v1/activity", tags=["Activity"])


def _build_activity_response(activity: ActivityFeed, user_name: str) -> ActivityResponse:
    return ActivityResponse(
        id=activity.id,
        type=activity.activity_type,
        message=activity.message,
        user_id=activity.user_id,
        user_name=user_name,
        timestamp=activity.created_at,
        metadata=activity.extra_data or {},
    )


@router.get("", response_model=ActivityFeedResponse)
async def company_feed(
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ActivityFeedResponse:
    """Latest activity in the caller's company, newest first."""
    per_page = per_page or get_settings().activity_feed_page_size
    rows, total = await get_company_feed(db, user.company_id, page, per_page)
    return ActivityFeedResponse(
        activities=[_build_activity_response(a, name) for a, name in rows],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{activity_id}", response_model=ActivityResponse)
async def activity_detail(
    activity_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ActivityResponse:
    """A single feed entry from the caller's company."""
    row = await get_activity(db, activity_id, user.company_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Activity not found")
    return _build_activity_response(*row)
