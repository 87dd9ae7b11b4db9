"""Plank logging endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from plank.activity.service import publish_activities
from plank.auth.dependencies import get_current_user
from plank.database import get_session
from plank.db.models import PlankLog, User
from plank.dependencies import get_redis_dep
from plank.progress.milestones import (
    MILESTONES,
    MilestoneDef,
    current_milestone,
    milestone_progress,
    next_milestone,
)
from plank.progress.recorder import record_plank_session
from plank.progress.schemas import (
    AchievedMilestone,
    MilestoneInfo,
    PlankLogRequest,
    PlankLogResponse,
    PlankStatsResponse,
    PlankSubmitResponse,
    RecentLogsResponse,
)
from plank.progress.service import get_log_summary, get_recent_logs, get_user_milestones

router = APIRouter(prefix="/api/v1/planks", tags=["Planks"])


def _milestone_info(milestone: MilestoneDef | None) -> MilestoneInfo | None:
    if milestone is None:
        return None
    return MilestoneInfo(
        name=milestone.name,
        threshold_seconds=milestone.seconds,
        label=milestone.label,
        emoji=milestone.emoji or None,
    )


def _log_response(log: PlankLog) -> PlankLogResponse:
    return PlankLogResponse(id=log.id, duration_seconds=log.duration_seconds, logged_at=log.logged_at)


@router.post("", response_model=PlankSubmitResponse, status_code=201)
async def submit_plank(
    body: PlankLogRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
) -> PlankSubmitResponse:
    """Record a plank hold and return any milestones it unlocked."""
    try:
        result = await record_plank_session(db, user, body.duration_seconds)
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e)) from e

    log = await db.get(PlankLog, result.log_id)
    await db.commit()
    await publish_activities(redis, result.activities)

    return PlankSubmitResponse(
        log=_log_response(log),
        total_plank_seconds=result.new_total,
        new_milestones=[_milestone_info(m) for m in result.achieved_milestones],
        new_company_milestones=[_milestone_info(m) for m in result.achieved_company_milestones],
    )


@router.get("/recent", response_model=RecentLogsResponse)
async def recent_planks(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> RecentLogsResponse:
    """Latest five plank logs for the caller."""
    logs = await get_recent_logs(db, user.id)
    return RecentLogsResponse(logs=[_log_response(log) for log in logs])


@router.get("/stats", response_model=PlankStatsResponse)
async def plank_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PlankStatsResponse:
    """Running total, milestone position and achievements for the caller."""
    await db.refresh(user, attribute_names=["total_plank_seconds"])
    total = user.total_plank_seconds
    count, longest = await get_log_summary(db, user.id)
    achieved = await get_user_milestones(db, user.id)

    return PlankStatsResponse(
        total_plank_seconds=total,
        total_logs=count,
        longest_hold_seconds=longest,
        current_milestone=_milestone_info(current_milestone(MILESTONES, total)),
        next_milestone=_milestone_info(next_milestone(MILESTONES, total)),
        progress_percent=round(milestone_progress(MILESTONES, total), 1),
        milestones=[AchievedMilestone(name=m.milestone_name, achieved_at=m.achieved_at) for m in achieved],
    )
