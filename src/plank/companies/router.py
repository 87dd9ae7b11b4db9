"""Company endpoints for members."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from plank.auth.dependencies import get_current_user
from plank.companies.schemas import CompanyMilestoneInfo, CompanyProgressResponse, CompanyResponse
from plank.companies.service import get_company, get_company_progress
from plank.database import get_session
from plank.db.models import Company, User
from plank.progress.milestones import COMPANY_MILESTONES

router = APIRouter(prefix="/api/v1/companies", tags=["Companies"])


def build_company_response(company: Company, user_count: int | None = None) -> CompanyResponse:
    return CompanyResponse(
        id=company.id,
        company_name=company.company_name,
        company_code=company.company_code,
        challenge_start_date=company.challenge_start_date,
        challenge_end_date=company.challenge_end_date,
        is_active=company.is_active,
        total_plank_seconds=company.total_plank_seconds,
        user_count=user_count,
        created_at=company.created_at,
    )


@router.get("/me", response_model=CompanyResponse)
async def my_company(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CompanyResponse:
    """The caller's company."""
    company = await get_company(db, user.company_id)
    if company is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return build_company_response(company)


@router.get("/me/progress", response_model=CompanyProgressResponse)
async def my_company_progress(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CompanyProgressResponse:
    """Combined plank time, participants and milestones of the caller's company."""
    await db.refresh(user, attribute_names=["total_plank_seconds"])
    try:
        progress = await get_company_progress(db, user.company_id, user.total_plank_seconds)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    reached = {a.milestone_name: a for a in progress.achievements}
    milestones = []
    for m in COMPANY_MILESTONES:
        a = reached.get(m.name)
        milestones.append(CompanyMilestoneInfo(
            name=m.name,
            emoji=m.emoji,
            threshold_seconds=m.seconds,
            label=m.label,
            achieved=a is not None,
            achieved_at=a.achieved_at if a else None,
            total_seconds_at_achievement=a.total_seconds_at_achievement if a else None,
        ))

    return CompanyProgressResponse(
        company_id=progress.company.id,
        company_name=progress.company.company_name,
        total_plank_seconds=progress.total_seconds,
        participants=progress.participants,
        member_count=progress.member_count,
        my_contribution_percent=progress.contribution_percent,
        current_milestone=progress.current.name if progress.current else None,
        next_milestone=progress.next.name if progress.next else None,
        progress_percent=progress.progress_percent,
        milestones=milestones,
    )
