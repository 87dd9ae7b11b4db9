"""Company lookup, administration and progress aggregation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from plank.companies.codes import normalize_company_code, validate_company_code
from plank.db.models import Company, CompanyMilestoneAchievement, User
from plank.progress.milestones import (
    COMPANY_MILESTONES,
    MilestoneDef,
    current_milestone,
    milestone_progress,
    next_milestone,
)

logger = structlog.get_logger()


@dataclass
class CompanyProgress:
    company: Company
    total_seconds: int
    participants: int
    member_count: int
    contribution_percent: float
    achievements: list[CompanyMilestoneAchievement] = field(default_factory=list)
    current: MilestoneDef | None = None
    next: MilestoneDef | None = None
    progress_percent: float = 0.0


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


async def get_company(db: AsyncSession, company_id: int) -> Company | None:
    return await db.get(Company, company_id)


async def get_company_by_code(db: AsyncSession, code: str) -> Company | None:
    """Case-insensitive lookup by access code."""
    normalized = normalize_company_code(code)
    if not normalized:
        return None
    result = await db.execute(select(Company).where(func.upper(Company.company_code) == normalized))
    return result.scalar_one_or_none()


async def resolve_signup_company(db: AsyncSession, code: str) -> Company:
    """Find the active company a new user joins. Raises ValueError if none matches."""
    company = await get_company_by_code(db, code)
    if company is None or not company.is_active:
        msg = f'Company code "{normalize_company_code(code)}" not found'
        raise ValueError(msg)
    return company


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------


def _check_dates(start: date, end: date) -> None:
    if end <= start:
        msg = "Challenge end date must be after start date"
        raise ValueError(msg)


async def create_company(
    db: AsyncSession,
    company_name: str,
    company_code: str,
    challenge_start_date: date,
    challenge_end_date: date,
    is_active: bool = True,
) -> Company:
    """Create a company. Raises ValueError on invalid input or a taken code."""
    name = company_name.strip()
    if not name:
        msg = "Company name is required"
        raise ValueError(msg)
    code = validate_company_code(company_code)
    _check_dates(challenge_start_date, challenge_end_date)

    if await get_company_by_code(db, code) is not None:
        msg = "Company code already exists. Please choose a different code."
        raise ValueError(msg)

    now = datetime.now(timezone.utc)
    company = Company(
        company_name=name,
        company_code=code,
        challenge_start_date=challenge_start_date,
        challenge_end_date=challenge_end_date,
        is_active=is_active,
        total_plank_seconds=0,
        created_at=now,
        updated_at=now,
    )
    try:
        async with db.begin_nested():
            db.add(company)
    except IntegrityError as e:
        msg = "Company code already exists. Please choose a different code."
        raise ValueError(msg) from e

    logger.info("company_created", company_id=company.id, code=code)
    return company


async def update_company(
    db: AsyncSession,
    company_id: int,
    company_name: str | None = None,
    challenge_start_date: date | None = None,
    challenge_end_date: date | None = None,
    is_active: bool | None = None,
) -> Company:
    """Update editable company fields. The access code is immutable."""
    company = await get_company(db, company_id)
    if company is None:
        msg = "Company not found"
        raise ValueError(msg)

    if company_name is not None:
        name = company_name.strip()
        if not name:
            msg = "Company name is required"
            raise ValueError(msg)
        company.company_name = name

    start = challenge_start_date or company.challenge_start_date
    end = challenge_end_date or company.challenge_end_date
    _check_dates(start, end)
    company.challenge_start_date = start
    company.challenge_end_date = end

    if is_active is not None:
        company.is_active = is_active

    company.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return company


async def list_companies(db: AsyncSession) -> list[tuple[Company, int]]:
    """All companies, newest first, with their member counts."""
    member_counts = (
        select(User.company_id, func.count(User.id).label("user_count"))
        .group_by(User.company_id)
        .subquery()
    )
    result = await db.execute(
        select(Company, func.coalesce(member_counts.c.user_count, 0))
        .outerjoin(member_counts, member_counts.c.company_id == Company.id)
        .order_by(Company.created_at.desc(), Company.id.desc())
    )
    return [(company, int(count)) for company, count in result]


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


def contribution_percent(user_total: int, company_total: int) -> float:
    """User's share of the company total, one decimal. 0 when the company has nothing logged."""
    if company_total <= 0:
        return 0.0
    return round(user_total / company_total * 100, 1)


async def get_company_achievements(db: AsyncSession, company_id: int) -> list[CompanyMilestoneAchievement]:
    result = await db.execute(
        select(CompanyMilestoneAchievement)
        .where(CompanyMilestoneAchievement.company_id == company_id)
        .order_by(CompanyMilestoneAchievement.achieved_at, CompanyMilestoneAchievement.id)
    )
    return list(result.scalars().all())


async def get_company_progress(db: AsyncSession, company_id: int, user_total: int) -> CompanyProgress:
    """Aggregate company progress as seen by one of its members."""
    company = await get_company(db, company_id)
    if company is None:
        msg = "Company not found"
        raise ValueError(msg)
    await db.refresh(company, attribute_names=["total_plank_seconds"])

    result = await db.execute(
        select(
            func.count(User.id),
            func.count(User.id).filter(User.total_plank_seconds > 0),
        ).where(User.company_id == company_id)
    )
    member_count, participants = result.one()

    total = company.total_plank_seconds
    return CompanyProgress(
        company=company,
        total_seconds=total,
        participants=int(participants),
        member_count=int(member_count),
        contribution_percent=contribution_percent(user_total, total),
        achievements=await get_company_achievements(db, company_id),
        current=current_milestone(COMPANY_MILESTONES, total),
        next=next_milestone(COMPANY_MILESTONES, total),
        progress_percent=round(milestone_progress(COMPANY_MILESTONES, total), 1),
    )
