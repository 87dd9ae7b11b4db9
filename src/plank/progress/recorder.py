"""Plank session accounting: logs, running totals, milestones and feed entries.

Flow for one submission:
1. Insert the plank log
2. Atomically bump the user's running total (old total = new - duration)
3. Record individual milestones crossed by this submission
4. Append feed entries (the log itself + each milestone)
5. Atomically bump the company's running total and record company milestones

Nothing is committed here; the caller owns the transaction so a failure at
any step leaves no partial writes behind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from plank.activity.service import (
    COMPANY_MILESTONE_ACHIEVED,
    MILESTONE_ACHIEVED,
    PLANK_LOGGED,
    record_activity,
)
from plank.db.models import (
    ActivityFeed,
    Company,
    CompanyMilestone,
    CompanyMilestoneAchievement,
    Milestone,
    PlankLog,
    User,
    UserMilestone,
)
from plank.progress.milestones import (
    COMPANY_MILESTONES,
    MILESTONES,
    MilestoneDef,
    crossed_milestones,
    format_duration,
)
from plank.progress.seed import company_milestone_row, milestone_row

logger = structlog.get_logger()


@dataclass
class PlankResult:
    log_id: int
    new_total: int
    company_total: int
    achieved_milestones: list[MilestoneDef] = field(default_factory=list)
    achieved_company_milestones: list[MilestoneDef] = field(default_factory=list)
    activities: list[ActivityFeed] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Running totals
# ---------------------------------------------------------------------------


async def increment_user_total(db: AsyncSession, user_id: int, delta: int) -> int:
    """Add ``delta`` to the user's running total in one statement. Returns the new total."""
    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(total_plank_seconds=User.total_plank_seconds + delta)
        .returning(User.total_plank_seconds)
        .execution_options(synchronize_session=False)
    )
    new_total = result.scalar_one_or_none()
    if new_total is None:
        msg = "User not found"
        raise ValueError(msg)
    return int(new_total)


async def increment_company_total(db: AsyncSession, company_id: int, delta: int) -> int:
    """Add ``delta`` to the company's running total in one statement. Returns the new total."""
    result = await db.execute(
        update(Company)
        .where(Company.id == company_id)
        .values(total_plank_seconds=Company.total_plank_seconds + delta)
        .returning(Company.total_plank_seconds)
        .execution_options(synchronize_session=False)
    )
    new_total = result.scalar_one_or_none()
    if new_total is None:
        msg = "Company not found"
        raise ValueError(msg)
    return int(new_total)


# ---------------------------------------------------------------------------
# Milestone definitions
# ---------------------------------------------------------------------------


async def get_or_create_milestone(db: AsyncSession, milestone: MilestoneDef) -> Milestone:
    """Fetch the definition row for an individual milestone, creating it if missing."""
    result = await db.execute(select(Milestone).where(Milestone.name == milestone.name))
    row = result.scalar_one_or_none()
    if row is not None:
        return row

    row = Milestone(**milestone_row(milestone))
    try:
        async with db.begin_nested():
            db.add(row)
    except IntegrityError:
        # Created concurrently by another submission
        result = await db.execute(select(Milestone).where(Milestone.name == milestone.name))
        return result.scalar_one()
    return row


async def get_or_create_company_milestone(db: AsyncSession, milestone: MilestoneDef) -> CompanyMilestone:
    """Fetch the definition row for a company milestone, creating it if missing."""
    result = await db.execute(select(CompanyMilestone).where(CompanyMilestone.name == milestone.name))
    row = result.scalar_one_or_none()
    if row is not None:
        return row

    row = CompanyMilestone(**company_milestone_row(milestone))
    try:
        async with db.begin_nested():
            db.add(row)
    except IntegrityError:
        result = await db.execute(select(CompanyMilestone).where(CompanyMilestone.name == milestone.name))
        return result.scalar_one()
    return row


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------


async def has_user_milestone(db: AsyncSession, user_id: int, milestone_name: str) -> bool:
    """Check if the user already holds a milestone."""
    result = await db.execute(
        select(UserMilestone.id).where(
            UserMilestone.user_id == user_id,
            UserMilestone.milestone_name == milestone_name,
        )
    )
    return result.scalar_one_or_none() is not None


async def has_company_milestone(db: AsyncSession, company_id: int, milestone_name: str) -> bool:
    """Check if the company already holds a milestone."""
    result = await db.execute(
        select(CompanyMilestoneAchievement.id).where(
            CompanyMilestoneAchievement.company_id == company_id,
            CompanyMilestoneAchievement.milestone_name == milestone_name,
        )
    )
    return result.scalar_one_or_none() is not None


async def insert_user_milestone(db: AsyncSession, user_id: int, milestone: MilestoneDef) -> bool:
    """Insert an achievement row. Returns False if the unique key already exists."""
    definition = await get_or_create_milestone(db, milestone)
    try:
        async with db.begin_nested():
            db.add(UserMilestone(
                user_id=user_id,
                milestone_id=definition.id,
                milestone_name=milestone.name,
                achieved_at=datetime.now(timezone.utc),
            ))
    except IntegrityError:
        return False  # Race condition: milestone already recorded
    return True


async def insert_company_milestone(
    db: AsyncSession,
    company_id: int,
    milestone: MilestoneDef,
    company_total: int,
) -> bool:
    """Insert a company achievement row. Returns False if the unique key already exists."""
    definition = await get_or_create_company_milestone(db, milestone)
    try:
        async with db.begin_nested():
            db.add(CompanyMilestoneAchievement(
                company_id=company_id,
                milestone_id=definition.id,
                milestone_name=milestone.name,
                total_seconds_at_achievement=company_total,
                achieved_at=datetime.now(timezone.utc),
            ))
    except IntegrityError:
        return False
    return True


async def record_user_milestone(db: AsyncSession, user_id: int, milestone: MilestoneDef) -> bool:
    """Record an individual milestone at most once. Returns True if newly recorded."""
    if await has_user_milestone(db, user_id, milestone.name):
        return False
    return await insert_user_milestone(db, user_id, milestone)


async def record_company_milestone(
    db: AsyncSession,
    company_id: int,
    milestone: MilestoneDef,
    company_total: int,
) -> bool:
    """Record a company milestone at most once. Returns True if newly recorded."""
    if await has_company_milestone(db, company_id, milestone.name):
        return False
    return await insert_company_milestone(db, company_id, milestone, company_total)


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


async def record_plank_session(db: AsyncSession, user: User, duration_seconds: int) -> PlankResult:
    """Record one plank hold for ``user`` and derive milestones and feed entries.

    Raises:
        ValueError: If the duration is not positive or the user has no company.
    """
    if duration_seconds <= 0:
        msg = "Duration must be a positive number of seconds"
        raise ValueError(msg)
    if user.company_id is None:
        msg = "User is not assigned to a company"
        raise ValueError(msg)

    user_id = user.id
    company_id = user.company_id
    now = datetime.now(timezone.utc)

    log = PlankLog(
        user_id=user_id,
        duration_seconds=duration_seconds,
        logged_at=now,
        created_at=now,
    )
    db.add(log)
    await db.flush()

    new_total = await increment_user_total(db, user_id, duration_seconds)
    old_total = new_total - duration_seconds

    # Totals can drop back under a threshold (admin deletions) and cross it
    # again; only milestones recorded just now are reported.
    achieved = [
        milestone
        for milestone in crossed_milestones(MILESTONES, old_total, new_total)
        if await record_user_milestone(db, user_id, milestone)
    ]

    activities = [
        await record_activity(
            db,
            company_id=company_id,
            user_id=user_id,
            activity_type=PLANK_LOGGED,
            message=f"Logged a {format_duration(duration_seconds)} plank",
            metadata={"duration_seconds": duration_seconds},
        )
    ]
    for milestone in achieved:
        activities.append(await record_activity(
            db,
            company_id=company_id,
            user_id=user_id,
            activity_type=MILESTONE_ACHIEVED,
            message=f"Achieved {milestone.name} milestone ({milestone.label})",
            metadata={"milestone": milestone.name, "threshold": milestone.seconds},
        ))

    company_total = await increment_company_total(db, company_id, duration_seconds)
    old_company_total = company_total - duration_seconds

    company_achieved = [
        milestone
        for milestone in crossed_milestones(COMPANY_MILESTONES, old_company_total, company_total)
        if await record_company_milestone(db, company_id, milestone, company_total)
    ]
    for milestone in company_achieved:
        activities.append(await record_activity(
            db,
            company_id=company_id,
            user_id=user_id,
            activity_type=COMPANY_MILESTONE_ACHIEVED,
            message=f"Company achieved {milestone.emoji} {milestone.name} milestone ({milestone.label})!",
            metadata={"milestone": milestone.name, "threshold": milestone.seconds},
        ))

    logger.info(
        "plank_logged",
        user_id=user_id,
        company_id=company_id,
        duration=duration_seconds,
        new_total=new_total,
        milestones=[m.name for m in achieved],
        company_milestones=[m.name for m in company_achieved],
    )

    return PlankResult(
        log_id=log.id,
        new_total=new_total,
        company_total=company_total,
        achieved_milestones=achieved,
        achieved_company_milestones=company_achieved,
        activities=activities,
    )
