"""Admin analytics: daily activity, milestone tiers, leaders and system totals.

Day boundaries are UTC midnights.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import case, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from plank.db.models import Company, PlankLog, User
from plank.progress.milestones import MILESTONES, STARTER_TIER

TIER_ORDER: tuple[str, ...] = (STARTER_TIER, *(m.name for m in MILESTONES))


@dataclass
class DailyActivity:
    day: date
    logs: int
    total_seconds: int
    active_users: int


@dataclass
class SystemStats:
    total_users: int
    total_plank_seconds: int
    total_logs: int
    average_duration_seconds: int
    active_today: int
    active_last_7_days: int


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _company_filter(company_id: int | None) -> list:
    return [User.company_id == company_id] if company_id is not None else []


async def daily_activity(
    db: AsyncSession,
    company_id: int | None = None,
    days: int = 7,
    today: date | None = None,
) -> list[DailyActivity]:
    """Per-day log count, seconds and distinct users, oldest day first."""
    today = today or datetime.now(timezone.utc).date()
    out = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        start = _day_start(day)
        result = await db.execute(
            select(
                func.count(PlankLog.id),
                func.coalesce(func.sum(PlankLog.duration_seconds), 0),
                func.count(distinct(PlankLog.user_id)),
            )
            .join(User, PlankLog.user_id == User.id)
            .where(
                PlankLog.created_at >= start,
                PlankLog.created_at < start + timedelta(days=1),
                *_company_filter(company_id),
            )
        )
        logs, seconds, users = result.one()
        out.append(DailyActivity(day=day, logs=int(logs), total_seconds=int(seconds), active_users=int(users)))
    return out


async def tier_distribution(db: AsyncSession, company_id: int | None = None) -> dict[str, int]:
    """Number of users per milestone tier, Starter first."""
    tier = case(
        *[(User.total_plank_seconds >= m.seconds, m.name) for m in reversed(MILESTONES)],
        else_=STARTER_TIER,
    )
    tiers = select(tier.label("tier")).where(*_company_filter(company_id)).subquery()
    result = await db.execute(select(tiers.c.tier, func.count()).group_by(tiers.c.tier))
    counts = dict.fromkeys(TIER_ORDER, 0)
    for name, n in result:
        counts[name] = int(n)
    return counts


async def top_performers(
    db: AsyncSession,
    company_id: int | None = None,
    limit: int = 10,
) -> list[tuple[User, str]]:
    """Users with the highest totals, with their company code."""
    result = await db.execute(
        select(User, Company.company_code)
        .join(Company, User.company_id == Company.id)
        .where(*_company_filter(company_id))
        .order_by(User.total_plank_seconds.desc(), User.id)
        .limit(limit)
    )
    return [(user, code) for user, code in result]


async def system_stats(db: AsyncSession, now: datetime | None = None) -> SystemStats:
    """Platform-wide totals."""
    now = now or datetime.now(timezone.utc)
    today_start = _day_start(now.date())
    week_ago = now - timedelta(days=7)

    users, seconds = (
        await db.execute(
            select(func.count(User.id), func.coalesce(func.sum(User.total_plank_seconds), 0))
        )
    ).one()
    logs, avg = (
        await db.execute(
            select(func.count(PlankLog.id), func.coalesce(func.avg(PlankLog.duration_seconds), 0))
        )
    ).one()

    async def _active_since(since: datetime) -> int:
        result = await db.execute(
            select(func.count(distinct(PlankLog.user_id))).where(PlankLog.created_at >= since)
        )
        return int(result.scalar_one())

    return SystemStats(
        total_users=int(users),
        total_plank_seconds=int(seconds),
        total_logs=int(logs),
        average_duration_seconds=round(float(avg)),
        active_today=await _active_since(today_start),
        active_last_7_days=await _active_since(week_ago),
    )
