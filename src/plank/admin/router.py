"""Admin endpoints: companies, users, moderation and analytics.

Every route requires an authenticated admin.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from plank.admin.analytics import daily_activity, system_stats, tier_distribution, top_performers
from plank.admin.schemas import (
    AdminPlankLogListResponse,
    AdminPlankLogResponse,
    AdminUserListResponse,
    AdminUserResponse,
    AnalyticsResponse,
    DailyActivityResponse,
    DeletedResponse,
    ReassignCompanyRequest,
    SystemStatsResponse,
    TopPerformerResponse,
)
from plank.admin.service import (
    delete_plank_log,
    get_admin_user,
    list_plank_logs,
    list_users,
    reassign_company,
)
from plank.auth.dependencies import get_current_admin
from plank.community.router import build_post_response
from plank.community.schemas import PostListResponse
from plank.community.service import delete_post, list_posts_for_moderation
from plank.companies.router import build_company_response
from plank.companies.schemas import (
    CompanyListResponse,
    CompanyResponse,
    CreateCompanyRequest,
    UpdateCompanyRequest,
)
from plank.companies.service import create_company, list_companies, update_company
from plank.database import get_session
from plank.db.models import User
from plank.progress.milestones import milestone_tier

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"], dependencies=[Depends(get_current_admin)])


def _not_found_or_bad_request(e: ValueError) -> HTTPException:
    detail = str(e)
    status = 404 if "not found" in detail.lower() else 400
    return HTTPException(status_code=status, detail=detail)


# ── Companies ──


@router.get("/companies", response_model=CompanyListResponse)
async def admin_list_companies(db: AsyncSession = Depends(get_session)) -> CompanyListResponse:
    """All companies with member counts and running totals."""
    rows = await list_companies(db)
    return CompanyListResponse(
        companies=[build_company_response(c, count) for c, count in rows],
        total=len(rows),
    )


@router.post("/companies", response_model=CompanyResponse, status_code=201)
async def admin_create_company(
    body: CreateCompanyRequest,
    db: AsyncSession = Depends(get_session),
) -> CompanyResponse:
    try:
        company = await create_company(
            db,
            company_name=body.company_name,
            company_code=body.company_code,
            challenge_start_date=body.challenge_start_date,
            challenge_end_date=body.challenge_end_date,
            is_active=body.is_active,
        )
    except ValueError as e:
        status = 409 if "already exists" in str(e) else 400
        raise HTTPException(status_code=status, detail=str(e)) from e
    await db.commit()
    return build_company_response(company, 0)


@router.patch("/companies/{company_id}", response_model=CompanyResponse)
async def admin_update_company(
    company_id: int,
    body: UpdateCompanyRequest,
    db: AsyncSession = Depends(get_session),
) -> CompanyResponse:
    """Update name, challenge dates or the active flag."""
    try:
        company = await update_company(
            db,
            company_id,
            company_name=body.company_name,
            challenge_start_date=body.challenge_start_date,
            challenge_end_date=body.challenge_end_date,
            is_active=body.is_active,
        )
    except ValueError as e:
        raise _not_found_or_bad_request(e) from e
    await db.commit()
    return build_company_response(company)


# ── Users ──


def _admin_user_response(user: User, company_code: str, log_count: int) -> AdminUserResponse:
    return AdminUserResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        company_id=user.company_id,
        company_code=company_code,
        is_admin=user.is_admin,
        total_plank_seconds=user.total_plank_seconds,
        log_count=log_count,
        tier=milestone_tier(user.total_plank_seconds),
        created_at=user.created_at,
        last_login=user.last_login,
    )


@router.get("/users", response_model=AdminUserListResponse)
async def admin_list_users(
    company_id: int | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_session),
) -> AdminUserListResponse:
    """Users ordered by total plank time."""
    rows, total = await list_users(db, company_id, page, per_page)
    return AdminUserListResponse(
        users=[_admin_user_response(*row) for row in rows],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.put("/users/{user_id}/company", response_model=AdminUserResponse)
async def admin_reassign_company(
    user_id: int,
    body: ReassignCompanyRequest,
    db: AsyncSession = Depends(get_session),
) -> AdminUserResponse:
    """Move a user to another company."""
    try:
        await reassign_company(db, user_id, body.company_id)
    except ValueError as e:
        raise _not_found_or_bad_request(e) from e
    await db.commit()

    row = await get_admin_user(db, user_id)
    if row is None:
        raise HTTPException(status_code=404, detail="User not found")
    return _admin_user_response(*row)


# ── Plank log moderation ──


@router.get("/planks", response_model=AdminPlankLogListResponse)
async def admin_list_planks(
    company_id: int | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_session),
) -> AdminPlankLogListResponse:
    """Latest plank logs, optionally for one company."""
    rows = await list_plank_logs(db, company_id, limit)
    return AdminPlankLogListResponse(logs=[
        AdminPlankLogResponse(
            id=log.id,
            user_id=log.user_id,
            user_name=name,
            user_email=email,
            company_code=code,
            duration_seconds=log.duration_seconds,
            logged_at=log.logged_at,
            created_at=log.created_at,
        )
        for log, name, email, code in rows
    ])


@router.delete("/planks/{log_id}", response_model=DeletedResponse)
async def admin_delete_plank(log_id: int, db: AsyncSession = Depends(get_session)) -> DeletedResponse:
    """Delete a plank log and take its time back off the running totals."""
    try:
        await delete_plank_log(db, log_id)
    except ValueError as e:
        raise _not_found_or_bad_request(e) from e
    await db.commit()
    return DeletedResponse(id=log_id)


# ── Community moderation ──


@router.get("/posts", response_model=PostListResponse)
async def admin_list_posts(
    company_id: int | None = Query(None),
    limit: int = Query(200, ge=1, le=500),
    db: AsyncSession = Depends(get_session),
) -> PostListResponse:
    """Latest community posts with reaction counts."""
    views = await list_posts_for_moderation(db, company_id, limit)
    return PostListResponse(posts=[build_post_response(v) for v in views])


@router.delete("/posts/{post_id}", response_model=DeletedResponse)
async def admin_delete_post(post_id: int, db: AsyncSession = Depends(get_session)) -> DeletedResponse:
    """Delete a post and its reactions."""
    try:
        await delete_post(db, post_id)
    except ValueError as e:
        raise _not_found_or_bad_request(e) from e
    await db.commit()
    return DeletedResponse(id=post_id)


# ── Analytics ──


@router.get("/analytics", response_model=AnalyticsResponse)
async def admin_analytics(
    company_id: int | None = Query(None),
    db: AsyncSession = Depends(get_session),
) -> AnalyticsResponse:
    """Last seven days of activity, tier distribution and top ten, optionally per company."""
    days = await daily_activity(db, company_id)
    tiers = await tier_distribution(db, company_id)
    leaders = await top_performers(db, company_id)
    return AnalyticsResponse(
        company_id=company_id,
        daily_activity=[
            DailyActivityResponse(
                date=d.day,
                logs=d.logs,
                total_seconds=d.total_seconds,
                active_users=d.active_users,
            )
            for d in days
        ],
        tier_distribution=tiers,
        top_performers=[
            TopPerformerResponse(
                user_id=u.id,
                full_name=u.full_name,
                company_code=code,
                total_plank_seconds=u.total_plank_seconds,
                tier=milestone_tier(u.total_plank_seconds),
            )
            for u, code in leaders
        ],
    )


@router.get("/stats", response_model=SystemStatsResponse)
async def admin_system_stats(db: AsyncSession = Depends(get_session)) -> SystemStatsResponse:
    """Platform-wide totals."""
    stats = await system_stats(db)
    return SystemStatsResponse(
        total_users=stats.total_users,
        total_plank_seconds=stats.total_plank_seconds,
        total_logs=stats.total_logs,
        average_duration_seconds=stats.average_duration_seconds,
        active_today=stats.active_today,
        active_last_7_days=stats.active_last_7_days,
    )
