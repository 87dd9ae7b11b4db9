"""Pydantic models for admin endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel


class AdminUserResponse(BaseModel):
    id: int
    email: str
    full_name: str
    company_id: int
    company_code: str
    is_admin: bool
    total_plank_seconds: int
    log_count: int
    tier: str
    created_at: datetime | None = None
    last_login: datetime | None = None


class AdminUserListResponse(BaseModel):
    users: list[AdminUserResponse]
    total: int
    page: int
    per_page: int


class ReassignCompanyRequest(BaseModel):
    company_id: int


class AdminPlankLogResponse(BaseModel):
    id: int
    user_id: int
    user_name: str
    user_email: str
    company_code: str
    duration_seconds: int
    logged_at: datetime
    created_at: datetime


class AdminPlankLogListResponse(BaseModel):
    logs: list[AdminPlankLogResponse]


class DailyActivityResponse(BaseModel):
    date: date
    logs: int
    total_seconds: int
    active_users: int


class TopPerformerResponse(BaseModel):
    user_id: int
    full_name: str
    company_code: str
    total_plank_seconds: int
    tier: str


class AnalyticsResponse(BaseModel):
    company_id: int | None = None
    daily_activity: list[DailyActivityResponse]
    tier_distribution: dict[str, int]
    top_performers: list[TopPerformerResponse]


class SystemStatsResponse(BaseModel):
    total_users: int
    total_plank_seconds: int
    total_logs: int
    average_duration_seconds: int
    active_today: int
    active_last_7_days: int


class DeletedResponse(BaseModel):
    id: int
    deleted: bool = True
