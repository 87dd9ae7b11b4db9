"""Pydantic models for company endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


class CompanyResponse(BaseModel):
    id: int
    company_name: str
    company_code: str
    challenge_start_date: date
    challenge_end_date: date
    is_active: bool
    total_plank_seconds: int = 0
    user_count: int | None = None
    created_at: datetime | None = None


class CompanyListResponse(BaseModel):
    companies: list[CompanyResponse]
    total: int


class CreateCompanyRequest(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=128)
    company_code: str = Field(..., min_length=1, max_length=32)
    challenge_start_date: date
    challenge_end_date: date
    is_active: bool = True


class UpdateCompanyRequest(BaseModel):
    company_name: str | None = Field(None, min_length=1, max_length=128)
    challenge_start_date: date | None = None
    challenge_end_date: date | None = None
    is_active: bool | None = None


class CompanyMilestoneInfo(BaseModel):
    name: str
    emoji: str
    threshold_seconds: int
    label: str
    achieved: bool = False
    achieved_at: datetime | None = None
    total_seconds_at_achievement: int | None = None


class CompanyProgressResponse(BaseModel):
    company_id: int
    company_name: str
    total_plank_seconds: int
    participants: int
    member_count: int
    my_contribution_percent: float
    current_milestone: str | None = None
    next_milestone: str | None = None
    progress_percent: float
    milestones: list[CompanyMilestoneInfo]
