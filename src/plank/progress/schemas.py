"""Pydantic models for plank logging endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from plank.config import get_settings


class PlankLogRequest(BaseModel):
    """Submit a completed plank hold."""

    duration_seconds: int = Field(..., ge=1)

    @field_validator("duration_seconds")
    @classmethod
    def cap_duration(cls, v: int) -> int:
        """Reject holds longer than the configured maximum."""
        limit = get_settings().max_plank_seconds
        if v > limit:
            msg = f"Duration must be at most {limit} seconds"
            raise ValueError(msg)
        return v


class MilestoneInfo(BaseModel):
    name: str
    threshold_seconds: int
    label: str
    emoji: str | None = None


class PlankLogResponse(BaseModel):
    id: int
    duration_seconds: int
    logged_at: datetime


class PlankSubmitResponse(BaseModel):
    log: PlankLogResponse
    total_plank_seconds: int
    new_milestones: list[MilestoneInfo] = []
    new_company_milestones: list[MilestoneInfo] = []


class RecentLogsResponse(BaseModel):
    logs: list[PlankLogResponse]


class AchievedMilestone(BaseModel):
    name: str
    achieved_at: datetime


class PlankStatsResponse(BaseModel):
    total_plank_seconds: int
    total_logs: int
    longest_hold_seconds: int
    current_milestone: MilestoneInfo | None = None
    next_milestone: MilestoneInfo | None = None
    progress_percent: float
    milestones: list[AchievedMilestone] = []
