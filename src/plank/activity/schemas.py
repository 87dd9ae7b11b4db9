"""Pydantic response models for the company activity feed."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ActivityResponse(BaseModel):
    id: int
    type: str
    message: str
    user_id: int
    user_name: str
    timestamp: datetime
    metadata: dict = {}


class ActivityFeedResponse(BaseModel):
    activities: list[ActivityResponse]
    total: int
    page: int
    per_page: int
