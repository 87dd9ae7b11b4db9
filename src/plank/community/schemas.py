"""Request/response schemas for the community wall."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CreatePostRequest(BaseModel):
    """Text post. Trimmed server-side; whitespace-only content is rejected."""

    content: str = Field(..., min_length=1, max_length=2000)


class EmojiPostRequest(BaseModel):
    emoji: str = Field(..., min_length=1, max_length=16)


class ReactionRequest(BaseModel):
    emoji: str = Field(..., min_length=1, max_length=16)


class PostResponse(BaseModel):
    id: int
    user_id: int
    author_name: str
    company_id: int
    company_code: str | None = None
    content: str | None = None
    emoji_type: str | None = None
    created_at: datetime
    reaction_counts: dict[str, int] = {}
    user_reactions: dict[str, bool] = {}


class PostListResponse(BaseModel):
    posts: list[PostResponse]


class ReactionResponse(BaseModel):
    post_id: int
    emoji: str
    reacted: bool
    count: int


class EmojiOptionsResponse(BaseModel):
    quick_emojis: list[str]
    reaction_emojis: list[str]
