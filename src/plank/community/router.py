"""Community wall endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from plank.auth.dependencies import get_current_user
from plank.community.schemas import (
    CreatePostRequest,
    EmojiOptionsResponse,
    EmojiPostRequest,
    PostListResponse,
    PostResponse,
    ReactionRequest,
    ReactionResponse,
)
from plank.community.service import (
    QUICK_EMOJIS,
    REACTION_EMOJIS,
    PostView,
    create_emoji_post,
    create_text_post,
    list_company_posts,
    toggle_reaction,
)
from plank.database import get_session
from plank.db.models import CommunityPost, User

router = APIRouter(prefix="/api/v1/community", tags=["Community"])


def build_post_response(view: PostView) -> PostResponse:
    post = view.post
    return PostResponse(
        id=post.id,
        user_id=post.user_id,
        author_name=view.author_name,
        company_id=post.company_id,
        company_code=view.company_code,
        content=post.content,
        emoji_type=post.emoji_type,
        created_at=post.created_at,
        reaction_counts=view.reaction_counts,
        user_reactions=view.user_reactions,
    )


def _new_post_response(post: CommunityPost, user: User) -> PostResponse:
    return build_post_response(PostView(
        post=post,
        author_name=user.full_name,
        reaction_counts=dict.fromkeys(REACTION_EMOJIS, 0),
        user_reactions=dict.fromkeys(REACTION_EMOJIS, False),
    ))


@router.get("/emojis", response_model=EmojiOptionsResponse)
async def emoji_options() -> EmojiOptionsResponse:
    """Emoji sets accepted for quick posts and reactions."""
    return EmojiOptionsResponse(quick_emojis=list(QUICK_EMOJIS), reaction_emojis=list(REACTION_EMOJIS))


@router.get("/posts", response_model=PostListResponse)
async def list_posts(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PostListResponse:
    """Latest posts on the caller's company wall."""
    views = await list_company_posts(db, user.company_id, user.id)
    return PostListResponse(posts=[build_post_response(v) for v in views])


@router.post("/posts", response_model=PostResponse, status_code=201)
async def create_post(
    body: CreatePostRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PostResponse:
    """Publish a text post."""
    try:
        post = await create_text_post(db, user, body.content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return _new_post_response(post, user)


@router.post("/posts/emoji", response_model=PostResponse, status_code=201)
async def post_emoji(
    body: EmojiPostRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PostResponse:
    """Publish a quick emoji post."""
    try:
        post = await create_emoji_post(db, user, body.emoji)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return _new_post_response(post, user)


@router.post("/posts/{post_id}/reactions", response_model=ReactionResponse)
async def react_to_post(
    post_id: int,
    body: ReactionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ReactionResponse:
    """Toggle the caller's reaction on a post."""
    try:
        reacted, count = await toggle_reaction(db, user, post_id, body.emoji)
    except ValueError as e:
        status = 404 if "not found" in str(e).lower() else 400
        raise HTTPException(status_code=status, detail=str(e)) from e
    await db.commit()
    return ReactionResponse(post_id=post_id, emoji=body.emoji, reacted=reacted, count=count)
