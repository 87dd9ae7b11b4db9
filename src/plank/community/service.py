"""Company community wall: text posts, quick emoji posts and reactions.

Everything is scoped to the caller's company. A post belonging to another
company is reported as not found rather than forbidden.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from plank.config import get_settings
from plank.db.models import Company, CommunityPost, PostReaction, User

logger = structlog.get_logger()

QUICK_EMOJIS: tuple[str, ...] = ("\U0001f4aa", "\U0001f389", "❤️", "\U0001f525", "\U0001f44f", "⭐")
REACTION_EMOJIS: tuple[str, ...] = ("❤️", "\U0001f44d", "\U0001f525")


@dataclass
class PostView:
    post: CommunityPost
    author_name: str
    company_code: str | None = None
    reaction_counts: dict[str, int] = field(default_factory=dict)
    user_reactions: dict[str, bool] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Posting
# ---------------------------------------------------------------------------


async def create_text_post(db: AsyncSession, user: User, content: str) -> CommunityPost:
    """Publish a text post. Content is trimmed and must be non-empty."""
    text = (content or "").strip()
    if not text:
        msg = "Post content cannot be empty"
        raise ValueError(msg)
    limit = get_settings().community_post_max_length
    if len(text) > limit:
        msg = f"Post content must be at most {limit} characters"
        raise ValueError(msg)

    post = CommunityPost(
        company_id=user.company_id,
        user_id=user.id,
        content=text,
        emoji_type=None,
        created_at=datetime.now(timezone.utc),
    )
    db.add(post)
    await db.flush()
    logger.info("community_post_created", user_id=user.id, company_id=user.company_id, post_id=post.id)
    return post


async def create_emoji_post(db: AsyncSession, user: User, emoji: str) -> CommunityPost:
    """Publish one of the quick emoji posts."""
    if emoji not in QUICK_EMOJIS:
        msg = "Unsupported emoji"
        raise ValueError(msg)

    post = CommunityPost(
        company_id=user.company_id,
        user_id=user.id,
        content=None,
        emoji_type=emoji,
        created_at=datetime.now(timezone.utc),
    )
    db.add(post)
    await db.flush()
    logger.info("community_emoji_posted", user_id=user.id, company_id=user.company_id, emoji=emoji)
    return post


# ---------------------------------------------------------------------------
# Reactions
# ---------------------------------------------------------------------------


async def _get_company_post(db: AsyncSession, post_id: int, company_id: int) -> CommunityPost:
    result = await db.execute(
        select(CommunityPost).where(CommunityPost.id == post_id, CommunityPost.company_id == company_id)
    )
    post = result.scalar_one_or_none()
    if post is None:
        msg = "Post not found"
        raise ValueError(msg)
    return post


async def count_reactions(db: AsyncSession, post_id: int, emoji: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(PostReaction).where(
            PostReaction.post_id == post_id,
            PostReaction.emoji == emoji,
        )
    )
    return int(result.scalar_one())


async def toggle_reaction(db: AsyncSession, user: User, post_id: int, emoji: str) -> tuple[bool, int]:
    """Add the reaction if absent, remove it if present.

    Returns (reacted, count) as seen after the toggle.
    """
    if emoji not in REACTION_EMOJIS:
        msg = "Unsupported reaction"
        raise ValueError(msg)
    await _get_company_post(db, post_id, user.company_id)

    removed = await db.execute(
        delete(PostReaction).where(
            PostReaction.post_id == post_id,
            PostReaction.user_id == user.id,
            PostReaction.emoji == emoji,
        )
    )
    if removed.rowcount:
        reacted = False
    else:
        reacted = True
        try:
            async with db.begin_nested():
                db.add(PostReaction(
                    post_id=post_id,
                    user_id=user.id,
                    emoji=emoji,
                    created_at=datetime.now(timezone.utc),
                ))
        except IntegrityError:
            pass  # A concurrent request added the same reaction

    return reacted, await count_reactions(db, post_id, emoji)


async def _reaction_maps(
    db: AsyncSession,
    post_ids: list[int],
    viewer_id: int | None,
) -> tuple[dict[int, dict[str, int]], dict[int, dict[str, bool]]]:
    counts: dict[int, dict[str, int]] = {pid: dict.fromkeys(REACTION_EMOJIS, 0) for pid in post_ids}
    mine: dict[int, dict[str, bool]] = {pid: dict.fromkeys(REACTION_EMOJIS, False) for pid in post_ids}
    if not post_ids:
        return counts, mine

    result = await db.execute(
        select(PostReaction.post_id, PostReaction.emoji, func.count())
        .where(PostReaction.post_id.in_(post_ids))
        .group_by(PostReaction.post_id, PostReaction.emoji)
    )
    for post_id, emoji, n in result:
        counts[post_id][emoji] = int(n)

    if viewer_id is not None:
        result = await db.execute(
            select(PostReaction.post_id, PostReaction.emoji).where(
                PostReaction.post_id.in_(post_ids),
                PostReaction.user_id == viewer_id,
            )
        )
        for post_id, emoji in result:
            mine[post_id][emoji] = True

    return counts, mine


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


async def list_company_posts(
    db: AsyncSession,
    company_id: int,
    viewer_id: int,
    limit: int | None = None,
) -> list[PostView]:
    """Latest posts on a company wall with reaction counts and the viewer's own reactions."""
    limit = limit or get_settings().community_page_size
    result = await db.execute(
        select(CommunityPost, User.full_name)
        .join(User, CommunityPost.user_id == User.id)
        .where(CommunityPost.company_id == company_id)
        .order_by(CommunityPost.created_at.desc(), CommunityPost.id.desc())
        .limit(limit)
    )
    rows = result.all()
    counts, mine = await _reaction_maps(db, [r.CommunityPost.id for r in rows], viewer_id)

    return [
        PostView(
            post=r.CommunityPost,
            author_name=r.full_name,
            reaction_counts=counts[r.CommunityPost.id],
            user_reactions=mine[r.CommunityPost.id],
        )
        for r in rows
    ]


async def list_posts_for_moderation(
    db: AsyncSession,
    company_id: int | None = None,
    limit: int = 200,
) -> list[PostView]:
    """Latest posts across companies (or one company) for admins."""
    query = (
        select(CommunityPost, User.full_name, Company.company_code)
        .join(User, CommunityPost.user_id == User.id)
        .join(Company, CommunityPost.company_id == Company.id)
    )
    if company_id is not None:
        query = query.where(CommunityPost.company_id == company_id)
    result = await db.execute(
        query.order_by(CommunityPost.created_at.desc(), CommunityPost.id.desc()).limit(limit)
    )
    rows = result.all()
    counts, _ = await _reaction_maps(db, [r.CommunityPost.id for r in rows], None)

    return [
        PostView(
            post=r.CommunityPost,
            author_name=r.full_name,
            company_code=r.company_code,
            reaction_counts=counts[r.CommunityPost.id],
        )
        for r in rows
    ]


async def delete_post(db: AsyncSession, post_id: int) -> None:
    """Remove a post together with its reactions."""
    post = await db.get(CommunityPost, post_id)
    if post is None:
        msg = "Post not found"
        raise ValueError(msg)

    await db.execute(delete(PostReaction).where(PostReaction.post_id == post_id))
    await db.delete(post)
    await db.flush()
    logger.info("community_post_deleted", post_id=post_id, company_id=post.company_id)
