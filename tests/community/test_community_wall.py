"""Community wall: posts, quick emojis and reactions."""

from __future__ import annotations

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import auth_headers, make_company, make_user
from plank.community.service import QUICK_EMOJIS, REACTION_EMOJIS, create_text_post
from plank.db.models import Company, User

HEART = "❤️"
THUMBS_UP = "\U0001f44d"
MUSCLE = "\U0001f4aa"


async def _post(client: AsyncClient, content: str = "Day 3 done!") -> dict:
    response = await client.post("/api/v1/community/posts", json={"content": content})
    assert response.status_code == 201
    return response.json()


class TestEmojiOptions:
    async def test_lists_emoji_sets(self, client: AsyncClient):
        response = await client.get("/api/v1/community/emojis")
        assert response.status_code == 200
        data = response.json()
        assert data["quick_emojis"] == list(QUICK_EMOJIS)
        assert data["reaction_emojis"] == list(REACTION_EMOJIS)
        assert len(data["quick_emojis"]) == 6


class TestPosts:
    async def test_create_text_post(self, authed_client: AsyncClient, member: User):
        data = await _post(authed_client, "  Held it for two minutes!  ")
        assert data["content"] == "Held it for two minutes!"
        assert data["emoji_type"] is None
        assert data["author_name"] == "Pat Member"
        assert data["user_id"] == member.id
        assert data["reaction_counts"] == dict.fromkeys(REACTION_EMOJIS, 0)

    async def test_whitespace_post_rejected(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/community/posts", json={"content": "    "})
        assert response.status_code == 400
        assert response.json()["detail"] == "Post content cannot be empty"

    async def test_overlong_post_rejected(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/community/posts", json={"content": "x" * 1001})
        assert response.status_code == 400

    async def test_emoji_post(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/community/posts/emoji", json={"emoji": MUSCLE})
        assert response.status_code == 201
        data = response.json()
        assert data["emoji_type"] == MUSCLE
        assert data["content"] is None

    async def test_unsupported_emoji_rejected(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/community/posts/emoji", json={"emoji": "\U0001f4a9"})
        assert response.status_code == 400

    async def test_list_newest_first(self, authed_client: AsyncClient):
        await _post(authed_client, "first")
        await _post(authed_client, "second")

        response = await authed_client.get("/api/v1/community/posts")
        assert response.status_code == 200
        assert [p["content"] for p in response.json()["posts"]] == ["second", "first"]

    async def test_wall_is_company_scoped(
        self, authed_client: AsyncClient, db_session: AsyncSession, company: Company
    ):
        other_company = await make_company(db_session, "GLOBEX", "Globex")
        outsider = await make_user(db_session, other_company, "out@example.com", "Out Sider")
        await create_text_post(db_session, outsider, "Globex only")
        await db_session.commit()

        await _post(authed_client, "Acme only")
        posts = (await authed_client.get("/api/v1/community/posts")).json()["posts"]
        assert [p["content"] for p in posts] == ["Acme only"]


class TestReactions:
    async def test_toggle_on_and_off(self, authed_client: AsyncClient):
        post = await _post(authed_client)
        url = f"/api/v1/community/posts/{post['id']}/reactions"

        on = await authed_client.post(url, json={"emoji": HEART})
        assert on.status_code == 200
        assert on.json() == {"post_id": post["id"], "emoji": HEART, "reacted": True, "count": 1}

        off = await authed_client.post(url, json={"emoji": HEART})
        assert off.json()["reacted"] is False
        assert off.json()["count"] == 0

    async def test_counts_and_viewer_flags(
        self, authed_client: AsyncClient, db_session: AsyncSession, company: Company
    ):
        teammate = await make_user(db_session, company, "mate@example.com", "Sam Mate")
        await db_session.commit()

        post = await _post(authed_client)
        url = f"/api/v1/community/posts/{post['id']}/reactions"
        await authed_client.post(url, json={"emoji": THUMBS_UP})
        await authed_client.post(url, json={"emoji": THUMBS_UP}, headers=auth_headers(teammate))
        await authed_client.post(url, json={"emoji": HEART}, headers=auth_headers(teammate))

        listed = (await authed_client.get("/api/v1/community/posts")).json()["posts"][0]
        assert listed["reaction_counts"][THUMBS_UP] == 2
        assert listed["reaction_counts"][HEART] == 1
        assert listed["user_reactions"][THUMBS_UP] is True
        assert listed["user_reactions"][HEART] is False

    async def test_unsupported_reaction_rejected(self, authed_client: AsyncClient):
        post = await _post(authed_client)
        response = await authed_client.post(
            f"/api/v1/community/posts/{post['id']}/reactions", json={"emoji": MUSCLE}
        )
        assert response.status_code == 400

    async def test_missing_post(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/community/posts/999/reactions", json={"emoji": HEART})
        assert response.status_code == 404

    async def test_other_company_post_not_found(
        self, authed_client: AsyncClient, db_session: AsyncSession, company: Company
    ):
        other_company = await make_company(db_session, "GLOBEX", "Globex")
        outsider = await make_user(db_session, other_company, "out@example.com", "Out Sider")
        post = await create_text_post(db_session, outsider, "Globex only")
        await db_session.commit()

        response = await authed_client.post(
            f"/api/v1/community/posts/{post.id}/reactions", json={"emoji": HEART}
        )
        assert response.status_code == 404
