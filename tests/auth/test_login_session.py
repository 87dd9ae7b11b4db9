"""Login, token refresh, logout and the current-user endpoint."""

from __future__ import annotations

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import TEST_PASSWORD, auth_headers
from plank.auth.jwt import create_refresh_token
from plank.db.models import User


async def _login(client: AsyncClient, email: str = "member@example.com", password: str = TEST_PASSWORD):
    return await client.post("/api/v1/auth/login", json={"email": email, "password": password})


class TestLogin:
    async def test_login_success(self, client: AsyncClient, member: User):
        response = await _login(client)
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == member.id
        assert data["user"]["company_code"] == "ACME"
        assert data["user"]["login_count"] == 1
        assert data["expires_in"] > 0

    async def test_login_email_case_insensitive(self, client: AsyncClient, member: User):
        response = await _login(client, email="MEMBER@example.com")
        assert response.status_code == 200

    async def test_wrong_password(self, client: AsyncClient, member: User):
        response = await _login(client, password="WrongPass1")
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    async def test_unknown_email(self, client: AsyncClient, member: User):
        response = await _login(client, email="ghost@example.com")
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    async def test_banned_user(self, client: AsyncClient, db_session: AsyncSession, member: User):
        member.is_banned = True
        await db_session.commit()
        response = await _login(client)
        assert response.status_code == 403


class TestTokenRefresh:
    async def test_refresh_token_rotation(self, client: AsyncClient, member: User):
        tokens = (await _login(client)).json()
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 200
        data = response.json()
        assert data["refresh_token"] != tokens["refresh_token"]
        assert data["user"]["id"] == member.id

    async def test_refresh_token_invalid(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": "not_a_valid_jwt_token"})
        assert response.status_code == 401

    async def test_unknown_refresh_token(self, client: AsyncClient, member: User):
        token = create_refresh_token(member.id, token_id="never-stored")
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": token})
        assert response.status_code == 401

    async def test_reuse_after_rotation_revokes_everything(self, client: AsyncClient, member: User):
        old_refresh = (await _login(client)).json()["refresh_token"]

        rotated = await client.post("/api/v1/auth/refresh", json={"refresh_token": old_refresh})
        new_refresh = rotated.json()["refresh_token"]

        reuse = await client.post("/api/v1/auth/refresh", json={"refresh_token": old_refresh})
        assert reuse.status_code == 401

        # The replacement was revoked too
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": new_refresh})
        assert response.status_code == 401

    async def test_access_token_not_accepted_as_refresh(self, client: AsyncClient, member: User):
        access = (await _login(client)).json()["access_token"]
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": access})
        assert response.status_code == 401


class TestLogout:
    async def test_logout_revokes_refresh_token(self, client: AsyncClient, member: User):
        refresh = (await _login(client)).json()["refresh_token"]

        response = await client.post("/api/v1/auth/logout", json={"refresh_token": refresh})
        assert response.status_code == 200
        assert response.json() == {"status": "logged_out"}

        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh})
        assert response.status_code == 401

    async def test_logout_with_garbage_token_succeeds(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/logout", json={"refresh_token": "garbage"})
        assert response.status_code == 200


class TestCurrentUser:
    async def test_me(self, authed_client: AsyncClient, member: User):
        response = await authed_client.get("/api/v1/auth/me")
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == member.id
        assert data["full_name"] == "Pat Member"
        assert data["company_name"] == "Acme Corp"

    async def test_me_requires_token(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "Not authenticated"

    async def test_me_rejects_bad_token(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401

    async def test_banned_user_forbidden(self, client: AsyncClient, db_session: AsyncSession, member: User):
        member.is_banned = True
        await db_session.commit()
        response = await client.get("/api/v1/auth/me", headers=auth_headers(member))
        assert response.status_code == 403
