"""Tests for the password reset flow."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from httpx import AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from plank.db.models import PasswordResetToken, User


async def _request_reset_token(client: AsyncClient, mock_email_service) -> str:
    response = await client.post("/api/v1/auth/forgot-password", json={"email": "member@example.com"})
    assert response.status_code == 200
    reset_url = mock_email_service.send_template.await_args.kwargs["context"]["reset_url"]
    return reset_url.split("token=", 1)[1]


class TestPasswordReset:
    async def test_forgot_password_sends_email(self, client: AsyncClient, member: User, mock_email_service):
        await _request_reset_token(client, mock_email_service)
        assert mock_email_service.send_template.await_args.kwargs["template_name"] == "password_reset"

    async def test_forgot_password_unknown_email_200(self, client: AsyncClient, mock_email_service):
        response = await client.post("/api/v1/auth/forgot-password", json={"email": "ghost@example.com"})
        assert response.status_code == 200
        mock_email_service.send_template.assert_not_awaited()

    async def test_reset_then_login_with_new_password(
        self, client: AsyncClient, member: User, mock_email_service
    ):
        token = await _request_reset_token(client, mock_email_service)

        response = await client.post("/api/v1/auth/reset-password", json={
            "token": token,
            "new_password": "BrandNewPass9",
        })
        assert response.status_code == 200
        assert mock_email_service.send_template.await_args.kwargs["template_name"] == "password_changed"

        old = await client.post("/api/v1/auth/login", json={"email": "member@example.com", "password": "SecureP@ss1"})
        assert old.status_code == 401
        new = await client.post("/api/v1/auth/login", json={"email": "member@example.com", "password": "BrandNewPass9"})
        assert new.status_code == 200

    async def test_token_is_single_use(self, client: AsyncClient, member: User, mock_email_service):
        token = await _request_reset_token(client, mock_email_service)
        body = {"token": token, "new_password": "BrandNewPass9"}

        assert (await client.post("/api/v1/auth/reset-password", json=body)).status_code == 200
        response = await client.post("/api/v1/auth/reset-password", json=body)
        assert response.status_code == 400

    async def test_new_request_invalidates_older_token(
        self, client: AsyncClient, member: User, mock_email_service
    ):
        first = await _request_reset_token(client, mock_email_service)
        await _request_reset_token(client, mock_email_service)

        response = await client.post("/api/v1/auth/reset-password", json={
            "token": first,
            "new_password": "BrandNewPass9",
        })
        assert response.status_code == 400

    async def test_expired_token_rejected(
        self, client: AsyncClient, db_session: AsyncSession, member: User, mock_email_service
    ):
        token = await _request_reset_token(client, mock_email_service)
        await db_session.execute(
            update(PasswordResetToken).values(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
        )
        await db_session.commit()

        response = await client.post("/api/v1/auth/reset-password", json={
            "token": token,
            "new_password": "BrandNewPass9",
        })
        assert response.status_code == 400
        assert "expired" in response.json()["detail"].lower()

    async def test_unknown_token_rejected(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/reset-password", json={
            "token": "definitely_not_a_valid_token_value",
            "new_password": "NewSecureP@ss1",
        })
        assert response.status_code == 400

    async def test_weak_password_rejected(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/reset-password", json={
            "token": "some_token_value",
            "new_password": "weak",
        })
        assert response.status_code == 400
        assert "password" in response.json()["detail"].lower()
