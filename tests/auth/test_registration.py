"""Tests for registration under a company access code."""

from __future__ import annotations

from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import make_company
from plank.db.models import Company, User


def _payload(**overrides) -> dict:
    payload = {
        "email": "new.member@example.com",
        "password": "SecureP@ss1",
        "full_name": "New Member",
        "company_code": "ACME",
    }
    payload.update(overrides)
    return payload


class TestRegistration:
    async def test_register_success(self, client: AsyncClient, company: Company, mock_email_service):
        response = await client.post("/api/v1/auth/register", json=_payload())
        assert response.status_code == 201
        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["token_type"] == "bearer"
        user = data["user"]
        assert user["email"] == "new.member@example.com"
        assert user["full_name"] == "New Member"
        assert user["company_id"] == company.id
        assert user["company_name"] == "Acme Corp"
        assert user["company_code"] == "ACME"
        assert user["total_plank_seconds"] == 0
        assert user["is_admin"] is False

    async def test_company_code_is_case_insensitive(self, client: AsyncClient, company: Company):
        response = await client.post("/api/v1/auth/register", json=_payload(company_code="  acme "))
        assert response.status_code == 201
        assert response.json()["user"]["company_id"] == company.id

    async def test_email_is_lowercased(self, client: AsyncClient, company: Company):
        response = await client.post("/api/v1/auth/register", json=_payload(email="Mixed.Case@Example.com"))
        assert response.status_code == 201
        assert response.json()["user"]["email"] == "mixed.case@example.com"

    async def test_welcome_email_sent(self, client: AsyncClient, company: Company, mock_email_service):
        await client.post("/api/v1/auth/register", json=_payload())
        mock_email_service.send_template.assert_awaited_once()
        kwargs = mock_email_service.send_template.await_args.kwargs
        assert kwargs["template_name"] == "welcome"
        assert kwargs["context"]["company_name"] == "Acme Corp"

    async def test_email_failure_does_not_fail_registration(
        self, client: AsyncClient, company: Company, mock_email_service
    ):
        mock_email_service.send_template.side_effect = RuntimeError("smtp down")
        response = await client.post("/api/v1/auth/register", json=_payload())
        assert response.status_code == 201

    async def test_unknown_company_code_rejected(
        self, client: AsyncClient, company: Company, db_session: AsyncSession
    ):
        response = await client.post("/api/v1/auth/register", json=_payload(company_code="NOPE"))
        assert response.status_code == 400
        assert response.json()["detail"] == 'Company code "NOPE" not found'

        count = (await db_session.execute(select(func.count()).select_from(User))).scalar_one()
        assert count == 0

    async def test_inactive_company_rejected(self, client: AsyncClient, db_session: AsyncSession):
        await make_company(db_session, "CLOSED", "Closed Inc", is_active=False)
        await db_session.commit()

        response = await client.post("/api/v1/auth/register", json=_payload(company_code="CLOSED"))
        assert response.status_code == 400

    async def test_duplicate_email_rejected(self, client: AsyncClient, company: Company):
        await client.post("/api/v1/auth/register", json=_payload())
        response = await client.post("/api/v1/auth/register", json=_payload(email="NEW.member@example.com"))
        assert response.status_code == 409

    async def test_weak_password_rejected(self, client: AsyncClient, company: Company):
        response = await client.post("/api/v1/auth/register", json=_payload(password="short"))
        assert response.status_code == 400
        assert "password" in response.json()["detail"].lower()

    async def test_blank_name_rejected(self, client: AsyncClient, company: Company):
        response = await client.post("/api/v1/auth/register", json=_payload(full_name="   "))
        assert response.status_code == 400

    async def test_invalid_email_rejected(self, client: AsyncClient, company: Company):
        response = await client.post("/api/v1/auth/register", json=_payload(email="not-an-email"))
        assert response.status_code == 422

    async def test_missing_company_code_rejected(self, client: AsyncClient):
        payload = _payload()
        del payload["company_code"]
        response = await client.post("/api/v1/auth/register", json=payload)
        assert response.status_code == 422
