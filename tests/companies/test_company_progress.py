"""Company endpoints and progress aggregation."""

from __future__ import annotations

from datetime import date

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import auth_headers, make_company, make_user
from plank.companies.service import (
    create_company,
    get_company_by_code,
    get_company_progress,
    list_companies,
    update_company,
)
from plank.db.models import Company, User


class TestCompanyService:
    async def test_create_normalizes_code(self, db_session: AsyncSession):
        company = await create_company(db_session, " Globex ", "globex-1", date(2026, 1, 1), date(2026, 3, 31))
        assert company.company_code == "GLOBEX-1"
        assert company.company_name == "Globex"
        assert company.total_plank_seconds == 0

    async def test_duplicate_code_rejected(self, db_session: AsyncSession):
        await create_company(db_session, "Globex", "GLOBEX", date(2026, 1, 1), date(2026, 3, 31))
        with pytest.raises(ValueError, match="already exists"):
            await create_company(db_session, "Other", "globex", date(2026, 1, 1), date(2026, 3, 31))

    async def test_end_before_start_rejected(self, db_session: AsyncSession):
        with pytest.raises(ValueError, match="end date must be after start date"):
            await create_company(db_session, "Globex", "GLOBEX", date(2026, 3, 1), date(2026, 1, 1))

    async def test_lookup_by_code_ignores_case(self, db_session: AsyncSession):
        company = await make_company(db_session)
        found = await get_company_by_code(db_session, "acme")
        assert found is not None
        assert found.id == company.id

    async def test_update_keeps_code(self, db_session: AsyncSession):
        company = await make_company(db_session)
        updated = await update_company(db_session, company.id, company_name="Acme Holdings", is_active=False)
        assert updated.company_name == "Acme Holdings"
        assert updated.company_code == "ACME"
        assert updated.is_active is False

    async def test_update_missing_company(self, db_session: AsyncSession):
        with pytest.raises(ValueError, match="not found"):
            await update_company(db_session, 999, company_name="Nobody")

    async def test_list_includes_member_counts(self, db_session: AsyncSession):
        acme = await make_company(db_session)
        await make_company(db_session, "EMPTY", "Empty Co")
        await make_user(db_session, acme, "a@example.com", "A")
        await make_user(db_session, acme, "b@example.com", "B")

        counts = {c.company_code: n for c, n in await list_companies(db_session)}
        assert counts == {"ACME": 2, "EMPTY": 0}

    async def test_progress_counts_participants(self, db_session: AsyncSession):
        company = await make_company(db_session, total_plank_seconds=1000)
        await make_user(db_session, company, "a@example.com", "A", total_plank_seconds=750)
        await make_user(db_session, company, "b@example.com", "B", total_plank_seconds=250)
        await make_user(db_session, company, "c@example.com", "C")

        progress = await get_company_progress(db_session, company.id, 250)
        assert progress.total_seconds == 1000
        assert progress.member_count == 3
        assert progress.participants == 2
        assert progress.contribution_percent == 25.0
        assert progress.current is None
        assert progress.next.name == "Bronze"


class TestCompanyEndpoints:
    async def test_my_company(self, authed_client: AsyncClient, company: Company):
        response = await authed_client.get("/api/v1/companies/me")
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == company.id
        assert data["company_code"] == "ACME"
        assert data["challenge_start_date"] == "2026-01-01"

    async def test_progress_before_any_logs(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/companies/me/progress")
        assert response.status_code == 200
        data = response.json()
        assert data["total_plank_seconds"] == 0
        assert data["participants"] == 0
        assert data["my_contribution_percent"] == 0.0
        assert data["next_milestone"] == "Bronze"
        assert [m["name"] for m in data["milestones"]] == ["Bronze", "Silver", "Gold", "Platinum"]
        assert not any(m["achieved"] for m in data["milestones"])

    async def test_progress_after_crossing_bronze(
        self, client: AsyncClient, db_session: AsyncSession, company: Company, member: User
    ):
        teammate = await make_user(db_session, company, "mate@example.com", "Sam Mate")
        company.total_plank_seconds = 29500
        await db_session.commit()

        response = await client.post(
            "/api/v1/planks", json={"duration_seconds": 600}, headers=auth_headers(teammate)
        )
        assert [m["name"] for m in response.json()["new_company_milestones"]] == ["Bronze"]

        data = (await client.get("/api/v1/companies/me/progress", headers=auth_headers(member))).json()
        assert data["total_plank_seconds"] == 30100
        assert data["participants"] == 1
        assert data["member_count"] == 2
        assert data["my_contribution_percent"] == 0.0
        assert data["current_milestone"] == "Bronze"
        bronze = data["milestones"][0]
        assert bronze["achieved"] is True
        assert bronze["total_seconds_at_achievement"] == 30100

    async def test_contribution_percent(self, authed_client: AsyncClient, db_session: AsyncSession, company: Company):
        await make_user(db_session, company, "mate@example.com", "Sam Mate", total_plank_seconds=300)
        company.total_plank_seconds = 300
        await db_session.commit()

        await authed_client.post("/api/v1/planks", json={"duration_seconds": 100})
        data = (await authed_client.get("/api/v1/companies/me/progress")).json()
        assert data["total_plank_seconds"] == 400
        assert data["my_contribution_percent"] == 25.0
