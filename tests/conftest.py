"""Shared test fixtures.

Each test gets a fresh SQLite database file with the schema created from the
ORM metadata and milestone definitions seeded. Redis is not configured, so
lockout, rate limiting and pub/sub are inert unless a test installs a fake.
"""

from __future__ import annotations

import os

os.environ["PLANK_REDIS_URL"] = ""
os.environ["PLANK_JWT_ALGORITHM"] = "HS256"
os.environ["PLANK_JWT_SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["PLANK_LOG_FORMAT"] = "console"

from collections.abc import AsyncGenerator  # noqa: E402
from datetime import date  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from plank.auth.jwt import create_access_token, reset_keys  # noqa: E402
from plank.auth.password import hash_password  # noqa: E402
from plank.config import get_settings  # noqa: E402
from plank.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from plank.db.base import Base  # noqa: E402
from plank.db.models import Company, User  # noqa: E402
from plank.email.service import reset_email_service  # noqa: E402
from plank.main import create_app  # noqa: E402
from plank.progress.seed import seed_milestones  # noqa: E402

get_settings.cache_clear()
reset_keys()

TEST_PASSWORD = "SecureP@ss1"
_password_hash = hash_password(TEST_PASSWORD)


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh schema in a per-test SQLite file. Yields the session factory."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'plank_test.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = get_session_factory()
    async with factory() as db:
        await seed_milestones(db)

    yield factory

    await close_db()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for setup and assertions.

    Commit (or roll back) before calling the API: SQLite allows one writer.
    """
    async with database() as session:
        yield session


@pytest_asyncio.fixture
async def client(database) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the app (the lifespan is not run)."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture(autouse=True)
def mock_email_service(monkeypatch):
    """Mock the email service to prevent actual email sending."""
    mock_service = MagicMock()
    mock_service.send_template = AsyncMock(return_value=True)
    mock_service.send_email = AsyncMock(return_value=True)

    monkeypatch.setattr("plank.auth.router.get_email_service", lambda *a, **kw: mock_service)
    yield mock_service
    reset_email_service()


# ---------------------------------------------------------------------------
# Data helpers
# ---------------------------------------------------------------------------


async def make_company(
    db: AsyncSession,
    code: str = "ACME",
    name: str = "Acme Corp",
    *,
    is_active: bool = True,
    total_plank_seconds: int = 0,
) -> Company:
    company = Company(
        company_name=name,
        company_code=code,
        challenge_start_date=date(2026, 1, 1),
        challenge_end_date=date(2026, 12, 31),
        is_active=is_active,
        total_plank_seconds=total_plank_seconds,
    )
    db.add(company)
    await db.flush()
    return company


async def make_user(
    db: AsyncSession,
    company: Company,
    email: str = "member@example.com",
    full_name: str = "Pat Member",
    *,
    is_admin: bool = False,
    total_plank_seconds: int = 0,
) -> User:
    user = User(
        company_id=company.id,
        email=email,
        password_hash=_password_hash,
        full_name=full_name,
        is_admin=is_admin,
        total_plank_seconds=total_plank_seconds,
        login_count=0,
    )
    db.add(user)
    await db.flush()
    return user


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.company_id, is_admin=user.is_admin)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def company(db_session: AsyncSession) -> Company:
    company = await make_company(db_session)
    await db_session.commit()
    return company


@pytest_asyncio.fixture
async def member(db_session: AsyncSession, company: Company) -> User:
    user = await make_user(db_session, company)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession, company: Company) -> User:
    user = await make_user(db_session, company, "admin@example.com", "Alex Admin", is_admin=True)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, member: User) -> AsyncClient:
    """Client authenticated as a regular company member."""
    client.headers.update(auth_headers(member))
    return client


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient, admin: User) -> AsyncClient:
    """Client authenticated as an admin."""
    client.headers.update(auth_headers(admin))
    return client
