"""Middleware tests: request ID, rate limiting, CORS, error handling."""

from __future__ import annotations

from collections import Counter

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from plank.main import create_app


class _FakePipeline:
    def __init__(self, counts: Counter) -> None:
        self._counts = counts
        self._key: str | None = None

    def incr(self, key: str) -> None:
        self._key = key

    def expire(self, key: str, seconds: int) -> None:
        pass

    async def execute(self) -> list[int]:
        self._counts[self._key] += 1
        return [self._counts[self._key], True]


class _FakeRedis:
    def __init__(self) -> None:
        self.counts: Counter = Counter()

    def pipeline(self) -> _FakePipeline:
        return _FakePipeline(self.counts)


@pytest.fixture
def fake_redis(monkeypatch) -> _FakeRedis:
    fake = _FakeRedis()
    monkeypatch.setattr("plank.middleware.rate_limit.get_optional_redis", lambda: fake)
    return fake


async def test_request_id_generated(client: AsyncClient) -> None:
    """Request ID is auto-generated when not provided."""
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 36  # UUID format


async def test_request_id_preserved(client: AsyncClient) -> None:
    """Custom request ID is echoed back in response."""
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


async def test_no_rate_limit_without_redis(client: AsyncClient) -> None:
    response = await client.get("/version")
    assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


async def test_rate_limit_headers(client: AsyncClient, fake_redis: _FakeRedis) -> None:
    """Rate limit headers are present on non-exempt endpoints."""
    response = await client.get("/version")
    assert response.headers["x-ratelimit-limit"] == "100"
    assert response.headers["x-ratelimit-remaining"] == "99"


async def test_rate_limit_blocks_excess(client: AsyncClient, fake_redis: _FakeRedis) -> None:
    """101st request returns 429 with Retry-After header."""
    for _ in range(100):
        await client.get("/version")
    response = await client.get("/version")
    assert response.status_code == 429
    assert "retry-after" in response.headers
    assert "detail" in response.json()


async def test_health_exempt_from_rate_limit(client: AsyncClient, fake_redis: _FakeRedis) -> None:
    for _ in range(150):
        response = await client.get("/health")
        assert response.status_code == 200
    assert sum(fake_redis.counts.values()) == 0


async def test_cors_preflight(client: AsyncClient) -> None:
    """CORS preflight returns access-control-allow-origin for configured origin."""
    response = await client.options(
        "/health",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


async def test_404_returns_json(client: AsyncClient) -> None:
    response = await client.get("/nonexistent-path")
    assert response.status_code == 404
    assert response.headers["content-type"] == "application/json"
    assert response.json()["detail"] == "Not Found"


async def test_validation_error_shape(client: AsyncClient) -> None:
    response = await client.post("/api/v1/auth/login", json={"email": "not-an-email"})
    assert response.status_code == 422
    data = response.json()
    assert data["detail"] == "Validation error"
    assert isinstance(data["errors"], list)


async def test_database_error_returns_generic_500() -> None:
    app = create_app()

    async def broken() -> None:
        raise OperationalError("SELECT 1", {}, Exception("connection lost"))

    app.add_api_route("/broken-db", broken)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        response = await ac.get("/broken-db")
    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}


async def test_unhandled_error_returns_json_500() -> None:
    app = create_app()

    async def explode() -> None:
        raise RuntimeError("boom")

    app.add_api_route("/explode", explode)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/explode")
    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
