"""Middleware tests — request ID, rate limiting, CORS, error handling."""

from collections.abc import AsyncGenerator

import fakeredis.aioredis
import pytest
import pytest_asyncio
import structlog
from httpx import ASGITransport, AsyncClient

from curate.config import get_settings


@pytest_asyncio.fixture
async def limited_client(
    database: str, monkeypatch: pytest.MonkeyPatch
) -> AsyncGenerator[AsyncClient, None]:
    """Client whose rate limiter allows 3 requests per window against an in-memory Redis."""
    from curate.main import create_app
    from curate.middleware import rate_limit

    fake = fakeredis.aioredis.FakeRedis(decode_responses=True)
    monkeypatch.setenv("CURATE_RATE_LIMIT_REQUESTS", "3")
    monkeypatch.setattr(rate_limit, "get_redis", lambda: fake)
    get_settings.cache_clear()

    app = create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    await fake.aclose()
    get_settings.cache_clear()


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    """Request ID is auto-generated when not provided."""
    response = await client.get("/health")
    assert "x-request-id" in response.headers
    assert len(response.headers["x-request-id"]) == 36  # UUID format


@pytest.mark.asyncio
async def test_request_id_preserved(client: AsyncClient) -> None:
    """Custom request ID is echoed back in response."""
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


@pytest.mark.asyncio
async def test_request_context_bound_for_logging(client: AsyncClient) -> None:
    """Request id, method and path are bound to the structlog context for the request."""
    try:
        await client.get("/version", headers={"X-Request-Id": "ctx-1"})
        bound = structlog.contextvars.get_contextvars()
        assert bound["request_id"] == "ctx-1"
        assert bound["method"] == "GET"
        assert bound["path"] == "/version"
    finally:
        structlog.contextvars.clear_contextvars()


@pytest.mark.asyncio
async def test_rate_limit_fails_open_without_redis(client: AsyncClient) -> None:
    """No Redis means no limiting and no rate-limit headers."""
    for _ in range(5):
        response = await client.get("/version")
        assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


@pytest.mark.asyncio
async def test_rate_limit_headers(limited_client: AsyncClient) -> None:
    response = await limited_client.get("/version")
    assert response.headers["x-ratelimit-limit"] == "3"
    assert response.headers["x-ratelimit-remaining"] == "2"


@pytest.mark.asyncio
async def test_rate_limit_blocks_excess(limited_client: AsyncClient) -> None:
    """4th request in the window returns 429 with Retry-After header."""
    for _ in range(3):
        assert (await limited_client.get("/version")).status_code == 200
    response = await limited_client.get("/version")
    assert response.status_code == 429
    assert response.headers["retry-after"] == "60"
    assert "detail" in response.json()


@pytest.mark.asyncio
async def test_health_exempt_from_rate_limit(limited_client: AsyncClient) -> None:
    for _ in range(10):
        response = await limited_client.get("/health")
        assert response.status_code == 200


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient) -> None:
    """CORS preflight returns access-control-allow-origin for configured origin."""
    response = await client.options(
        "/api/v1/collections/public",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


@pytest.mark.asyncio
async def test_404_returns_json(client: AsyncClient) -> None:
    """Unknown paths return 404 with JSON body."""
    response = await client.get("/nonexistent-path")
    assert response.status_code == 404
    assert response.json()["detail"] == "Not Found"


@pytest.mark.asyncio
async def test_validation_error_shape(client: AsyncClient) -> None:
    response = await client.get("/api/v1/collections/not-a-uuid")
    assert response.status_code == 422
    data = response.json()
    assert data["detail"] == "Validation error"
    assert data["errors"][0]["loc"] == ["path", "collection_id"]
