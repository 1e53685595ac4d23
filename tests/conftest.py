"""Shared test fixtures.

Every test gets its own file-backed SQLite database (FK cascades on, writers
serialized with BEGIN IMMEDIATE), so nothing here needs Postgres or Redis.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import AsyncGenerator, AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from pathlib import Path

os.environ["CURATE_JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["CURATE_LOG_FORMAT"] = "console"
os.environ["CURATE_RATE_LIMIT_ENABLED"] = "true"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from curate.access.gateway import AccessGateway
from curate.access.policy import Caller
from curate.auth.jwt import create_access_token
from curate.config import get_settings
from curate.database import close_db, get_engine, get_session_factory, init_db
from curate.db.base import Base
from curate.db.models import Collection

get_settings.cache_clear()

GatewayFactory = Callable[..., AbstractAsyncContextManager[AccessGateway]]


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[str, None]:
    """Fresh schema in a temp SQLite file; yields the URL."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'curate.db'}"
    await init_db(url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield url
    await close_db()


@pytest.fixture
def gateway_for(database: str) -> GatewayFactory:
    """Open a gateway for a caller on its own session.

    Usage::

        async with gateway_for(owner) as gw:
            await gw.create_collection("Reading List")
    """

    @asynccontextmanager
    async def _open(caller: Caller, **kwargs: object) -> AsyncIterator[AccessGateway]:
        async with get_session_factory()() as session:
            yield AccessGateway(session, caller, **kwargs)

    return _open


async def fetch_collection(collection_id: uuid.UUID) -> Collection | None:
    """Read a collection row on a fresh session, bypassing the policy."""
    async with get_session_factory()() as session:
        return await session.get(Collection, collection_id)


@pytest.fixture
def owner() -> Caller:
    return Caller(user_id=uuid.uuid4())


@pytest.fixture
def other() -> Caller:
    return Caller(user_id=uuid.uuid4())


@pytest.fixture
def system_writer() -> Caller:
    return Caller(user_id=uuid.uuid4(), roles=frozenset({"system_writer"}))


@pytest.fixture
def anonymous() -> Caller:
    return Caller.anonymous()


def auth_headers(caller: Caller) -> dict[str, str]:
    """Bearer header for ``caller``; empty for the anonymous caller."""
    if caller.is_anonymous:
        return {}
    token = create_access_token(caller.user_id, caller.roles)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(database: str) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client over the app; the database fixture stands in for lifespan startup."""
    from curate.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
