from __future__ import annotations

import json
import os
from typing import AsyncGenerator, Callable

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

# The app module reads settings at import time.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("RUN_MIGRATIONS_ON_STARTUP", "false")
os.environ.setdefault("AUTO_SEED", "false")

from precast_erp.api.main import app  # noqa: E402
from precast_erp.core.deps import get_ai_client  # noqa: E402
from precast_erp.db import models  # noqa: E402,F401
from precast_erp.db.base import Base  # noqa: E402
from precast_erp.db.session import get_async_session, make_session_factory  # noqa: E402
from precast_erp.services.ai.client import AIClient  # noqa: E402

AIHandler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def ai_calls() -> list:
    """Requests seen by the mock AI service, as (path, json body) pairs."""
    return []


@pytest.fixture
def ai_handler() -> dict:
    """
    Mutable mock AI behaviour: set `ai_handler["status"]` and
    `ai_handler["json"]` in a test to shape the reply.
    """
    return {"status": 200, "json": {}}


@pytest.fixture
def ai_client(ai_calls, ai_handler) -> AIClient:
    def handle(request: httpx.Request) -> httpx.Response:
        ai_calls.append((request.url.path, json.loads(request.content or b"{}")))
        return httpx.Response(ai_handler["status"], json=ai_handler["json"])

    return AIClient("http://ai.test", transport=httpx.MockTransport(handle))


@pytest.fixture
async def client(session_factory, ai_client) -> AsyncGenerator[httpx.AsyncClient, None]:
    async def override_session():
        async with session_factory() as session:
            yield session

    async def override_ai_client():
        yield ai_client

    app.dependency_overrides[get_async_session] = override_session
    app.dependency_overrides[get_ai_client] = override_ai_client
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test/api/v1") as http:
        yield http
    app.dependency_overrides.clear()
