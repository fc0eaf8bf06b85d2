"""Fixtures for API tests."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from partner_wallet.api import events_router, partners_router, transfers_router
from partner_wallet.config import get_settings
from partner_wallet.main import register_error_handlers
from partner_wallet.sessions import SessionRegistry
from partner_wallet.utils.db import get_db
from partner_wallet.utils.redis_client import get_redis


@pytest_asyncio.fixture
async def app(session_factory) -> FastAPI:
    """Test app wired to the in-memory database, Redis disabled."""
    app = FastAPI(title="Test App")
    register_error_handlers(app)
    app.include_router(transfers_router, prefix="/api/v1")
    app.include_router(partners_router, prefix="/api/v1")
    app.include_router(events_router, prefix="/api/v1")
    app.state.sessions = SessionRegistry()

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: None
    return app


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def api_headers() -> dict[str, str]:
    return {"X-API-Key": get_settings().internal_api_key}


@pytest.fixture
def acting_as(api_headers):
    def _headers(partner_id: str) -> dict[str, str]:
        return {**api_headers, "X-Acting-Partner-Id": partner_id}

    return _headers
