"""Async engine and session lifecycle.

``TransferService`` commits or rolls back its own unit of work. Sessions
handed out by ``get_db`` only make sure nothing stays pending when a request
fails before or after the service ran.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from partner_wallet.config import get_settings
from partner_wallet.logging_config import get_logger

logger = get_logger(__name__)


def build_engine(database_url: str, **overrides: Any) -> AsyncEngine:
    """Create the async engine for a database URL.

    PostgreSQL gets the configured pool; an in-memory SQLite database is
    pinned to one shared connection so every session sees the same data.
    """
    settings = get_settings()
    url = make_url(database_url)
    options: dict[str, Any] = {"echo": settings.app_debug}

    if url.get_backend_name() == "sqlite":
        if url.database in (None, "", ":memory:"):
            options.update(
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
    else:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
        )

    options.update(overrides)
    return create_async_engine(url, **options)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Balance log rows are read back after commit
    return async_sessionmaker(bind=bind, expire_on_commit=False, autoflush=False)


engine = build_engine(get_settings().database_url)
async_session_factory = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Fail fast at startup if the database is unreachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("database_connected", backend=engine.url.get_backend_name())


async def close_db() -> None:
    await engine.dispose()
    logger.info("database_disposed")
