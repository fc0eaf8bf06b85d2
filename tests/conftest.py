"""Shared fixtures: in-memory SQLite database and a seeded partner tree."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from partner_wallet.models import (
    Base,
    Partner,
    PartnerKind,
    PartnerStatus,
    WalletChannelBalance,
)
from partner_wallet.services.wallet import ChannelConfig
from partner_wallet.utils.db import build_engine, build_session_factory

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def channel_config() -> ChannelConfig:
    return ChannelConfig(channels=("invest", "oroplay"), enabled=("invest", "oroplay"))


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database per test."""
    engine = build_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# =============================================================================
# Partner Tree
# =============================================================================


@dataclass
class PartnerTree:
    """Seeded hierarchy.

    admin (Lv1, invest 10000 / oroplay 8000)
    ├── head (Lv2, invest 500 / oroplay 2000)
    │   └── main (Lv3, 5000)
    │       └── sub (Lv4, 1000)
    │           └── dist (Lv5, 0)
    └── other_head (Lv2, invest 0 / oroplay 0)
        └── other_main (Lv3, 300)
    """

    admin: str
    head: str
    main: str
    sub: str
    dist: str
    other_head: str
    other_main: str


async def add_partner(
    session: AsyncSession,
    tier: int,
    nickname: str,
    parent_id: str | None = None,
    ledger_balance: int = 0,
    channels: dict[str, int] | None = None,
    status: PartnerStatus = PartnerStatus.ACTIVE,
) -> Partner:
    partner = Partner(
        tier=tier,
        parent_id=parent_id,
        kind=PartnerKind.for_tier(tier),
        status=status,
        nickname=nickname,
        ledger_balance=ledger_balance,
    )
    session.add(partner)
    await session.flush()

    for channel, balance in (channels or {}).items():
        session.add(
            WalletChannelBalance(partner_id=partner.id, channel=channel, balance=balance)
        )
    await session.flush()
    return partner


@pytest_asyncio.fixture
async def tree(db_session: AsyncSession) -> PartnerTree:
    admin = await add_partner(
        db_session, 1, "admin", channels={"invest": 10000, "oroplay": 8000}
    )
    head = await add_partner(
        db_session, 2, "head", admin.id, channels={"invest": 500, "oroplay": 2000}
    )
    main = await add_partner(db_session, 3, "main", head.id, ledger_balance=5000)
    sub = await add_partner(db_session, 4, "sub", main.id, ledger_balance=1000)
    dist = await add_partner(db_session, 5, "dist", sub.id)
    other_head = await add_partner(
        db_session, 2, "other_head", admin.id, channels={"invest": 0, "oroplay": 0}
    )
    other_main = await add_partner(
        db_session, 3, "other_main", other_head.id, ledger_balance=300
    )
    await db_session.commit()

    return PartnerTree(
        admin=admin.id,
        head=head.id,
        main=main.id,
        sub=sub.id,
        dist=dist.id,
        other_head=other_head.id,
        other_main=other_main.id,
    )


@pytest.fixture
def make_partner(db_session: AsyncSession):
    """Factory for extra partners in the test database."""

    async def _make(tier: int, nickname: str, parent_id: str | None = None, **kwargs) -> Partner:
        return await add_partner(db_session, tier, nickname, parent_id, **kwargs)

    return _make
