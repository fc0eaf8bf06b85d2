"""Tests for SessionRegistry."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from partner_wallet.sessions import SessionRegistry


def resource(fail: bool = False) -> AsyncMock:
    res = AsyncMock()
    if fail:
        res.close.side_effect = RuntimeError("already gone")
    return res


class TestSessionRegistry:
    @pytest.mark.asyncio
    async def test_register_and_close(self):
        registry = SessionRegistry()
        first, second = resource(), resource()
        await registry.register("console-1", first)
        await registry.register("console-1", second)

        assert "console-1" in registry
        assert registry.resources("console-1") == [first, second]

        closed = await registry.close("console-1")

        assert closed == 2
        first.close.assert_awaited_once()
        second.close.assert_awaited_once()
        assert "console-1" not in registry

    @pytest.mark.asyncio
    async def test_close_unknown_session(self):
        assert await SessionRegistry().close("nope") == 0

    @pytest.mark.asyncio
    async def test_close_continues_after_failure(self):
        registry = SessionRegistry()
        healthy = resource()
        await registry.register("console-1", healthy)
        await registry.register("console-1", resource(fail=True))

        closed = await registry.close("console-1")

        assert closed == 1
        healthy.close.assert_awaited_once()
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_close_all(self):
        registry = SessionRegistry()
        resources = [resource() for _ in range(3)]
        await registry.register("a", resources[0])
        await registry.register("b", resources[1])
        await registry.register("b", resources[2])

        assert await registry.close_all() == 3
        assert len(registry) == 0
        for res in resources:
            res.close.assert_awaited_once()

    def test_registries_are_independent(self):
        assert SessionRegistry() is not SessionRegistry()
        assert len(SessionRegistry()) == 0


class TestGetOrRegister:
    @pytest.mark.asyncio
    async def test_reuses_matching_resource(self):
        registry = SessionRegistry()
        existing = resource()
        await registry.register("console-1", existing)
        factory = AsyncMock()

        found = await registry.get_or_register("console-1", lambda r: r is existing, factory)

        assert found is existing
        factory.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_creates_when_nothing_matches(self):
        registry = SessionRegistry()
        await registry.register("console-1", resource())
        created = resource()

        async def factory():
            return created

        found = await registry.get_or_register("console-1", lambda r: r is created, factory)

        assert found is created
        assert len(registry.resources("console-1")) == 2

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_resource(self):
        registry = SessionRegistry()
        created = []

        async def factory():
            await asyncio.sleep(0)
            res = resource()
            created.append(res)
            return res

        results = await asyncio.gather(
            *(registry.get_or_register("console-1", lambda r: True, factory) for _ in range(5))
        )

        assert len(created) == 1
        assert all(r is created[0] for r in results)
        assert registry.resources("console-1") == created
