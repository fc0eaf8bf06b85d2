"""API tests for /api/v1/admin/partners and /api/v1/admin/events."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from partner_wallet.utils.redis_client import get_redis

PARTNERS = "/api/v1/admin/partners"


class TestWallet:
    @pytest.mark.asyncio
    async def test_credit_pool_wallet(self, client, tree, api_headers):
        response = await client.get(f"{PARTNERS}/{tree.admin}/wallet", headers=api_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["kind"] == "credit_pool"
        assert data["channels"] == {"invest": 10000, "oroplay": 8000}
        assert data["balances"] == [
            {"channel": "invest", "amount": 10000},
            {"channel": "oroplay", "amount": 8000},
        ]

    @pytest.mark.asyncio
    async def test_ledger_wallet(self, client, tree, api_headers):
        response = await client.get(f"{PARTNERS}/{tree.sub}/wallet", headers=api_headers)

        data = response.json()
        assert data["kind"] == "single_ledger"
        assert data["ledgerBalance"] == 1000
        assert data["balances"] == [{"channel": None, "amount": 1000}]

    @pytest.mark.asyncio
    async def test_unknown_partner(self, client, tree, api_headers):
        response = await client.get(f"{PARTNERS}/missing/wallet", headers=api_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_requires_api_key(self, client, tree):
        response = await client.get(f"{PARTNERS}/{tree.admin}/wallet")

        assert response.status_code == 401


class TestBalanceLogs:
    @pytest.mark.asyncio
    async def test_history_after_transfer(self, client, tree, acting_as, api_headers):
        await client.post(
            "/api/v1/admin/transfers",
            json={"targetId": tree.sub, "type": "withdrawal", "amount": 400},
            headers=acting_as(tree.main),
        )

        response = await client.get(
            f"{PARTNERS}/{tree.sub}/balance-logs", params={"limit": 10}, headers=api_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["limit"] == 10
        item = data["items"][0]
        assert item["amount"] == -400
        assert item["balanceBefore"] == 1000
        assert item["balanceAfter"] == 600
        assert item["counterpartyId"] == tree.main
        assert item["transferType"] == "withdrawal"

    @pytest.mark.asyncio
    async def test_limit_bounds(self, client, tree, api_headers):
        response = await client.get(
            f"{PARTNERS}/{tree.sub}/balance-logs", params={"limit": 0}, headers=api_headers
        )

        assert response.status_code == 422


class TestDescendants:
    @pytest.mark.asyncio
    async def test_subtree(self, client, tree, api_headers):
        response = await client.get(f"{PARTNERS}/{tree.head}/descendants", headers=api_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert [item["id"] for item in data["items"]] == [tree.main, tree.sub, tree.dist]
        assert data["items"][0]["parentId"] == tree.head
        assert data["items"][0]["wallet"]["ledgerBalance"] == 5000


class TestEvents:
    @pytest.mark.asyncio
    async def test_events_need_redis(self, client, api_headers):
        response = await client.get("/api/v1/admin/events/console-1/next", headers=api_headers)

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "EVENTS_DISABLED"

    @pytest.mark.asyncio
    async def test_close_unknown_session(self, client, api_headers):
        response = await client.delete("/api/v1/admin/events/console-1", headers=api_headers)

        assert response.status_code == 200
        assert response.json() == {"closed": 0}


class TestEventSubscriptions:
    @pytest.fixture
    def redis(self, app):
        pubsub = AsyncMock()
        pubsub.get_message.return_value = None
        redis = MagicMock()
        redis.pubsub.return_value = pubsub
        app.dependency_overrides[get_redis] = lambda: redis
        return redis

    @pytest.mark.asyncio
    async def test_concurrent_polls_share_subscription(self, app, client, api_headers, redis):
        url = "/api/v1/admin/events/console-1/next"

        responses = await asyncio.gather(
            client.get(url, params={"timeout": 0}, headers=api_headers),
            client.get(url, params={"timeout": 0}, headers=api_headers),
        )

        assert [r.status_code for r in responses] == [200, 200]
        assert all(r.json() == {"event": None} for r in responses)
        assert redis.pubsub.call_count == 1
        assert len(app.state.sessions.resources("console-1")) == 1

        closed = await client.delete("/api/v1/admin/events/console-1", headers=api_headers)
        assert closed.json() == {"closed": 1}
        redis.pubsub.return_value.aclose.assert_awaited_once()
