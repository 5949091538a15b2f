"""Integration test: admin authors a scenario, a player trades through it.

Run: pytest tests/integration/test_trading_flow.py -v
Pre-condition: alembic upgrade head
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient

from tests.integration.conftest import register_and_login

pytestmark = pytest.mark.asyncio(loop_scope="session")


async def _live_test_scenario(client: AsyncClient, admin: dict[str, str]) -> dict:
    resp = await client.post("/api/v1/admin/scenarios/test", headers=admin)
    assert resp.status_code == 201, resp.text
    scenario = resp.json()["data"]
    for action in ("schedule", "start"):
        r = await client.post(f"/api/v1/admin/scenarios/{scenario['id']}/{action}", headers=admin)
        assert r.status_code == 200, r.text
    return scenario


class TestAdminGuard:
    async def test_player_cannot_author(self, client: AsyncClient) -> None:
        player = await register_and_login(client)
        resp = await client.post("/api/v1/admin/scenarios/test", headers=player)
        assert resp.status_code == 403
        assert resp.json()["code"] == 1006


class TestTradingFlow:
    async def test_buy_sell_and_close(self, client: AsyncClient, admin_headers) -> None:
        scenario = await _live_test_scenario(client, admin_headers)
        sid = scenario["id"]
        aapl = next(i for i in scenario["instruments"] if i["symbol"] == "AAPL")

        player = await register_and_login(client)
        join = await client.post(f"/api/v1/scenarios/{sid}/join", headers=player)
        assert join.status_code == 200
        assert Decimal(join.json()["data"]["cash_available"]) == Decimal("10000")

        # First tick seeds from the starting price.
        tick = await client.post(f"/api/v1/admin/instruments/{aapl['id']}/tick", headers=admin_headers)
        assert Decimal(tick.json()["data"]["tick"]["price"]) == Decimal("150")

        buy = await client.post(
            f"/api/v1/scenarios/{sid}/orders",
            headers=player,
            json={"instrument_id": aapl["id"], "side": "BUY", "type": "MARKET", "quantity": "2"},
        )
        body = buy.json()["data"]
        assert body["accepted"] is True
        assert body["order"]["status"] == "FILLED"

        state = await client.get(f"/api/v1/scenarios/{sid}/player-state", headers=player)
        assert Decimal(state.json()["data"]["cash_available"]) == Decimal("9700")

        too_many = await client.post(
            f"/api/v1/scenarios/{sid}/orders",
            headers=player,
            json={"instrument_id": aapl["id"], "side": "SELL", "quantity": "5"},
        )
        assert too_many.json()["data"]["accepted"] is False
        assert too_many.json()["data"]["reject_reason"] == "INSUFFICIENT_SHARES"

        resting = await client.post(
            f"/api/v1/scenarios/{sid}/orders",
            headers=player,
            json={"instrument_id": aapl["id"], "side": "BUY", "type": "LIMIT",
                  "quantity": "1", "limit_price": "1"},
        )
        assert resting.json()["data"]["order"]["status"] == "PENDING"

        portfolio = await client.get(f"/api/v1/scenarios/{sid}/portfolio", headers=player)
        assert Decimal(portfolio.json()["data"]["equity"]) == Decimal("10000")

        close = await client.post(f"/api/v1/admin/scenarios/{sid}/close", headers=admin_headers)
        assert close.json()["data"]["canceled_orders"] == 1
        state = await client.get(f"/api/v1/scenarios/{sid}/player-state", headers=player)
        assert Decimal(state.json()["data"]["cash_locked"]) == Decimal("0")

        stats = await client.get(f"/api/v1/admin/scenarios/{sid}/stats", headers=admin_headers)
        assert stats.json()["data"]["players"] == 1
        assert stats.json()["data"]["total_trades"] == 1
