# src/iv_admin/application/service.py
"""Admin application service.

Scenario authoring and lifecycle, manual price ticks, and scenario stats.
Closing a scenario also cancels its resting orders so no cash stays locked.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_common.enums import ScenarioStatus
from src.iv_common.errors import ScenarioNotFoundError
from src.iv_order.engine.engine import OrderEngine, get_order_engine
from src.iv_pricing.application.schemas import PriceTickResponse
from src.iv_pricing.application.service import PriceService, get_price_service
from src.iv_scenario.application.schemas import (
    AddInstrumentRequest,
    CreateScenarioRequest,
    InstrumentResponse,
    ScenarioResponse,
    UpdateScenarioRequest,
)
from src.iv_scenario.application.service import ScenarioApplicationService
from src.iv_scenario.domain.lifecycle import ScenarioAction

logger = logging.getLogger(__name__)

_GET_SCENARIO_SQL = text("SELECT id, status FROM scenarios WHERE id = :scenario_id")
_PLAYER_COUNT_SQL = text("""
    SELECT COUNT(*) AS players FROM player_scenario_state WHERE scenario_id = :scenario_id
""")
_ORDER_COUNTS_SQL = text("""
    SELECT status, COUNT(*) AS n
    FROM orders
    WHERE scenario_id = :scenario_id
    GROUP BY status
""")
_TRADE_STATS_SQL = text("""
    SELECT
        COUNT(*) AS total_trades,
        COALESCE(SUM(qty), 0) AS total_quantity,
        COALESCE(SUM(qty * price), 0) AS total_notional,
        COUNT(DISTINCT user_id) AS unique_traders
    FROM trades
    WHERE scenario_id = :scenario_id
""")


class AdminService:
    def __init__(
        self,
        scenarios: ScenarioApplicationService | None = None,
        prices: PriceService | None = None,
        engine: OrderEngine | None = None,
    ) -> None:
        self._scenarios = scenarios or ScenarioApplicationService()
        self._prices = prices
        self._engine = engine

    @property
    def prices(self) -> PriceService:
        return self._prices or get_price_service()

    @property
    def engine(self) -> OrderEngine:
        return self._engine or get_order_engine()

    # --- authoring ---

    async def create_scenario(
        self, req: CreateScenarioRequest, created_by: str, db: AsyncSession
    ) -> ScenarioResponse:
        return await self._scenarios.create_scenario(db, req, created_by)

    async def create_test_scenario(self, created_by: str, db: AsyncSession) -> ScenarioResponse:
        return await self._scenarios.create_test_scenario(db, created_by)

    async def update_scenario(
        self, scenario_id: str, req: UpdateScenarioRequest, db: AsyncSession
    ) -> ScenarioResponse:
        return await self._scenarios.update_details(db, scenario_id, req)

    async def add_instrument(
        self, scenario_id: str, req: AddInstrumentRequest, db: AsyncSession
    ) -> InstrumentResponse:
        return await self._scenarios.add_instrument(db, scenario_id, req)

    async def remove_instrument(self, instrument_id: str, db: AsyncSession) -> dict[str, Any]:
        await self._scenarios.remove_instrument(db, instrument_id)
        return {"instrument_id": instrument_id, "deleted": True}

    async def extend_scenario(
        self, scenario_id: str, end_at: datetime, db: AsyncSession
    ) -> ScenarioResponse:
        return await self._scenarios.extend(db, scenario_id, end_at)

    # --- lifecycle ---

    async def transition(
        self, scenario_id: str, action: ScenarioAction, db: AsyncSession
    ) -> dict[str, Any]:
        scenario = await self._scenarios.transition(db, scenario_id, action)
        canceled = 0
        if scenario.status == ScenarioStatus.CLOSED.value:
            canceled = await self.engine.cancel_pending_for_scenario(db, scenario_id)
        return {
            "scenario": scenario.model_dump(mode="json"),
            "canceled_orders": canceled,
        }

    # --- prices ---

    async def simulate_tick(self, instrument_id: str, db: AsyncSession) -> dict[str, Any]:
        """Append one tick, then give resting limit orders a chance to fill."""
        tick = await self.prices.simulate_tick(db, instrument_id)
        summary = await self.engine.reevaluate_pending(db, instrument_id)
        return {
            "tick": PriceTickResponse.from_domain(tick).model_dump(mode="json"),
            "filled_orders": summary.filled,
            "canceled_orders": summary.canceled,
        }

    # --- stats ---

    async def get_scenario_stats(self, scenario_id: str, db: AsyncSession) -> dict[str, Any]:
        row = (await db.execute(_GET_SCENARIO_SQL, {"scenario_id": scenario_id})).fetchone()
        if row is None:
            raise ScenarioNotFoundError(scenario_id)
        players = (
            await db.execute(_PLAYER_COUNT_SQL, {"scenario_id": scenario_id})
        ).scalar_one()
        orders = {
            r.status: int(r.n)
            for r in (await db.execute(_ORDER_COUNTS_SQL, {"scenario_id": scenario_id})).fetchall()
        }
        stats = (await db.execute(_TRADE_STATS_SQL, {"scenario_id": scenario_id})).fetchone()
        return {
            "scenario_id": scenario_id,
            "status": row.status,
            "players": int(players),
            "orders_by_status": orders,
            "total_trades": int(stats.total_trades) if stats else 0,
            "total_quantity": str(stats.total_quantity) if stats else "0",
            "total_notional": str(stats.total_notional) if stats else "0",
            "unique_traders": int(stats.unique_traders) if stats else 0,
        }
