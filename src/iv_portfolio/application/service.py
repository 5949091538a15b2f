"""PortfolioService: loads ledger rows and latest prices, then values them.

Read-only. Prices are read at query time; a tick landing between the two
reads only makes the snapshot slightly stale, never inconsistent with
itself.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_ledger.domain.repository import LedgerRepositoryProtocol
from src.iv_ledger.infrastructure.persistence import LedgerRepository
from src.iv_portfolio.application.schemas import (
    LivePositionItem,
    LivePositionsResponse,
    ValuationResponse,
)
from src.iv_portfolio.domain.valuator import Valuation, position_views, valuate
from src.iv_pricing.domain.repository import PriceRepositoryProtocol
from src.iv_pricing.infrastructure.persistence import PriceRepository
from src.iv_scenario.domain.repository import ScenarioRepositoryProtocol
from src.iv_scenario.infrastructure.persistence import ScenarioRepository


class PortfolioService:
    def __init__(
        self,
        ledger_repo: LedgerRepositoryProtocol | None = None,
        price_repo: PriceRepositoryProtocol | None = None,
        scenario_repo: ScenarioRepositoryProtocol | None = None,
    ) -> None:
        self._ledger: LedgerRepositoryProtocol = ledger_repo or LedgerRepository()
        self._prices: PriceRepositoryProtocol = price_repo or PriceRepository()
        self._scenarios: ScenarioRepositoryProtocol = scenario_repo or ScenarioRepository()

    async def valuation(self, db: AsyncSession, scenario_id: str, user_id: str) -> Valuation:
        state = await self._ledger.get_player_state(db, scenario_id, user_id)
        if state is None:
            return Valuation.zero(scenario_id, user_id)
        positions = await self._ledger.list_positions(db, scenario_id, user_id)
        prices = await self._prices.get_latest_prices(
            db, [p.instrument_id for p in positions]
        )
        return valuate(scenario_id, user_id, state, positions, prices)

    async def valuate(
        self, db: AsyncSession, scenario_id: str, user_id: str
    ) -> ValuationResponse:
        return ValuationResponse.from_domain(await self.valuation(db, scenario_id, user_id))

    async def live_positions(
        self, db: AsyncSession, scenario_id: str, user_id: str
    ) -> LivePositionsResponse:
        positions = await self._ledger.list_positions(db, scenario_id, user_id)
        instruments = {i.id: i for i in await self._scenarios.list_instruments(db, scenario_id)}
        prices = await self._prices.get_latest_prices(
            db, [p.instrument_id for p in positions]
        )
        return LivePositionsResponse(
            scenario_id=scenario_id,
            items=[
                LivePositionItem.from_domain(v)
                for v in position_views(positions, instruments, prices)
            ],
        )
