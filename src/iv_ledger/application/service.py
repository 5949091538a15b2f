"""LedgerApplicationService: read projections over a player's ledger.

All methods are read-only and filter by the caller's user_id.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_common.errors import (
    InstrumentNotFoundError,
    PlayerNotInitializedError,
    ScenarioNotFoundError,
)
from src.iv_common.money import ZERO, floor_quantity
from src.iv_ledger.application.schemas import (
    LedgerEntryItem,
    LedgerResponse,
    PlayerStateResponse,
    PositionItem,
    PositionListResponse,
    TradingLimitsResponse,
    cursor_decode,
    cursor_encode,
)
from src.iv_ledger.domain.models import PlayerState
from src.iv_ledger.domain.repository import LedgerRepositoryProtocol
from src.iv_ledger.infrastructure.persistence import LedgerRepository
from src.iv_pricing.domain.repository import PriceRepositoryProtocol
from src.iv_pricing.infrastructure.persistence import PriceRepository
from src.iv_scenario.domain.repository import ScenarioRepositoryProtocol
from src.iv_scenario.infrastructure.persistence import ScenarioRepository


class LedgerApplicationService:
    def __init__(
        self,
        repo: LedgerRepositoryProtocol | None = None,
        scenario_repo: ScenarioRepositoryProtocol | None = None,
        price_repo: PriceRepositoryProtocol | None = None,
    ) -> None:
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()
        self._scenario_repo: ScenarioRepositoryProtocol = scenario_repo or ScenarioRepository()
        self._price_repo: PriceRepositoryProtocol = price_repo or PriceRepository()

    async def _require_state(
        self, db: AsyncSession, scenario_id: str, user_id: str
    ) -> PlayerState:
        state = await self._repo.get_player_state(db, scenario_id, user_id)
        if state is None:
            raise PlayerNotInitializedError(scenario_id, user_id)
        return state

    async def get_player_state(
        self, db: AsyncSession, scenario_id: str, user_id: str
    ) -> PlayerStateResponse:
        return PlayerStateResponse.from_domain(
            await self._require_state(db, scenario_id, user_id)
        )

    async def list_positions(
        self, db: AsyncSession, scenario_id: str, user_id: str
    ) -> PositionListResponse:
        positions = await self._repo.list_positions(db, scenario_id, user_id)
        return PositionListResponse(
            scenario_id=scenario_id,
            items=[PositionItem.from_domain(p) for p in positions],
        )

    async def list_ledger(
        self,
        db: AsyncSession,
        scenario_id: str,
        user_id: str,
        cursor: str | None,
        limit: int,
        entry_type: str | None,
    ) -> LedgerResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._repo.list_entries(
            db, scenario_id, user_id, cursor_id, limit + 1, entry_type
        )
        has_more = len(entries) > limit
        page = entries[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return LedgerResponse(
            items=[LedgerEntryItem.from_domain(e) for e in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def trading_limits(
        self, db: AsyncSession, scenario_id: str, user_id: str, instrument_id: str
    ) -> TradingLimitsResponse:
        scenario = await self._scenario_repo.get_scenario(db, scenario_id)
        if scenario is None:
            raise ScenarioNotFoundError(scenario_id)
        if not any(i.id == instrument_id for i in scenario.instruments):
            raise InstrumentNotFoundError(instrument_id)
        state = await self._require_state(db, scenario_id, user_id)

        latest = await self._price_repo.get_latest_tick(db, instrument_id)
        price = latest.price if latest else None
        max_buy = floor_quantity(state.cash_available / price) if price else None

        position = await self._repo.get_position(db, scenario_id, user_id, instrument_id)
        held = position.quantity if position else ZERO
        return TradingLimitsResponse(
            instrument_id=instrument_id,
            price=price,
            cash_available=state.cash_available,
            max_buy_quantity=max_buy,
            max_sell_quantity=max(held, ZERO),
            short_allowed=scenario.allow_short,
        )
