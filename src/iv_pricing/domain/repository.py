"""Repository Protocol for price ticks."""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_pricing.domain.models import LatestPrice, PriceTick


class PriceRepositoryProtocol(Protocol):
    async def get_latest_tick(
        self, db: AsyncSession, instrument_id: str
    ) -> PriceTick | None: ...

    async def append_tick(self, db: AsyncSession, tick: PriceTick) -> PriceTick: ...

    async def get_latest_prices(
        self, db: AsyncSession, instrument_ids: list[str]
    ) -> dict[str, Decimal]: ...

    async def list_latest_for_scenario(
        self, db: AsyncSession, scenario_id: str
    ) -> list[LatestPrice]: ...

    async def list_history(
        self, db: AsyncSession, instrument_id: str, limit: int
    ) -> list[PriceTick]: ...
