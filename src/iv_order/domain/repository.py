"""OrderRepository Protocol: interface contract for orders and trades."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_order.domain.models import Order, Trade


class OrderRepositoryProtocol(Protocol):
    async def save(self, order: Order, db: AsyncSession) -> None: ...

    async def update(self, order: Order, db: AsyncSession) -> None: ...

    async def get_by_id(
        self, order_id: str, db: AsyncSession, for_update: bool = False
    ) -> Order | None: ...

    async def list_by_user(
        self,
        scenario_id: str,
        user_id: str,
        statuses: list[str] | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[Order]: ...

    async def list_pending_by_instrument(
        self, instrument_id: str, db: AsyncSession
    ) -> list[Order]: ...

    async def list_pending_by_scenario(
        self, scenario_id: str, db: AsyncSession
    ) -> list[Order]: ...

    async def save_trade(self, trade: Trade, db: AsyncSession) -> None: ...

    async def list_trades(
        self,
        scenario_id: str,
        user_id: str,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[Trade]: ...
