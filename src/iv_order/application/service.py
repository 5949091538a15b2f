"""OrderApplicationService: request/response glue around the OrderEngine.

Listing endpoints always filter by the caller's user_id; ids are
time-ordered snowflakes, so the last id on a page is the cursor.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_order.application.schemas import (
    OrderListResponse,
    OrderResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
    TradeListResponse,
    TradeResponse,
)
from src.iv_order.domain.repository import OrderRepositoryProtocol
from src.iv_order.engine.engine import OrderEngine, get_order_engine
from src.iv_order.infrastructure.persistence import OrderRepository


class OrderApplicationService:
    def __init__(
        self,
        engine: OrderEngine | None = None,
        repo: OrderRepositoryProtocol | None = None,
    ) -> None:
        self._engine = engine
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()

    @property
    def engine(self) -> OrderEngine:
        return self._engine or get_order_engine()

    async def place_order(
        self, db: AsyncSession, scenario_id: str, user_id: str, req: PlaceOrderRequest
    ) -> PlaceOrderResponse:
        result = await self.engine.place_order(
            db,
            scenario_id=scenario_id,
            user_id=user_id,
            instrument_id=req.instrument_id,
            side=req.side.value,
            order_type=req.order_type.value,
            quantity=req.quantity,
            limit_price=req.limit_price,
        )
        return PlaceOrderResponse.from_result(result)

    async def cancel_order(
        self, db: AsyncSession, order_id: str, user_id: str
    ) -> OrderResponse:
        order = await self.engine.cancel_order(db, order_id, user_id)
        return OrderResponse.from_domain(order)

    async def list_orders(
        self,
        db: AsyncSession,
        scenario_id: str,
        user_id: str,
        status: str | None,
        limit: int,
        cursor: str | None,
    ) -> OrderListResponse:
        orders = await self._repo.list_by_user(
            scenario_id, user_id, [status] if status else None, limit + 1, cursor, db
        )
        has_more = len(orders) > limit
        page = orders[:limit]
        return OrderListResponse(
            items=[OrderResponse.from_domain(o) for o in page],
            next_cursor=page[-1].id if has_more and page else None,
            has_more=has_more,
        )

    async def list_trades(
        self,
        db: AsyncSession,
        scenario_id: str,
        user_id: str,
        limit: int,
        cursor: str | None,
    ) -> TradeListResponse:
        trades = await self._repo.list_trades(scenario_id, user_id, limit + 1, cursor, db)
        has_more = len(trades) > limit
        page = trades[:limit]
        return TradeListResponse(
            items=[TradeResponse.from_domain(t) for t in page],
            next_cursor=page[-1].id if has_more and page else None,
            has_more=has_more,
        )
