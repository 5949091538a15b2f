"""Pydantic schemas for the order API."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.iv_common.enums import OrderSide, OrderType
from src.iv_order.domain.models import Order, PlaceOrderResult, Trade


class PlaceOrderRequest(BaseModel):
    # quantity/limit_price are range-checked by the engine so that bad values
    # come back as typed rejections rather than 422s.
    instrument_id: str = Field(..., min_length=1)
    side: OrderSide
    order_type: OrderType = Field(OrderType.MARKET, alias="type")
    quantity: Decimal
    limit_price: Decimal | None = None

    model_config = {"populate_by_name": True}


class OrderResponse(BaseModel):
    id: str
    scenario_id: str
    instrument_id: str
    side: str
    order_type: str
    quantity: Decimal
    limit_price: Decimal | None
    status: str
    filled_qty: Decimal
    avg_fill_price: Decimal | None
    locked_amount: Decimal
    cancel_reason: str | None
    created_at: datetime | None

    @classmethod
    def from_domain(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            scenario_id=order.scenario_id,
            instrument_id=order.instrument_id,
            side=order.side,
            order_type=order.order_type,
            quantity=order.quantity,
            limit_price=order.limit_price,
            status=order.status,
            filled_qty=order.filled_qty,
            avg_fill_price=order.avg_fill_price,
            locked_amount=order.locked_amount,
            cancel_reason=order.cancel_reason,
            created_at=order.created_at,
        )


class TradeResponse(BaseModel):
    id: str
    order_id: str
    instrument_id: str
    side: str
    qty: Decimal
    price: Decimal
    ts: datetime

    @classmethod
    def from_domain(cls, trade: Trade) -> "TradeResponse":
        return cls(
            id=trade.id,
            order_id=trade.order_id,
            instrument_id=trade.instrument_id,
            side=trade.side,
            qty=trade.qty,
            price=trade.price,
            ts=trade.ts,
        )


class PlaceOrderResponse(BaseModel):
    accepted: bool
    reject_reason: str | None = None
    message: str | None = None
    order: OrderResponse | None = None
    trade: TradeResponse | None = None

    @classmethod
    def from_result(cls, result: PlaceOrderResult) -> "PlaceOrderResponse":
        return cls(
            accepted=result.accepted,
            reject_reason=result.reject_reason.value if result.reject_reason else None,
            message=result.reject_message,
            order=OrderResponse.from_domain(result.order) if result.order else None,
            trade=TradeResponse.from_domain(result.trade) if result.trade else None,
        )


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    next_cursor: str | None
    has_more: bool


class TradeListResponse(BaseModel):
    items: list[TradeResponse]
    next_cursor: str | None
    has_more: bool
