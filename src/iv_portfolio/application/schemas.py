"""Pydantic schemas for portfolio valuation."""

from decimal import Decimal

from pydantic import BaseModel

from src.iv_common.money import money_to_display
from src.iv_portfolio.domain.valuator import PositionView, Valuation


class ValuationResponse(BaseModel):
    scenario_id: str
    initialized: bool
    cash: Decimal
    cash_locked: Decimal
    market_value: Decimal
    equity: Decimal
    equity_display: str
    unrealized_pnl: Decimal
    realized_pnl: Decimal

    @classmethod
    def from_domain(cls, v: Valuation) -> "ValuationResponse":
        return cls(
            scenario_id=v.scenario_id,
            initialized=v.initialized,
            cash=v.cash,
            cash_locked=v.cash_locked,
            market_value=v.market_value,
            equity=v.equity,
            equity_display=money_to_display(v.equity),
            unrealized_pnl=v.unrealized_pnl,
            realized_pnl=v.realized_pnl,
        )


class LivePositionItem(BaseModel):
    instrument_id: str
    symbol: str | None
    display_name: str | None
    quantity: Decimal
    avg_cost: Decimal
    latest_price: Decimal | None
    market_value: Decimal
    unrealized_pnl: Decimal
    realized_pnl: Decimal

    @classmethod
    def from_domain(cls, view: PositionView) -> "LivePositionItem":
        return cls(
            instrument_id=view.instrument_id,
            symbol=view.symbol,
            display_name=view.display_name,
            quantity=view.quantity,
            avg_cost=view.avg_cost,
            latest_price=view.latest_price,
            market_value=view.market_value,
            unrealized_pnl=view.unrealized_pnl,
            realized_pnl=view.realized_pnl,
        )


class LivePositionsResponse(BaseModel):
    scenario_id: str
    items: list[LivePositionItem]
