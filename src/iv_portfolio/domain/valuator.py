"""Mark-to-market valuation of one player in one scenario.

    market_value   = Σ quantity * latest_price
    unrealized_pnl = Σ quantity * latest_price - cost_basis
    realized_pnl   = Σ position.realized_pnl   (flat positions included)
    equity         = cash + cash_locked + market_value

unrealized_pnl is measured against the stored cost basis rather than
avg_cost, so equity == initial_cash + realized_pnl + unrealized_pnl holds to
the amount precision after any sequence of fills.

An instrument without a price contributes 0 to market value and unrealized
P&L. A player without a state row gets an all-zero snapshot. Neither case
raises.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal

from src.iv_common.money import ZERO, quantize_amount
from src.iv_ledger.domain.models import PlayerState, Position
from src.iv_scenario.domain.models import Instrument


@dataclass(frozen=True)
class Valuation:
    scenario_id: str
    user_id: str
    cash: Decimal
    cash_locked: Decimal
    market_value: Decimal
    equity: Decimal
    unrealized_pnl: Decimal
    realized_pnl: Decimal
    initialized: bool = True

    @classmethod
    def zero(cls, scenario_id: str, user_id: str) -> "Valuation":
        return cls(
            scenario_id=scenario_id,
            user_id=user_id,
            cash=ZERO,
            cash_locked=ZERO,
            market_value=ZERO,
            equity=ZERO,
            unrealized_pnl=ZERO,
            realized_pnl=ZERO,
            initialized=False,
        )


@dataclass(frozen=True)
class PositionView:
    instrument_id: str
    symbol: str | None
    display_name: str | None
    quantity: Decimal
    avg_cost: Decimal
    latest_price: Decimal | None
    market_value: Decimal
    unrealized_pnl: Decimal
    realized_pnl: Decimal


def _marks(position: Position, price: Decimal | None) -> tuple[Decimal, Decimal]:
    """(market_value, unrealized_pnl) of one position, unquantized."""
    if price is None:
        return ZERO, ZERO
    value = position.quantity * price
    return value, value - (position.cost_basis or ZERO)


def valuate(
    scenario_id: str,
    user_id: str,
    state: PlayerState | None,
    positions: Iterable[Position],
    prices: Mapping[str, Decimal],
) -> Valuation:
    if state is None:
        return Valuation.zero(scenario_id, user_id)

    market_value = unrealized = realized = ZERO
    for position in positions:
        value, pnl = _marks(position, prices.get(position.instrument_id))
        market_value += value
        unrealized += pnl
        realized += position.realized_pnl

    market_value = quantize_amount(market_value)
    return Valuation(
        scenario_id=scenario_id,
        user_id=user_id,
        cash=state.cash_available,
        cash_locked=state.cash_locked,
        market_value=market_value,
        equity=quantize_amount(state.cash_available + state.cash_locked + market_value),
        unrealized_pnl=quantize_amount(unrealized),
        realized_pnl=quantize_amount(realized),
    )


def position_views(
    positions: Iterable[Position],
    instruments: Mapping[str, Instrument],
    prices: Mapping[str, Decimal],
) -> list[PositionView]:
    views = []
    for position in positions:
        price = prices.get(position.instrument_id)
        value, pnl = _marks(position, price)
        instrument = instruments.get(position.instrument_id)
        views.append(
            PositionView(
                instrument_id=position.instrument_id,
                symbol=instrument.symbol if instrument else None,
                display_name=instrument.display_name if instrument else None,
                quantity=position.quantity,
                avg_cost=position.avg_cost,
                latest_price=price,
                market_value=quantize_amount(value),
                unrealized_pnl=quantize_amount(pnl),
                realized_pnl=position.realized_pnl,
            )
        )
    return views
