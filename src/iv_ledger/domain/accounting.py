"""Pure ledger arithmetic.

Every function returns new objects and never mutates its inputs, so the
engine can compute the complete effect of a fill (cash, position, realized
P&L) before writing any of it. Persisting those results happens in one
transaction in the infrastructure layer.

Caller bugs (negative amounts, overdrawing cash that was already checked)
raise ValueError. Only reserve() raises a business error, because reserving
is how a pending buy proves it can be paid for.
"""

from dataclasses import replace
from decimal import Decimal

from src.iv_common.enums import OrderSide
from src.iv_common.errors import InsufficientFundsError
from src.iv_common.money import ZERO, notional, quantize_amount
from src.iv_ledger.domain.models import PlayerState, Position


def _require_non_negative(amount: Decimal) -> None:
    if amount < 0:
        raise ValueError(f"amount must be >= 0, got {amount}")


def reserve(state: PlayerState, amount: Decimal) -> PlayerState:
    """Move amount from available to locked cash."""
    _require_non_negative(amount)
    if amount > state.cash_available:
        raise InsufficientFundsError(amount, state.cash_available)
    return replace(
        state,
        cash_available=state.cash_available - amount,
        cash_locked=state.cash_locked + amount,
    )


def release(state: PlayerState, amount: Decimal) -> PlayerState:
    """Move amount from locked back to available cash."""
    _require_non_negative(amount)
    if amount > state.cash_locked:
        raise ValueError(f"cannot release {amount}, only {state.cash_locked} locked")
    return replace(
        state,
        cash_available=state.cash_available + amount,
        cash_locked=state.cash_locked - amount,
    )


def debit_cash(state: PlayerState, amount: Decimal) -> PlayerState:
    _require_non_negative(amount)
    if amount > state.cash_available:
        raise ValueError(
            f"debit of {amount} would overdraw available cash {state.cash_available}"
        )
    return replace(state, cash_available=state.cash_available - amount)


def credit_cash(state: PlayerState, amount: Decimal) -> PlayerState:
    _require_non_negative(amount)
    return replace(state, cash_available=state.cash_available + amount)


def _sign(value: Decimal) -> int:
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


def _avg_cost(cost_basis: Decimal, quantity: Decimal) -> Decimal:
    if quantity == 0:
        return ZERO
    return quantize_amount(abs(cost_basis) / abs(quantity))


def apply_trade(
    position: Position, side: OrderSide, quantity: Decimal, price: Decimal
) -> tuple[Position, Decimal]:
    """Apply one fill to a position; returns (new_position, realized_pnl_delta).

    The position carries its cost basis as the exact signed cash amount,
    built from the same notional() the cash side of the fill uses. Adds grow
    the basis by the fill's notional. Reductions release the closed share of
    the basis and realize proceeds minus that share, so
    cash + cost_basis - realized_pnl is unchanged by every fill. A fill that
    crosses zero is split: the closing part realizes against the old basis,
    the rest of the notional opens the new one at the fill price.
    """
    if quantity <= 0:
        raise ValueError(f"trade quantity must be > 0, got {quantity}")
    if price <= 0:
        raise ValueError(f"trade price must be > 0, got {price}")

    trade_sign = 1 if side == OrderSide.BUY else -1
    old_qty = position.quantity
    new_qty = old_qty + trade_sign * quantity
    old_sign = _sign(old_qty)
    basis = position.cost_basis or ZERO
    amount = notional(quantity, price)

    if old_sign == 0 or old_sign == trade_sign:
        basis += trade_sign * amount
        updated = replace(
            position, quantity=new_qty, cost_basis=basis, avg_cost=_avg_cost(basis, new_qty)
        )
        return updated, ZERO

    held = abs(old_qty)
    closed_qty = min(quantity, held)
    if closed_qty == held:
        released = basis
    else:
        released = quantize_amount(basis * closed_qty / held)
    closed_amount = notional(closed_qty, price)
    realized = old_sign * closed_amount - released

    # opening leg of a flip takes whatever notional the close did not use
    basis = basis - released + trade_sign * (amount - closed_amount)
    updated = replace(
        position,
        quantity=new_qty,
        cost_basis=basis,
        avg_cost=_avg_cost(basis, new_qty),
        realized_pnl=position.realized_pnl + realized,
    )
    return updated, realized
