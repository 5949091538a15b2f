"""Unit tests for the pure ledger arithmetic."""
from decimal import Decimal

import pytest

from src.iv_common.enums import OrderSide
from src.iv_common.errors import InsufficientFundsError
from src.iv_ledger.domain import accounting
from src.iv_ledger.domain.models import PlayerState, Position


def _state(available: str = "10000", locked: str = "0") -> PlayerState:
    return PlayerState("sc-1", "user-1", Decimal(available), Decimal(locked), version=3)


def _position(qty: str = "0", avg: str = "0", realized: str = "0") -> Position:
    return Position("sc-1", "user-1", "ins-1", Decimal(qty), Decimal(avg), Decimal(realized))


class TestCash:
    def test_reserve_and_release(self) -> None:
        reserved = accounting.reserve(_state(), Decimal("900"))
        assert (reserved.cash_available, reserved.cash_locked) == (Decimal("9100"), Decimal("900"))
        released = accounting.release(reserved, Decimal("900"))
        assert (released.cash_available, released.cash_locked) == (Decimal("10000"), Decimal("0"))

    def test_reserve_more_than_available(self) -> None:
        with pytest.raises(InsufficientFundsError):
            accounting.reserve(_state("100"), Decimal("100.01"))

    def test_inputs_are_not_mutated(self) -> None:
        state = _state()
        accounting.debit_cash(state, Decimal("1"))
        assert state.cash_available == Decimal("10000")
        assert state.version == 3

    def test_release_more_than_locked(self) -> None:
        with pytest.raises(ValueError):
            accounting.release(_state(locked="5"), Decimal("6"))

    def test_debit_cannot_overdraw(self) -> None:
        with pytest.raises(ValueError):
            accounting.debit_cash(_state("10"), Decimal("10.000001"))

    def test_negative_amounts_rejected(self) -> None:
        with pytest.raises(ValueError):
            accounting.credit_cash(_state(), Decimal("-1"))


class TestApplyTrade:
    def test_open_long(self) -> None:
        pos, realized = accounting.apply_trade(_position(), OrderSide.BUY, Decimal("10"), Decimal("100"))
        assert pos.quantity == Decimal("10")
        assert pos.avg_cost == Decimal("100")
        assert realized == 0

    def test_add_uses_weighted_average(self) -> None:
        pos, _ = accounting.apply_trade(
            _position("10", "100"), OrderSide.BUY, Decimal("10"), Decimal("110")
        )
        assert pos.quantity == Decimal("20")
        assert pos.avg_cost == Decimal("105")

    def test_partial_close_keeps_basis(self) -> None:
        pos, realized = accounting.apply_trade(
            _position("10", "100"), OrderSide.SELL, Decimal("4"), Decimal("110")
        )
        assert pos.quantity == Decimal("6")
        assert pos.avg_cost == Decimal("100")
        assert realized == Decimal("40")
        assert pos.realized_pnl == Decimal("40")

    def test_full_close_resets_basis(self) -> None:
        pos, realized = accounting.apply_trade(
            _position("10", "100"), OrderSide.SELL, Decimal("10"), Decimal("110")
        )
        assert pos.is_flat
        assert pos.avg_cost == 0
        assert realized == Decimal("100")

    def test_cover_short_at_a_loss(self) -> None:
        pos, realized = accounting.apply_trade(
            _position("-5", "100"), OrderSide.BUY, Decimal("5"), Decimal("120")
        )
        assert pos.is_flat
        assert realized == Decimal("-100")

    def test_flip_long_to_short(self) -> None:
        pos, realized = accounting.apply_trade(
            _position("10", "100"), OrderSide.SELL, Decimal("15"), Decimal("90")
        )
        assert pos.quantity == Decimal("-5")
        assert pos.avg_cost == Decimal("90")
        assert realized == Decimal("-100")

    def test_flip_short_to_long(self) -> None:
        pos, realized = accounting.apply_trade(
            _position("-2", "50"), OrderSide.BUY, Decimal("5"), Decimal("40")
        )
        assert pos.quantity == Decimal("3")
        assert pos.avg_cost == Decimal("40")
        assert realized == Decimal("20")

    @pytest.mark.parametrize("qty,price", [("0", "10"), ("1", "0"), ("-1", "10")])
    def test_invalid_fill(self, qty: str, price: str) -> None:
        with pytest.raises(ValueError):
            accounting.apply_trade(_position(), OrderSide.BUY, Decimal(qty), Decimal(price))


class TestCostBasis:
    def test_basis_defaults_from_avg_cost(self) -> None:
        assert _position("-5", "100").cost_basis == Decimal("-500")
        assert _position().cost_basis == 0

    def test_add_grows_basis_by_notional(self) -> None:
        pos, _ = accounting.apply_trade(
            _position("3", "100"), OrderSide.BUY, Decimal("3"), Decimal("101")
        )
        assert pos.cost_basis == Decimal("603")
        assert pos.avg_cost == Decimal("100.5")

    def test_uneven_average_realizes_exactly(self) -> None:
        # 100.0000666... per share cannot be stored; the basis can
        pos, _ = accounting.apply_trade(
            _position(), OrderSide.BUY, Decimal("100000"), Decimal("100")
        )
        pos, _ = accounting.apply_trade(pos, OrderSide.BUY, Decimal("200000"), Decimal("100.0001"))
        assert pos.cost_basis == Decimal("30000020")
        assert pos.avg_cost == Decimal("100.000067")

        pos, realized = accounting.apply_trade(
            pos, OrderSide.SELL, Decimal("300000"), Decimal("100.0001")
        )
        assert realized == Decimal("10")
        assert pos.cost_basis == 0
        assert pos.realized_pnl == Decimal("10")

    def test_partial_close_releases_proportional_basis(self) -> None:
        pos, _ = accounting.apply_trade(_position(), OrderSide.BUY, Decimal("3"), Decimal("10"))
        pos, _ = accounting.apply_trade(pos, OrderSide.BUY, Decimal("3"), Decimal("10.0001"))
        pos, realized = accounting.apply_trade(pos, OrderSide.SELL, Decimal("1"), Decimal("11"))
        # basis 60.0003, one sixth released
        assert realized == Decimal("0.99995")
        assert pos.cost_basis == Decimal("50.00025")
        assert pos.cost_basis - realized == Decimal("60.0003") - Decimal("11")

    def test_same_price_round_trip_is_neutral(self) -> None:
        start = _position(realized="7")
        pos, bought = accounting.apply_trade(start, OrderSide.BUY, Decimal("3.3333"), Decimal("33.3333"))
        pos, sold = accounting.apply_trade(pos, OrderSide.SELL, Decimal("3.3333"), Decimal("33.3333"))
        assert pos.quantity == start.quantity
        assert bought + sold == 0
        assert pos.realized_pnl == Decimal("7")

    def test_flip_opens_with_remaining_notional(self) -> None:
        pos, realized = accounting.apply_trade(
            _position("1.5", "20"), OrderSide.SELL, Decimal("4"), Decimal("19.9999")
        )
        # 79.9996 proceeds: 29.99985 closes the long, 49.99975 opens the short
        assert realized == Decimal("-0.00015")
        assert pos.quantity == Decimal("-2.5")
        assert pos.cost_basis == Decimal("-49.99975")
        assert pos.avg_cost == Decimal("19.9999")
