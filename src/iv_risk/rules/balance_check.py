from decimal import Decimal

from src.iv_common.errors import InsufficientFundsError
from src.iv_ledger.domain.models import PlayerState


def check_buying_power(state: PlayerState, required: Decimal) -> None:
    """Raise InsufficientFundsError if required exceeds cash_available (locked cash does not count)."""
    if required > state.cash_available:
        raise InsufficientFundsError(required, state.cash_available)
