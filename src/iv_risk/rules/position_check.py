from decimal import Decimal

from src.iv_common.errors import InsufficientSharesError


def check_sell_quantity(held: Decimal, quantity: Decimal, allow_short: bool) -> None:
    """Without shorting, a sell may not exceed the long quantity held."""
    if allow_short:
        return
    if quantity > max(held, Decimal("0")):
        raise InsufficientSharesError(quantity, held)
