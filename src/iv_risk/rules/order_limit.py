from decimal import Decimal

from src.iv_common.errors import InvalidQuantityError
from src.iv_common.money import QUANTITY_EXP


def check_order_quantity(quantity: Decimal, max_quantity: Decimal) -> None:
    """Raise InvalidQuantityError unless 0 < quantity <= max_quantity at 4dp precision."""
    if not quantity.is_finite() or quantity <= 0:
        raise InvalidQuantityError(f"{quantity} must be > 0")
    if quantity > max_quantity:
        raise InvalidQuantityError(f"{quantity} exceeds the maximum of {max_quantity}")
    if quantity != quantity.quantize(QUANTITY_EXP):
        raise InvalidQuantityError(f"{quantity} has more than 4 decimal places")
