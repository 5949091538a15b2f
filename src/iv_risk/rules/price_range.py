from decimal import Decimal

from src.iv_common.enums import OrderType
from src.iv_common.errors import InvalidPriceError
from src.iv_common.money import PRICE_EXP


def check_limit_price(order_type: str, limit_price: Decimal | None) -> None:
    """LIMIT orders need a positive 4dp limit_price; MARKET orders must not carry one."""
    if order_type == OrderType.MARKET.value:
        if limit_price is not None:
            raise InvalidPriceError("market orders do not take a limit_price")
        return
    if limit_price is None:
        raise InvalidPriceError("limit orders require a limit_price")
    if not limit_price.is_finite() or limit_price <= 0:
        raise InvalidPriceError(f"limit_price {limit_price} must be > 0")
    if limit_price != limit_price.quantize(PRICE_EXP):
        raise InvalidPriceError(f"limit_price {limit_price} has more than 4 decimal places")
