"""Decimal arithmetic utilities for cash, prices and quantities.

All prices, amounts, balances and quantities are Decimal. No float.
Amounts carry 6 decimal places, prices 4, quantities 4 (the trading form
floors max-buyable quantity to 4 decimals).
"""

from decimal import ROUND_DOWN, ROUND_HALF_EVEN, Decimal

AMOUNT_EXP = Decimal("0.000001")
PRICE_EXP = Decimal("0.0001")
QUANTITY_EXP = Decimal("0.0001")
ZERO = Decimal("0")


def to_decimal(value: object) -> Decimal:
    """Coerce int/str/Decimal (and DB numerics) to Decimal. Floats go through str."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)  # type: ignore[arg-type]


def quantize_amount(value: Decimal) -> Decimal:
    return value.quantize(AMOUNT_EXP, rounding=ROUND_HALF_EVEN)


def quantize_price(value: Decimal) -> Decimal:
    return value.quantize(PRICE_EXP, rounding=ROUND_HALF_EVEN)


def floor_quantity(value: Decimal) -> Decimal:
    """Round a quantity down so a derived order never exceeds what is affordable."""
    return value.quantize(QUANTITY_EXP, rounding=ROUND_DOWN)


def notional(quantity: Decimal, price: Decimal) -> Decimal:
    """Cash value of quantity * price, quantized to the amount precision."""
    return quantize_amount(quantity * price)


def money_to_display(amount: Decimal) -> str:
    """Convert an amount to a display string: 6500 -> '$6,500.00', -12 -> '-$12.00'."""
    rounded = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_EVEN)
    if rounded < 0:
        return f"-${-rounded:,.2f}"
    return f"${rounded:,.2f}"
