"""Domain models for iv_pricing."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class PriceTick:
    """One append-only price observation. The newest tick is the current price."""

    id: str
    instrument_id: str
    ts: datetime
    price: Decimal


@dataclass(frozen=True)
class LatestPrice:
    """Current price of one instrument, joined with its display fields."""

    instrument_id: str
    symbol: str
    display_name: str
    price: Decimal
    ts: datetime
