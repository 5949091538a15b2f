"""Pydantic response schemas for price endpoints."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from src.iv_pricing.domain.models import LatestPrice, PriceTick


class PriceTickResponse(BaseModel):
    id: str
    instrument_id: str
    ts: datetime
    price: Decimal

    @classmethod
    def from_domain(cls, tick: PriceTick) -> "PriceTickResponse":
        return cls(id=tick.id, instrument_id=tick.instrument_id, ts=tick.ts, price=tick.price)


class LatestPriceItem(BaseModel):
    instrument_id: str
    symbol: str
    display_name: str
    price: Decimal
    ts: datetime

    @classmethod
    def from_domain(cls, latest: LatestPrice) -> "LatestPriceItem":
        return cls(
            instrument_id=latest.instrument_id,
            symbol=latest.symbol,
            display_name=latest.display_name,
            price=latest.price,
            ts=latest.ts,
        )


class LatestPricesResponse(BaseModel):
    scenario_id: str
    prices: list[LatestPriceItem]


class PriceHistoryResponse(BaseModel):
    instrument_id: str
    ticks: list[PriceTickResponse]  # newest first
