"""Typed topics and event payloads for the change feed."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class Topic:
    name: str

    @classmethod
    def instrument_prices(cls, instrument_id: str) -> "Topic":
        return cls(f"prices:instrument:{instrument_id}")

    @classmethod
    def scenario_prices(cls, scenario_id: str) -> "Topic":
        return cls(f"prices:scenario:{scenario_id}")

    @classmethod
    def scenario_trades(cls, scenario_id: str) -> "Topic":
        return cls(f"trades:scenario:{scenario_id}")

    @classmethod
    def user_trades(cls, scenario_id: str, user_id: str) -> "Topic":
        return cls(f"trades:scenario:{scenario_id}:user:{user_id}")


@dataclass(frozen=True)
class PriceTickEvent:
    instrument_id: str
    scenario_id: str
    price: Decimal
    timestamp: datetime

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": "price_tick",
            "instrument_id": self.instrument_id,
            "scenario_id": self.scenario_id,
            "price": str(self.price),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class TradeEvent:
    scenario_id: str
    user_id: str
    order_id: str
    trade_id: str
    instrument_id: str
    side: str
    qty: Decimal
    price: Decimal
    timestamp: datetime

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": "trade",
            "scenario_id": self.scenario_id,
            "user_id": self.user_id,
            "order_id": self.order_id,
            "trade_id": self.trade_id,
            "instrument_id": self.instrument_id,
            "side": self.side,
            "qty": str(self.qty),
            "price": str(self.price),
            "timestamp": self.timestamp.isoformat(),
        }


Event = PriceTickEvent | TradeEvent
