"""Order domain models: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.iv_common.enums import OrderStatus, RejectReason

_CANCELLABLE = (OrderStatus.PENDING.value, OrderStatus.PARTIAL.value)


@dataclass
class Order:
    id: str
    scenario_id: str
    user_id: str
    instrument_id: str
    side: str  # BUY / SELL
    order_type: str  # MARKET / LIMIT
    quantity: Decimal  # > 0
    limit_price: Decimal | None = None  # set iff LIMIT
    status: str = OrderStatus.PENDING.value
    filled_qty: Decimal = Decimal("0")
    avg_fill_price: Decimal | None = None
    locked_amount: Decimal = Decimal("0")  # cash reserved by a resting BUY
    cancel_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def remaining_qty(self) -> Decimal:
        return self.quantity - self.filled_qty

    @property
    def is_cancellable(self) -> bool:
        return self.status in _CANCELLABLE


@dataclass(frozen=True)
class Trade:
    id: str
    order_id: str
    scenario_id: str
    user_id: str
    instrument_id: str
    side: str
    qty: Decimal
    price: Decimal
    ts: datetime


@dataclass(frozen=True)
class PlaceOrderResult:
    """Either an accepted order (FILLED with its trade, or resting PENDING) or a rejection.

    Rejected orders are not persisted, so order is None when reject_reason is set.
    """

    order: Order | None = None
    trade: Trade | None = None
    reject_reason: RejectReason | None = None
    reject_message: str | None = None

    @property
    def accepted(self) -> bool:
        return self.reject_reason is None

    @classmethod
    def rejected(cls, reason: RejectReason, message: str) -> "PlaceOrderResult":
        return cls(reject_reason=reason, reject_message=message)
