"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class ScenarioStatus(str, Enum):
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    LIVE = "LIVE"
    CLOSED = "CLOSED"
    ARCHIVED = "ARCHIVED"


class PriceMode(str, Enum):
    SIMULATED = "SIMULATED"


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    PLAYER = "PLAYER"


class OrderSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderType(str, Enum):
    MARKET = "MARKET"
    LIMIT = "LIMIT"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    FILLED = "FILLED"
    CANCELED = "CANCELED"
    REJECTED = "REJECTED"


class RejectReason(str, Enum):
    """Why place_order refused an order. Returned to callers, never raised."""
    SCENARIO_NOT_TRADABLE = "SCENARIO_NOT_TRADABLE"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    INVALID_PRICE = "INVALID_PRICE"
    NO_PRICE = "NO_PRICE"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    INSUFFICIENT_SHARES = "INSUFFICIENT_SHARES"


class CancelReason(str, Enum):
    USER_REQUEST = "USER_REQUEST"
    SCENARIO_CLOSED = "SCENARIO_CLOSED"
    INSUFFICIENT_SHARES = "INSUFFICIENT_SHARES"


class LedgerEntryType(str, Enum):
    # Player join
    SEED = "SEED"
    # Pending limit buy
    ORDER_RESERVE = "ORDER_RESERVE"
    ORDER_RELEASE = "ORDER_RELEASE"
    # Fills
    TRADE_DEBIT = "TRADE_DEBIT"
    TRADE_CREDIT = "TRADE_CREDIT"
