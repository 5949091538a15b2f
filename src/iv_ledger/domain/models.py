"""Domain models for iv_ledger: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.iv_common.money import quantize_amount


@dataclass
class PlayerState:
    scenario_id: str
    user_id: str
    cash_available: Decimal
    cash_locked: Decimal
    version: int
    initialized_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_cash(self) -> Decimal:
        return self.cash_available + self.cash_locked


@dataclass
class Position:
    """Net holding of one instrument.

    cost_basis is the signed cash paid for the open quantity (negative for a
    short) at amount precision. It is the exact figure realized and unrealized
    P&L are measured against; avg_cost is |cost_basis| / |quantity| for display
    and defaults the basis when a Position is built from (quantity, avg_cost).
    """

    scenario_id: str
    user_id: str
    instrument_id: str
    quantity: Decimal = Decimal("0")      # signed, negative = short
    avg_cost: Decimal = Decimal("0")      # per share, always >= 0
    realized_pnl: Decimal = Decimal("0")
    created_at: datetime | None = None
    updated_at: datetime | None = None
    cost_basis: Decimal | None = None

    def __post_init__(self) -> None:
        if self.cost_basis is None:
            self.cost_basis = quantize_amount(self.quantity * self.avg_cost)

    @property
    def is_flat(self) -> bool:
        return self.quantity == 0


@dataclass
class LedgerEntry:
    id: int                              # BIGSERIAL
    scenario_id: str
    user_id: str
    entry_type: str                      # LedgerEntryType value
    amount: Decimal                      # positive=to available, negative=from available
    cash_available_after: Decimal
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None
