"""Pydantic schemas and cursor utilities for the ledger read API."""

import base64
import json
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from src.iv_common.money import money_to_display
from src.iv_ledger.domain.models import LedgerEntry, PlayerState, Position

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PlayerStateResponse(BaseModel):
    scenario_id: str
    user_id: str
    cash_available: Decimal
    cash_available_display: str
    cash_locked: Decimal
    cash_locked_display: str
    total_cash: Decimal
    initialized_at: datetime | None
    version: int

    @classmethod
    def from_domain(cls, state: PlayerState) -> "PlayerStateResponse":
        return cls(
            scenario_id=state.scenario_id,
            user_id=state.user_id,
            cash_available=state.cash_available,
            cash_available_display=money_to_display(state.cash_available),
            cash_locked=state.cash_locked,
            cash_locked_display=money_to_display(state.cash_locked),
            total_cash=state.total_cash,
            initialized_at=state.initialized_at,
            version=state.version,
        )


class PositionItem(BaseModel):
    instrument_id: str
    quantity: Decimal
    avg_cost: Decimal
    cost_basis: Decimal
    realized_pnl: Decimal
    updated_at: datetime | None

    @classmethod
    def from_domain(cls, position: Position) -> "PositionItem":
        return cls(
            instrument_id=position.instrument_id,
            quantity=position.quantity,
            avg_cost=position.avg_cost,
            cost_basis=position.cost_basis,
            realized_pnl=position.realized_pnl,
            updated_at=position.updated_at,
        )


class PositionListResponse(BaseModel):
    scenario_id: str
    items: list[PositionItem]


class LedgerEntryItem(BaseModel):
    id: int
    entry_type: str
    amount: Decimal
    amount_display: str
    cash_available_after: Decimal
    reference_type: str | None
    reference_id: str | None
    description: str | None
    created_at: datetime | None

    @classmethod
    def from_domain(cls, entry: LedgerEntry) -> "LedgerEntryItem":
        return cls(
            id=entry.id,
            entry_type=entry.entry_type,
            amount=entry.amount,
            amount_display=money_to_display(entry.amount),
            cash_available_after=entry.cash_available_after,
            reference_type=entry.reference_type,
            reference_id=entry.reference_id,
            description=entry.description,
            created_at=entry.created_at,
        )


class LedgerResponse(BaseModel):
    items: list[LedgerEntryItem]
    next_cursor: str | None
    has_more: bool


class TradingLimitsResponse(BaseModel):
    """What the order form may offer: max buyable at the current price, max sellable."""

    instrument_id: str
    price: Decimal | None  # None until the first tick
    cash_available: Decimal
    max_buy_quantity: Decimal | None
    max_sell_quantity: Decimal
    short_allowed: bool
