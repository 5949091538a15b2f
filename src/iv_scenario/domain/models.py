"""Domain models for iv_scenario: pure dataclasses, no business logic."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


@dataclass
class Instrument:
    id: str
    scenario_id: str
    symbol: str
    display_name: str
    starting_price: Decimal
    price_mode: str = "SIMULATED"
    created_at: datetime | None = None


@dataclass
class Scenario:
    id: str
    title: str
    prompt: str | None
    initial_cash: Decimal
    start_at: datetime
    end_at: datetime
    allow_short: bool
    status: str
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    instruments: list[Instrument] = field(default_factory=list)
