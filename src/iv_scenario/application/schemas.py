"""Pydantic schemas for scenario records and player join."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from src.iv_scenario.domain.models import Instrument, Scenario

# ---------------------------------------------------------------------------
# Request schemas (admin)
# ---------------------------------------------------------------------------


class CreateScenarioRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    prompt: str | None = Field(None, max_length=4000)
    initial_cash: Decimal = Field(..., gt=0, max_digits=20, decimal_places=6)
    start_at: datetime
    end_at: datetime
    allow_short: bool = False

    @model_validator(mode="after")
    def window_is_ordered(self) -> "CreateScenarioRequest":
        if self.end_at <= self.start_at:
            raise ValueError("end_at must be after start_at")
        return self


class UpdateScenarioRequest(BaseModel):
    """Partial update of scenario details; only while DRAFT or SCHEDULED."""

    title: str | None = Field(None, min_length=1, max_length=200)
    prompt: str | None = Field(None, max_length=4000)
    initial_cash: Decimal | None = Field(None, gt=0, max_digits=20, decimal_places=6)
    start_at: datetime | None = None
    end_at: datetime | None = None
    allow_short: bool | None = None


class AddInstrumentRequest(BaseModel):
    symbol: str = Field(..., min_length=1, max_length=12)
    display_name: str = Field(..., min_length=1, max_length=100)
    starting_price: Decimal = Field(..., gt=0, max_digits=18, decimal_places=4)

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        symbol = v.strip().upper()
        if not symbol or not all(c.isalnum() or c in "._-" for c in symbol):
            raise ValueError("symbol may only contain letters, digits, '.', '_' and '-'")
        return symbol


class ExtendScenarioRequest(BaseModel):
    end_at: datetime


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class InstrumentResponse(BaseModel):
    id: str
    scenario_id: str
    symbol: str
    display_name: str
    starting_price: Decimal
    price_mode: str

    @classmethod
    def from_domain(cls, instrument: Instrument) -> "InstrumentResponse":
        return cls(
            id=instrument.id,
            scenario_id=instrument.scenario_id,
            symbol=instrument.symbol,
            display_name=instrument.display_name,
            starting_price=instrument.starting_price,
            price_mode=instrument.price_mode,
        )


class ScenarioResponse(BaseModel):
    id: str
    title: str
    prompt: str | None
    initial_cash: Decimal
    start_at: datetime
    end_at: datetime
    allow_short: bool
    status: str
    created_at: datetime | None
    instruments: list[InstrumentResponse]

    @classmethod
    def from_domain(cls, scenario: Scenario) -> "ScenarioResponse":
        return cls(
            id=scenario.id,
            title=scenario.title,
            prompt=scenario.prompt,
            initial_cash=scenario.initial_cash,
            start_at=scenario.start_at,
            end_at=scenario.end_at,
            allow_short=scenario.allow_short,
            status=scenario.status,
            created_at=scenario.created_at,
            instruments=[InstrumentResponse.from_domain(i) for i in scenario.instruments],
        )


class ScenarioListResponse(BaseModel):
    items: list[ScenarioResponse]
    next_cursor: str | None  # id of the last scenario on this page
    has_more: bool
