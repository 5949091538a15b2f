"""ScenarioApplicationService: scenario records and lifecycle transitions.

Reads run without an explicit transaction. Writes lock the scenario row
(SELECT ... FOR UPDATE), apply the rule, and commit; on any error the
session is rolled back and the error re-raised.
"""

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_common.datetime_utils import ensure_utc, utc_now
from src.iv_common.enums import PriceMode, ScenarioStatus
from src.iv_common.errors import (
    DuplicateSymbolError,
    InstrumentNotFoundError,
    InvalidScenarioWindowError,
    ScenarioLockedError,
    ScenarioNotFoundError,
)
from src.iv_common.id_generator import generate_id
from src.iv_common.money import quantize_amount, quantize_price
from src.iv_scenario.application.schemas import (
    AddInstrumentRequest,
    CreateScenarioRequest,
    InstrumentResponse,
    ScenarioListResponse,
    ScenarioResponse,
    UpdateScenarioRequest,
)
from src.iv_scenario.domain.lifecycle import EDITABLE_STATUSES, ScenarioAction, next_status
from src.iv_scenario.domain.models import Instrument, Scenario
from src.iv_scenario.domain.repository import ScenarioRepositoryProtocol
from src.iv_scenario.infrastructure.persistence import ScenarioRepository

logger = logging.getLogger(__name__)

# Demo market used by the admin "create test scenario" action.
_TEST_INSTRUMENTS: tuple[tuple[str, str, str], ...] = (
    ("AAPL", "Apple Inc.", "150.00"),
    ("GOOGL", "Alphabet Inc.", "140.00"),
    ("TSLA", "Tesla Inc.", "250.00"),
)
_TEST_INITIAL_CASH = Decimal("10000")
_TEST_DURATION = timedelta(hours=2)

# end_at may still move (later only) in these states
_EXTENDABLE_STATUSES = frozenset(
    {ScenarioStatus.DRAFT.value, ScenarioStatus.SCHEDULED.value, ScenarioStatus.LIVE.value}
)


class ScenarioApplicationService:
    def __init__(self, repo: ScenarioRepositoryProtocol | None = None) -> None:
        self._repo: ScenarioRepositoryProtocol = repo or ScenarioRepository()

    async def list_scenarios(
        self,
        db: AsyncSession,
        status: str | None,
        cursor: str | None,
        limit: int,
    ) -> ScenarioListResponse:
        scenarios = await self._repo.list_scenarios(db, status, cursor, limit + 1)
        has_more = len(scenarios) > limit
        page = scenarios[:limit]
        return ScenarioListResponse(
            items=[ScenarioResponse.from_domain(s) for s in page],
            next_cursor=page[-1].id if has_more and page else None,
            has_more=has_more,
        )

    async def get_scenario(self, db: AsyncSession, scenario_id: str) -> ScenarioResponse:
        scenario = await self._repo.get_scenario(db, scenario_id)
        if scenario is None:
            raise ScenarioNotFoundError(scenario_id)
        return ScenarioResponse.from_domain(scenario)

    async def create_scenario(
        self, db: AsyncSession, req: CreateScenarioRequest, created_by: str
    ) -> ScenarioResponse:
        scenario = Scenario(
            id=generate_id(),
            title=req.title,
            prompt=req.prompt,
            initial_cash=quantize_amount(req.initial_cash),
            start_at=ensure_utc(req.start_at),
            end_at=ensure_utc(req.end_at),
            allow_short=req.allow_short,
            status=ScenarioStatus.DRAFT.value,
            created_by=created_by,
        )
        try:
            created = await self._repo.create_scenario(db, scenario)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Scenario %s created by %s: %s", created.id, created_by, created.title)
        return ScenarioResponse.from_domain(created)

    async def add_instrument(
        self, db: AsyncSession, scenario_id: str, req: AddInstrumentRequest
    ) -> InstrumentResponse:
        try:
            scenario = await self._repo.get_scenario(db, scenario_id, for_update=True)
            if scenario is None:
                raise ScenarioNotFoundError(scenario_id)
            if scenario.status not in EDITABLE_STATUSES:
                raise ScenarioLockedError(
                    f"Instruments are read-only once scenario is {scenario.status}"
                )
            if any(i.symbol == req.symbol for i in scenario.instruments):
                raise DuplicateSymbolError(req.symbol)

            instrument = await self._repo.add_instrument(
                db,
                Instrument(
                    id=generate_id(),
                    scenario_id=scenario_id,
                    symbol=req.symbol,
                    display_name=req.display_name,
                    starting_price=quantize_price(req.starting_price),
                    price_mode=PriceMode.SIMULATED.value,
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return InstrumentResponse.from_domain(instrument)

    async def transition(
        self, db: AsyncSession, scenario_id: str, action: ScenarioAction
    ) -> ScenarioResponse:
        try:
            scenario = await self._repo.get_scenario(db, scenario_id, for_update=True)
            if scenario is None:
                raise ScenarioNotFoundError(scenario_id)
            target = next_status(scenario.status, action)
            updated = await self._repo.update_status(db, scenario_id, target.value)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        updated.instruments = scenario.instruments
        logger.info("Scenario %s: %s -> %s", scenario_id, scenario.status, updated.status)
        return ScenarioResponse.from_domain(updated)

    async def extend(
        self, db: AsyncSession, scenario_id: str, end_at: datetime
    ) -> ScenarioResponse:
        """Move end_at later. Never earlier, never after the scenario closed."""
        end_at = ensure_utc(end_at)
        try:
            scenario = await self._repo.get_scenario(db, scenario_id, for_update=True)
            if scenario is None:
                raise ScenarioNotFoundError(scenario_id)
            if scenario.status not in _EXTENDABLE_STATUSES:
                raise ScenarioLockedError(f"Scenario is {scenario.status}; end time is final")
            current_end = ensure_utc(scenario.end_at)
            if end_at <= current_end:
                raise InvalidScenarioWindowError(
                    f"new end {end_at.isoformat()} must be after {current_end.isoformat()}"
                )
            if scenario.status == ScenarioStatus.LIVE.value and end_at <= utc_now():
                raise InvalidScenarioWindowError("new end must be in the future")
            updated = await self._repo.update_end_at(db, scenario_id, end_at)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        updated.instruments = scenario.instruments
        return ScenarioResponse.from_domain(updated)

    async def update_details(
        self, db: AsyncSession, scenario_id: str, req: UpdateScenarioRequest
    ) -> ScenarioResponse:
        try:
            scenario = await self._repo.get_scenario(db, scenario_id, for_update=True)
            if scenario is None:
                raise ScenarioNotFoundError(scenario_id)
            if scenario.status not in EDITABLE_STATUSES:
                raise ScenarioLockedError(
                    f"Scenario is {scenario.status}; only status and end time may change"
                )
            changes = req.model_dump(exclude_unset=True, exclude_none=True)
            if "initial_cash" in changes:
                changes["initial_cash"] = quantize_amount(changes["initial_cash"])
            for key in ("start_at", "end_at"):
                if key in changes:
                    changes[key] = ensure_utc(changes[key])
            merged = replace(scenario, **changes)
            if ensure_utc(merged.end_at) <= ensure_utc(merged.start_at):
                raise InvalidScenarioWindowError("end_at must be after start_at")
            updated = await self._repo.update_details(db, merged)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        updated.instruments = scenario.instruments
        return ScenarioResponse.from_domain(updated)

    async def remove_instrument(self, db: AsyncSession, instrument_id: str) -> None:
        try:
            instrument = await self._repo.get_instrument(db, instrument_id)
            if instrument is None:
                raise InstrumentNotFoundError(instrument_id)
            scenario = await self._repo.get_scenario(db, instrument.scenario_id, for_update=True)
            if scenario is None:
                raise ScenarioNotFoundError(instrument.scenario_id)
            if scenario.status not in EDITABLE_STATUSES:
                raise ScenarioLockedError(
                    f"Instruments are read-only once scenario is {scenario.status}"
                )
            await self._repo.delete_instrument(db, instrument_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Instrument %s removed from scenario %s", instrument_id, instrument.scenario_id)

    async def create_test_scenario(self, db: AsyncSession, created_by: str) -> ScenarioResponse:
        """A DRAFT scenario starting now with a small demo instrument set."""
        start = utc_now()
        scenario = await self.create_scenario(
            db,
            CreateScenarioRequest(
                title=f"Test Scenario {start:%Y-%m-%d %H:%M}",
                prompt="Demo market for trying out the trading screens.",
                initial_cash=_TEST_INITIAL_CASH,
                start_at=start,
                end_at=start + _TEST_DURATION,
            ),
            created_by,
        )
        for symbol, name, price in _TEST_INSTRUMENTS:
            await self.add_instrument(
                db,
                scenario.id,
                AddInstrumentRequest(symbol=symbol, display_name=name, starting_price=Decimal(price)),
            )
        return await self.get_scenario(db, scenario.id)
