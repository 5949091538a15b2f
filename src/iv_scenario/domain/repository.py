"""Repository Protocol: dependency inversion for testability."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_scenario.domain.models import Instrument, Scenario


class ScenarioRepositoryProtocol(Protocol):
    async def list_scenarios(
        self,
        db: AsyncSession,
        status: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Scenario]: ...

    async def get_scenario(
        self, db: AsyncSession, scenario_id: str, for_update: bool = False
    ) -> Scenario | None: ...

    async def create_scenario(self, db: AsyncSession, scenario: Scenario) -> Scenario: ...

    async def update_status(
        self, db: AsyncSession, scenario_id: str, status: str
    ) -> Scenario: ...

    async def update_end_at(
        self, db: AsyncSession, scenario_id: str, end_at: datetime
    ) -> Scenario: ...

    async def list_instruments(
        self, db: AsyncSession, scenario_id: str
    ) -> list[Instrument]: ...

    async def get_instrument(
        self, db: AsyncSession, instrument_id: str
    ) -> Instrument | None: ...

    async def add_instrument(
        self, db: AsyncSession, instrument: Instrument
    ) -> Instrument: ...

    async def list_live_instruments(self, db: AsyncSession) -> list[Instrument]: ...

    async def update_details(self, db: AsyncSession, scenario: Scenario) -> Scenario: ...

    async def delete_instrument(self, db: AsyncSession, instrument_id: str) -> bool: ...
