"""ScenarioSession: per-player initialization.

initialize_player() is idempotent: the first call seeds the player with the
scenario's initial cash (and writes a SEED ledger entry); every later call
returns the existing state unchanged, whatever has happened to it since.
Concurrent first calls race on INSERT ... ON CONFLICT DO NOTHING, and the
loser simply reads the winner's row.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_common.enums import LedgerEntryType, ScenarioStatus
from src.iv_common.errors import InternalError, ScenarioLockedError, ScenarioNotFoundError
from src.iv_ledger.application.schemas import PlayerStateResponse
from src.iv_ledger.domain.models import PlayerState
from src.iv_ledger.domain.repository import LedgerRepositoryProtocol
from src.iv_ledger.infrastructure.persistence import LedgerRepository
from src.iv_scenario.domain.repository import ScenarioRepositoryProtocol
from src.iv_scenario.infrastructure.persistence import ScenarioRepository

logger = logging.getLogger(__name__)

# Players may join once a scenario is announced and until it closes.
_JOINABLE_STATUSES = frozenset({ScenarioStatus.SCHEDULED.value, ScenarioStatus.LIVE.value})


class ScenarioSession:
    def __init__(
        self,
        scenario_repo: ScenarioRepositoryProtocol | None = None,
        ledger_repo: LedgerRepositoryProtocol | None = None,
    ) -> None:
        self._scenario_repo: ScenarioRepositoryProtocol = scenario_repo or ScenarioRepository()
        self._ledger_repo: LedgerRepositoryProtocol = ledger_repo or LedgerRepository()

    async def initialize_player(
        self, db: AsyncSession, scenario_id: str, user_id: str
    ) -> PlayerState:
        existing = await self._ledger_repo.get_player_state(db, scenario_id, user_id)
        if existing is not None:
            return existing

        scenario = await self._scenario_repo.get_scenario(db, scenario_id)
        if scenario is None:
            raise ScenarioNotFoundError(scenario_id)
        if scenario.status not in _JOINABLE_STATUSES:
            raise ScenarioLockedError(f"Scenario is {scenario.status}; joining is closed")

        try:
            created = await self._ledger_repo.create_player_state(
                db, scenario_id, user_id, scenario.initial_cash
            )
            if created is not None:
                await self._ledger_repo.append_entry(
                    db,
                    created,
                    LedgerEntryType.SEED.value,
                    created.cash_available,
                    "SCENARIO",
                    scenario_id,
                    "Starting cash",
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if created is not None:
            logger.info(
                "Player %s joined scenario %s with %s", user_id, scenario_id, created.cash_available
            )
            return created

        state = await self._ledger_repo.get_player_state(db, scenario_id, user_id)
        if state is None:
            raise InternalError("Player state vanished after concurrent join")
        return state

    async def join(self, db: AsyncSession, scenario_id: str, user_id: str) -> PlayerStateResponse:
        return PlayerStateResponse.from_domain(
            await self.initialize_player(db, scenario_id, user_id)
        )
