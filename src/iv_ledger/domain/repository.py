"""Repository Protocol: dependency inversion for testability.

Unit tests inject a fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_ledger.domain.models import LedgerEntry, PlayerState, Position


class LedgerRepositoryProtocol(Protocol):
    async def get_player_state(
        self, db: AsyncSession, scenario_id: str, user_id: str, for_update: bool = False
    ) -> PlayerState | None: ...

    async def create_player_state(
        self, db: AsyncSession, scenario_id: str, user_id: str, initial_cash: Decimal
    ) -> PlayerState | None:
        """Insert a fresh row; None when the row already existed."""
        ...

    async def save_player_state(self, db: AsyncSession, state: PlayerState) -> PlayerState:
        """Versioned update; raises LedgerConflictError on a stale version."""
        ...

    async def get_position(
        self, db: AsyncSession, scenario_id: str, user_id: str, instrument_id: str
    ) -> Position | None: ...

    async def list_positions(
        self, db: AsyncSession, scenario_id: str, user_id: str
    ) -> list[Position]: ...

    async def save_position(self, db: AsyncSession, position: Position) -> Position: ...

    async def append_entry(
        self,
        db: AsyncSession,
        state: PlayerState,
        entry_type: str,
        amount: Decimal,
        reference_type: str | None,
        reference_id: str | None,
        description: str | None = None,
    ) -> LedgerEntry: ...

    async def list_entries(
        self,
        db: AsyncSession,
        scenario_id: str,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]: ...
