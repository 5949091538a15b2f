"""LedgerRepository: concrete implementation of LedgerRepositoryProtocol.

Player state updates are optimistic: the UPDATE matches on the version read
by the caller, and 0 rows means someone else wrote first. Row CHECK
constraints (cash_available >= 0, cash_locked >= 0) are the final guard.

Transaction ownership: the CALLER (engine or application service) starts and
commits the transaction.
"""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_common.errors import InternalError, LedgerConflictError
from src.iv_ledger.domain.models import LedgerEntry, PlayerState, Position

# ---------------------------------------------------------------------------
# SQL: player_scenario_state
# ---------------------------------------------------------------------------

_STATE_COLUMNS = """
    scenario_id, user_id, cash_available, cash_locked, version,
    initialized_at, updated_at
"""

_GET_STATE_SQL = text(f"""
    SELECT {_STATE_COLUMNS}
    FROM player_scenario_state
    WHERE scenario_id = :scenario_id AND user_id = :user_id
""")

_GET_STATE_FOR_UPDATE_SQL = text(f"""
    SELECT {_STATE_COLUMNS}
    FROM player_scenario_state
    WHERE scenario_id = :scenario_id AND user_id = :user_id
    FOR UPDATE
""")

_CREATE_STATE_SQL = text(f"""
    INSERT INTO player_scenario_state (scenario_id, user_id, cash_available, cash_locked)
    VALUES (:scenario_id, :user_id, :initial_cash, 0)
    ON CONFLICT (scenario_id, user_id) DO NOTHING
    RETURNING {_STATE_COLUMNS}
""")

_SAVE_STATE_SQL = text(f"""
    UPDATE player_scenario_state
    SET cash_available = :cash_available,
        cash_locked = :cash_locked,
        version = version + 1
    WHERE scenario_id = :scenario_id AND user_id = :user_id AND version = :version
    RETURNING {_STATE_COLUMNS}
""")

# ---------------------------------------------------------------------------
# SQL: positions
# ---------------------------------------------------------------------------

_POSITION_COLUMNS = """
    scenario_id, user_id, instrument_id, quantity, avg_cost, cost_basis,
    realized_pnl, created_at, updated_at
"""

_GET_POSITION_SQL = text(f"""
    SELECT {_POSITION_COLUMNS}
    FROM positions
    WHERE scenario_id = :scenario_id AND user_id = :user_id
      AND instrument_id = :instrument_id
""")

_LIST_POSITIONS_SQL = text(f"""
    SELECT {_POSITION_COLUMNS}
    FROM positions
    WHERE scenario_id = :scenario_id AND user_id = :user_id
    ORDER BY created_at, instrument_id
""")

_UPSERT_POSITION_SQL = text(f"""
    INSERT INTO positions
        (scenario_id, user_id, instrument_id, quantity, avg_cost, cost_basis, realized_pnl)
    VALUES
        (:scenario_id, :user_id, :instrument_id, :quantity, :avg_cost, :cost_basis,
         :realized_pnl)
    ON CONFLICT (scenario_id, user_id, instrument_id) DO UPDATE
        SET quantity = EXCLUDED.quantity,
            avg_cost = EXCLUDED.avg_cost,
            cost_basis = EXCLUDED.cost_basis,
            realized_pnl = EXCLUDED.realized_pnl
    RETURNING {_POSITION_COLUMNS}
""")

# ---------------------------------------------------------------------------
# SQL: ledger_entries
# ---------------------------------------------------------------------------

_INSERT_ENTRY_SQL = text("""
    INSERT INTO ledger_entries
        (scenario_id, user_id, entry_type, amount, cash_available_after,
         reference_type, reference_id, description)
    VALUES
        (:scenario_id, :user_id, :entry_type, :amount, :cash_available_after,
         :reference_type, :reference_id, :description)
    RETURNING id, scenario_id, user_id, entry_type, amount, cash_available_after,
              reference_type, reference_id, description, created_at
""")

_LIST_ENTRIES_SQL = text("""
    SELECT id, scenario_id, user_id, entry_type, amount, cash_available_after,
           reference_type, reference_id, description, created_at
    FROM ledger_entries
    WHERE scenario_id = :scenario_id AND user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
      AND (CAST(:entry_type AS TEXT) IS NULL OR entry_type = :entry_type)
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_state(row: object) -> PlayerState:
    return PlayerState(
        scenario_id=row.scenario_id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        cash_available=row.cash_available,  # type: ignore[attr-defined]
        cash_locked=row.cash_locked,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        initialized_at=row.initialized_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_position(row: object) -> Position:
    return Position(
        scenario_id=row.scenario_id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        instrument_id=row.instrument_id,  # type: ignore[attr-defined]
        quantity=row.quantity,  # type: ignore[attr-defined]
        avg_cost=row.avg_cost,  # type: ignore[attr-defined]
        cost_basis=row.cost_basis,  # type: ignore[attr-defined]
        realized_pnl=row.realized_pnl,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_entry(row: object) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        scenario_id=row.scenario_id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        entry_type=row.entry_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        cash_available_after=row.cash_available_after,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class LedgerRepository:
    """Concrete repository: raw SQL, caller-owned transactions."""

    async def get_player_state(
        self, db: AsyncSession, scenario_id: str, user_id: str, for_update: bool = False
    ) -> PlayerState | None:
        sql = _GET_STATE_FOR_UPDATE_SQL if for_update else _GET_STATE_SQL
        result = await db.execute(sql, {"scenario_id": scenario_id, "user_id": user_id})
        row = result.fetchone()
        return _row_to_state(row) if row else None

    async def create_player_state(
        self, db: AsyncSession, scenario_id: str, user_id: str, initial_cash: Decimal
    ) -> PlayerState | None:
        result = await db.execute(
            _CREATE_STATE_SQL,
            {"scenario_id": scenario_id, "user_id": user_id, "initial_cash": initial_cash},
        )
        row = result.fetchone()
        return _row_to_state(row) if row else None

    async def save_player_state(self, db: AsyncSession, state: PlayerState) -> PlayerState:
        result = await db.execute(
            _SAVE_STATE_SQL,
            {
                "scenario_id": state.scenario_id,
                "user_id": state.user_id,
                "cash_available": state.cash_available,
                "cash_locked": state.cash_locked,
                "version": state.version,
            },
        )
        row = result.fetchone()
        if row is None:
            raise LedgerConflictError(
                f"Player state {state.scenario_id}/{state.user_id} changed concurrently"
            )
        return _row_to_state(row)

    async def get_position(
        self, db: AsyncSession, scenario_id: str, user_id: str, instrument_id: str
    ) -> Position | None:
        result = await db.execute(
            _GET_POSITION_SQL,
            {"scenario_id": scenario_id, "user_id": user_id, "instrument_id": instrument_id},
        )
        row = result.fetchone()
        return _row_to_position(row) if row else None

    async def list_positions(
        self, db: AsyncSession, scenario_id: str, user_id: str
    ) -> list[Position]:
        result = await db.execute(
            _LIST_POSITIONS_SQL, {"scenario_id": scenario_id, "user_id": user_id}
        )
        return [_row_to_position(row) for row in result.fetchall()]

    async def save_position(self, db: AsyncSession, position: Position) -> Position:
        result = await db.execute(
            _UPSERT_POSITION_SQL,
            {
                "scenario_id": position.scenario_id,
                "user_id": position.user_id,
                "instrument_id": position.instrument_id,
                "quantity": position.quantity,
                "avg_cost": position.avg_cost,
                "cost_basis": position.cost_basis,
                "realized_pnl": position.realized_pnl,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Position upsert returned no rows: this should never happen")
        return _row_to_position(row)

    async def append_entry(
        self,
        db: AsyncSession,
        state: PlayerState,
        entry_type: str,
        amount: Decimal,
        reference_type: str | None,
        reference_id: str | None,
        description: str | None = None,
    ) -> LedgerEntry:
        result = await db.execute(
            _INSERT_ENTRY_SQL,
            {
                "scenario_id": state.scenario_id,
                "user_id": state.user_id,
                "entry_type": entry_type,
                "amount": amount,
                "cash_available_after": state.cash_available,
                "reference_type": reference_type,
                "reference_id": reference_id,
                "description": description,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Ledger insert returned no rows: this should never happen")
        return _row_to_entry(row)

    async def list_entries(
        self,
        db: AsyncSession,
        scenario_id: str,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _LIST_ENTRIES_SQL,
            {
                "scenario_id": scenario_id,
                "user_id": user_id,
                "cursor_id": cursor_id,
                "entry_type": entry_type,
                "limit": limit,
            },
        )
        return [_row_to_entry(row) for row in result.fetchall()]
