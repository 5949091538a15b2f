"""ScenarioRepository: concrete implementation of ScenarioRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_common.errors import ScenarioNotFoundError
from src.iv_scenario.domain.models import Instrument, Scenario

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_SCENARIO_COLUMNS = """
    id, title, prompt, initial_cash, start_at, end_at, allow_short, status,
    created_by, created_at, updated_at
"""

_INSTRUMENT_COLUMNS = """
    id, scenario_id, symbol, display_name, starting_price, price_mode, created_at
"""

_GET_SCENARIO_SQL = text(f"""
    SELECT {_SCENARIO_COLUMNS}
    FROM scenarios
    WHERE id = :scenario_id
""")

_GET_SCENARIO_FOR_UPDATE_SQL = text(f"""
    SELECT {_SCENARIO_COLUMNS}
    FROM scenarios
    WHERE id = :scenario_id
    FOR UPDATE
""")

_LIST_SCENARIOS_SQL = text(f"""
    SELECT {_SCENARIO_COLUMNS}
    FROM scenarios
    WHERE (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < CAST(:cursor_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

_INSERT_SCENARIO_SQL = text(f"""
    INSERT INTO scenarios
        (id, title, prompt, initial_cash, start_at, end_at, allow_short, status, created_by)
    VALUES
        (:id, :title, :prompt, :initial_cash, :start_at, :end_at, :allow_short, :status,
         :created_by)
    RETURNING {_SCENARIO_COLUMNS}
""")

_UPDATE_STATUS_SQL = text(f"""
    UPDATE scenarios SET status = :status
    WHERE id = :scenario_id
    RETURNING {_SCENARIO_COLUMNS}
""")

_UPDATE_END_AT_SQL = text(f"""
    UPDATE scenarios SET end_at = :end_at
    WHERE id = :scenario_id
    RETURNING {_SCENARIO_COLUMNS}
""")

_UPDATE_DETAILS_SQL = text(f"""
    UPDATE scenarios
    SET title = :title, prompt = :prompt, initial_cash = :initial_cash,
        start_at = :start_at, end_at = :end_at, allow_short = :allow_short
    WHERE id = :scenario_id
    RETURNING {_SCENARIO_COLUMNS}
""")

_DELETE_INSTRUMENT_SQL = text("""
    DELETE FROM scenario_stocks WHERE id = :instrument_id RETURNING id
""")

_LIST_INSTRUMENTS_SQL = text(f"""
    SELECT {_INSTRUMENT_COLUMNS}
    FROM scenario_stocks
    WHERE scenario_id = :scenario_id
    ORDER BY symbol
""")

_LIST_INSTRUMENTS_FOR_MANY_SQL = text(f"""
    SELECT {_INSTRUMENT_COLUMNS}
    FROM scenario_stocks
    WHERE scenario_id = ANY(CAST(:scenario_ids AS TEXT[]))
    ORDER BY scenario_id, symbol
""")

_GET_INSTRUMENT_SQL = text(f"""
    SELECT {_INSTRUMENT_COLUMNS}
    FROM scenario_stocks
    WHERE id = :instrument_id
""")

_INSERT_INSTRUMENT_SQL = text(f"""
    INSERT INTO scenario_stocks
        (id, scenario_id, symbol, display_name, starting_price, price_mode)
    VALUES
        (:id, :scenario_id, :symbol, :display_name, :starting_price, :price_mode)
    RETURNING {_INSTRUMENT_COLUMNS}
""")

_LIST_LIVE_INSTRUMENTS_SQL = text("""
    SELECT s.id, s.scenario_id, s.symbol, s.display_name, s.starting_price,
           s.price_mode, s.created_at
    FROM scenario_stocks s
    JOIN scenarios sc ON sc.id = s.scenario_id
    WHERE sc.status = 'LIVE'
    ORDER BY s.scenario_id, s.symbol
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_scenario(row: object) -> Scenario:
    return Scenario(
        id=row.id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        prompt=row.prompt,  # type: ignore[attr-defined]
        initial_cash=row.initial_cash,  # type: ignore[attr-defined]
        start_at=row.start_at,  # type: ignore[attr-defined]
        end_at=row.end_at,  # type: ignore[attr-defined]
        allow_short=row.allow_short,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        created_by=row.created_by,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_instrument(row: object) -> Instrument:
    return Instrument(
        id=row.id,  # type: ignore[attr-defined]
        scenario_id=row.scenario_id,  # type: ignore[attr-defined]
        symbol=row.symbol,  # type: ignore[attr-defined]
        display_name=row.display_name,  # type: ignore[attr-defined]
        starting_price=row.starting_price,  # type: ignore[attr-defined]
        price_mode=row.price_mode,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ScenarioRepository:
    async def list_scenarios(
        self,
        db: AsyncSession,
        status: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Scenario]:
        result = await db.execute(
            _LIST_SCENARIOS_SQL,
            {"status": status, "cursor_id": cursor_id, "limit": limit},
        )
        scenarios = [_row_to_scenario(row) for row in result.fetchall()]
        if not scenarios:
            return scenarios

        by_id = {s.id: s for s in scenarios}
        inst_result = await db.execute(
            _LIST_INSTRUMENTS_FOR_MANY_SQL, {"scenario_ids": list(by_id)}
        )
        for row in inst_result.fetchall():
            by_id[row.scenario_id].instruments.append(_row_to_instrument(row))
        return scenarios

    async def get_scenario(
        self, db: AsyncSession, scenario_id: str, for_update: bool = False
    ) -> Scenario | None:
        sql = _GET_SCENARIO_FOR_UPDATE_SQL if for_update else _GET_SCENARIO_SQL
        result = await db.execute(sql, {"scenario_id": scenario_id})
        row = result.fetchone()
        if row is None:
            return None
        scenario = _row_to_scenario(row)
        scenario.instruments = await self.list_instruments(db, scenario_id)
        return scenario

    async def create_scenario(self, db: AsyncSession, scenario: Scenario) -> Scenario:
        result = await db.execute(
            _INSERT_SCENARIO_SQL,
            {
                "id": scenario.id,
                "title": scenario.title,
                "prompt": scenario.prompt,
                "initial_cash": scenario.initial_cash,
                "start_at": scenario.start_at,
                "end_at": scenario.end_at,
                "allow_short": scenario.allow_short,
                "status": scenario.status,
                "created_by": scenario.created_by,
            },
        )
        return _row_to_scenario(result.fetchone())

    async def update_status(
        self, db: AsyncSession, scenario_id: str, status: str
    ) -> Scenario:
        result = await db.execute(
            _UPDATE_STATUS_SQL, {"scenario_id": scenario_id, "status": status}
        )
        row = result.fetchone()
        if row is None:
            raise ScenarioNotFoundError(scenario_id)
        return _row_to_scenario(row)

    async def update_end_at(
        self, db: AsyncSession, scenario_id: str, end_at: datetime
    ) -> Scenario:
        result = await db.execute(
            _UPDATE_END_AT_SQL, {"scenario_id": scenario_id, "end_at": end_at}
        )
        row = result.fetchone()
        if row is None:
            raise ScenarioNotFoundError(scenario_id)
        return _row_to_scenario(row)

    async def list_instruments(
        self, db: AsyncSession, scenario_id: str
    ) -> list[Instrument]:
        result = await db.execute(_LIST_INSTRUMENTS_SQL, {"scenario_id": scenario_id})
        return [_row_to_instrument(row) for row in result.fetchall()]

    async def get_instrument(
        self, db: AsyncSession, instrument_id: str
    ) -> Instrument | None:
        result = await db.execute(_GET_INSTRUMENT_SQL, {"instrument_id": instrument_id})
        row = result.fetchone()
        return _row_to_instrument(row) if row else None

    async def add_instrument(
        self, db: AsyncSession, instrument: Instrument
    ) -> Instrument:
        result = await db.execute(
            _INSERT_INSTRUMENT_SQL,
            {
                "id": instrument.id,
                "scenario_id": instrument.scenario_id,
                "symbol": instrument.symbol,
                "display_name": instrument.display_name,
                "starting_price": instrument.starting_price,
                "price_mode": instrument.price_mode,
            },
        )
        return _row_to_instrument(result.fetchone())

    async def list_live_instruments(self, db: AsyncSession) -> list[Instrument]:
        result = await db.execute(_LIST_LIVE_INSTRUMENTS_SQL)
        return [_row_to_instrument(row) for row in result.fetchall()]

    async def update_details(self, db: AsyncSession, scenario: Scenario) -> Scenario:
        result = await db.execute(
            _UPDATE_DETAILS_SQL,
            {
                "scenario_id": scenario.id,
                "title": scenario.title,
                "prompt": scenario.prompt,
                "initial_cash": scenario.initial_cash,
                "start_at": scenario.start_at,
                "end_at": scenario.end_at,
                "allow_short": scenario.allow_short,
            },
        )
        row = result.fetchone()
        if row is None:
            raise ScenarioNotFoundError(scenario.id)
        return _row_to_scenario(row)

    async def delete_instrument(self, db: AsyncSession, instrument_id: str) -> bool:
        """Deletes the instrument (and, by FK cascade, its price ticks)."""
        result = await db.execute(_DELETE_INSTRUMENT_SQL, {"instrument_id": instrument_id})
        return result.fetchone() is not None
