"""PriceRepository: raw SQL over the append-only price_ticks table.

"Latest" is always the row with the greatest ts per instrument
(DISTINCT ON), backed by idx_price_ticks_instrument_ts.
"""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_pricing.domain.models import LatestPrice, PriceTick

_LATEST_TICK_SQL = text("""
    SELECT id, instrument_id, ts, price
    FROM price_ticks
    WHERE instrument_id = :instrument_id
    ORDER BY ts DESC
    LIMIT 1
""")

_INSERT_TICK_SQL = text("""
    INSERT INTO price_ticks (id, instrument_id, ts, price)
    VALUES (:id, :instrument_id, :ts, :price)
    RETURNING id, instrument_id, ts, price
""")

_LATEST_PRICES_SQL = text("""
    SELECT DISTINCT ON (instrument_id) instrument_id, price
    FROM price_ticks
    WHERE instrument_id = ANY(CAST(:instrument_ids AS TEXT[]))
    ORDER BY instrument_id, ts DESC
""")

_LATEST_FOR_SCENARIO_SQL = text("""
    SELECT DISTINCT ON (t.instrument_id)
           t.instrument_id, s.symbol, s.display_name, t.price, t.ts
    FROM price_ticks t
    JOIN scenario_stocks s ON s.id = t.instrument_id
    WHERE s.scenario_id = :scenario_id
    ORDER BY t.instrument_id, t.ts DESC
""")

_HISTORY_SQL = text("""
    SELECT id, instrument_id, ts, price
    FROM price_ticks
    WHERE instrument_id = :instrument_id
    ORDER BY ts DESC
    LIMIT :limit
""")


def _row_to_tick(row: object) -> PriceTick:
    return PriceTick(
        id=row.id,  # type: ignore[attr-defined]
        instrument_id=row.instrument_id,  # type: ignore[attr-defined]
        ts=row.ts,  # type: ignore[attr-defined]
        price=row.price,  # type: ignore[attr-defined]
    )


class PriceRepository:
    async def get_latest_tick(
        self, db: AsyncSession, instrument_id: str
    ) -> PriceTick | None:
        result = await db.execute(_LATEST_TICK_SQL, {"instrument_id": instrument_id})
        row = result.fetchone()
        return _row_to_tick(row) if row else None

    async def append_tick(self, db: AsyncSession, tick: PriceTick) -> PriceTick:
        result = await db.execute(
            _INSERT_TICK_SQL,
            {
                "id": tick.id,
                "instrument_id": tick.instrument_id,
                "ts": tick.ts,
                "price": tick.price,
            },
        )
        return _row_to_tick(result.fetchone())

    async def get_latest_prices(
        self, db: AsyncSession, instrument_ids: list[str]
    ) -> dict[str, Decimal]:
        if not instrument_ids:
            return {}
        result = await db.execute(_LATEST_PRICES_SQL, {"instrument_ids": instrument_ids})
        return {row.instrument_id: row.price for row in result.fetchall()}

    async def list_latest_for_scenario(
        self, db: AsyncSession, scenario_id: str
    ) -> list[LatestPrice]:
        result = await db.execute(_LATEST_FOR_SCENARIO_SQL, {"scenario_id": scenario_id})
        return [
            LatestPrice(
                instrument_id=row.instrument_id,
                symbol=row.symbol,
                display_name=row.display_name,
                price=row.price,
                ts=row.ts,
            )
            for row in result.fetchall()
        ]

    async def list_history(
        self, db: AsyncSession, instrument_id: str, limit: int
    ) -> list[PriceTick]:
        result = await db.execute(
            _HISTORY_SQL, {"instrument_id": instrument_id, "limit": limit}
        )
        return [_row_to_tick(row) for row in result.fetchall()]
