"""OrderRepository: raw SQL persistence for orders and trades."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_order.domain.models import Order, Trade

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_ORDER_COLUMNS = """
    id, scenario_id, user_id, instrument_id, side, order_type, quantity,
    limit_price, status, filled_qty, avg_fill_price, locked_amount,
    cancel_reason, created_at, updated_at
"""

_INSERT_ORDER_SQL = text("""
    INSERT INTO orders (id, scenario_id, user_id, instrument_id, side, order_type,
        quantity, limit_price, status, filled_qty, avg_fill_price, locked_amount)
    VALUES (:id, :scenario_id, :user_id, :instrument_id, :side, :order_type,
        :quantity, :limit_price, :status, :filled_qty, :avg_fill_price, :locked_amount)
""")

_UPDATE_ORDER_SQL = text("""
    UPDATE orders
    SET status = :status, filled_qty = :filled_qty, avg_fill_price = :avg_fill_price,
        locked_amount = :locked_amount, cancel_reason = :cancel_reason
    WHERE id = :id
""")

_GET_ORDER_SQL = text(f"""
    SELECT {_ORDER_COLUMNS}
    FROM orders WHERE id = :id
""")

_GET_ORDER_FOR_UPDATE_SQL = text(f"""
    SELECT {_ORDER_COLUMNS}
    FROM orders WHERE id = :id
    FOR UPDATE
""")

_LIST_ORDERS_SQL = text(f"""
    SELECT {_ORDER_COLUMNS}
    FROM orders
    WHERE scenario_id = :scenario_id AND user_id = :user_id
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
      AND (CAST(:statuses_csv AS TEXT) IS NULL
           OR status = ANY(string_to_array(CAST(:statuses_csv AS TEXT), ',')))
    ORDER BY id DESC
    LIMIT :limit
""")

_LIST_PENDING_BY_INSTRUMENT_SQL = text(f"""
    SELECT {_ORDER_COLUMNS}
    FROM orders
    WHERE instrument_id = :instrument_id AND status IN ('PENDING', 'PARTIAL')
    ORDER BY created_at, id
""")

_LIST_PENDING_BY_SCENARIO_SQL = text(f"""
    SELECT {_ORDER_COLUMNS}
    FROM orders
    WHERE scenario_id = :scenario_id AND status IN ('PENDING', 'PARTIAL')
    ORDER BY created_at, id
""")

_INSERT_TRADE_SQL = text("""
    INSERT INTO trades (id, order_id, scenario_id, user_id, instrument_id, side, qty, price, ts)
    VALUES (:id, :order_id, :scenario_id, :user_id, :instrument_id, :side, :qty, :price, :ts)
""")

_LIST_TRADES_SQL = text("""
    SELECT id, order_id, scenario_id, user_id, instrument_id, side, qty, price, ts
    FROM trades
    WHERE scenario_id = :scenario_id AND user_id = :user_id
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_order(row: Any) -> Order:
    return Order(
        id=row.id,
        scenario_id=row.scenario_id,
        user_id=row.user_id,
        instrument_id=row.instrument_id,
        side=row.side,
        order_type=row.order_type,
        quantity=row.quantity,
        limit_price=row.limit_price,
        status=row.status,
        filled_qty=row.filled_qty,
        avg_fill_price=row.avg_fill_price,
        locked_amount=row.locked_amount,
        cancel_reason=row.cancel_reason,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_trade(row: Any) -> Trade:
    return Trade(
        id=row.id,
        order_id=row.order_id,
        scenario_id=row.scenario_id,
        user_id=row.user_id,
        instrument_id=row.instrument_id,
        side=row.side,
        qty=row.qty,
        price=row.price,
        ts=row.ts,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrderRepository:
    """Concrete implementation of OrderRepositoryProtocol using raw SQL."""

    async def save(self, order: Order, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_ORDER_SQL,
            {
                "id": order.id,
                "scenario_id": order.scenario_id,
                "user_id": order.user_id,
                "instrument_id": order.instrument_id,
                "side": order.side,
                "order_type": order.order_type,
                "quantity": order.quantity,
                "limit_price": order.limit_price,
                "status": order.status,
                "filled_qty": order.filled_qty,
                "avg_fill_price": order.avg_fill_price,
                "locked_amount": order.locked_amount,
            },
        )

    async def update(self, order: Order, db: AsyncSession) -> None:
        await db.execute(
            _UPDATE_ORDER_SQL,
            {
                "id": order.id,
                "status": order.status,
                "filled_qty": order.filled_qty,
                "avg_fill_price": order.avg_fill_price,
                "locked_amount": order.locked_amount,
                "cancel_reason": order.cancel_reason,
            },
        )

    async def get_by_id(
        self, order_id: str, db: AsyncSession, for_update: bool = False
    ) -> Order | None:
        sql = _GET_ORDER_FOR_UPDATE_SQL if for_update else _GET_ORDER_SQL
        result = await db.execute(sql, {"id": order_id})
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def list_by_user(
        self,
        scenario_id: str,
        user_id: str,
        statuses: list[str] | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[Order]:
        result = await db.execute(
            _LIST_ORDERS_SQL,
            {
                "scenario_id": scenario_id,
                "user_id": user_id,
                "cursor_id": cursor_id,
                "statuses_csv": ",".join(statuses) if statuses else None,
                "limit": limit,
            },
        )
        return [_row_to_order(row) for row in result.fetchall()]

    async def list_pending_by_instrument(
        self, instrument_id: str, db: AsyncSession
    ) -> list[Order]:
        result = await db.execute(
            _LIST_PENDING_BY_INSTRUMENT_SQL, {"instrument_id": instrument_id}
        )
        return [_row_to_order(row) for row in result.fetchall()]

    async def list_pending_by_scenario(
        self, scenario_id: str, db: AsyncSession
    ) -> list[Order]:
        result = await db.execute(_LIST_PENDING_BY_SCENARIO_SQL, {"scenario_id": scenario_id})
        return [_row_to_order(row) for row in result.fetchall()]

    async def save_trade(self, trade: Trade, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_TRADE_SQL,
            {
                "id": trade.id,
                "order_id": trade.order_id,
                "scenario_id": trade.scenario_id,
                "user_id": trade.user_id,
                "instrument_id": trade.instrument_id,
                "side": trade.side,
                "qty": trade.qty,
                "price": trade.price,
                "ts": trade.ts,
            },
        )

    async def list_trades(
        self,
        scenario_id: str,
        user_id: str,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[Trade]:
        result = await db.execute(
            _LIST_TRADES_SQL,
            {
                "scenario_id": scenario_id,
                "user_id": user_id,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_trade(row) for row in result.fetchall()]
