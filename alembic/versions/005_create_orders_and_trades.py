"""005: create orders and trades

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders (
            id              VARCHAR(64)     PRIMARY KEY,
            scenario_id     VARCHAR(64)     NOT NULL REFERENCES scenarios (id) ON DELETE CASCADE,
            user_id         VARCHAR(64)     NOT NULL,
            instrument_id   VARCHAR(64)     NOT NULL REFERENCES scenario_stocks (id),
            side            VARCHAR(4)      NOT NULL,
            order_type      VARCHAR(8)      NOT NULL,
            quantity        NUMERIC(20, 4)  NOT NULL,
            limit_price     NUMERIC(18, 4),
            status          VARCHAR(16)     NOT NULL DEFAULT 'PENDING',
            filled_qty      NUMERIC(20, 4)  NOT NULL DEFAULT 0,
            avg_fill_price  NUMERIC(18, 4),
            locked_amount   NUMERIC(20, 6)  NOT NULL DEFAULT 0,
            cancel_reason   VARCHAR(32),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_orders_side       CHECK (side IN ('BUY', 'SELL')),
            CONSTRAINT ck_orders_type       CHECK (order_type IN ('MARKET', 'LIMIT')),
            CONSTRAINT ck_orders_quantity   CHECK (quantity > 0),
            CONSTRAINT ck_orders_filled     CHECK (filled_qty >= 0 AND filled_qty <= quantity),
            CONSTRAINT ck_orders_locked     CHECK (locked_amount >= 0),
            CONSTRAINT ck_orders_limit      CHECK (
                (order_type = 'MARKET' AND limit_price IS NULL) OR
                (order_type = 'LIMIT' AND limit_price > 0)
            ),
            CONSTRAINT ck_orders_status     CHECK (
                status IN ('PENDING', 'PARTIAL', 'FILLED', 'CANCELED', 'REJECTED')
            )
        );
    """)
    op.execute("CREATE INDEX idx_orders_user ON orders (scenario_id, user_id, id DESC);")
    op.execute("""
        CREATE INDEX idx_orders_instrument_pending
        ON orders (instrument_id, created_at)
        WHERE status IN ('PENDING', 'PARTIAL');
    """)
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)

    op.execute("""
        CREATE TABLE trades (
            id              VARCHAR(64)     PRIMARY KEY,
            order_id        VARCHAR(64)     NOT NULL REFERENCES orders (id) ON DELETE CASCADE,
            scenario_id     VARCHAR(64)     NOT NULL,
            user_id         VARCHAR(64)     NOT NULL,
            instrument_id   VARCHAR(64)     NOT NULL,
            side            VARCHAR(4)      NOT NULL,
            qty             NUMERIC(20, 4)  NOT NULL,
            price           NUMERIC(18, 4)  NOT NULL,
            ts              TIMESTAMPTZ     NOT NULL,
            CONSTRAINT ck_trades_side   CHECK (side IN ('BUY', 'SELL')),
            CONSTRAINT ck_trades_qty    CHECK (qty > 0),
            CONSTRAINT ck_trades_price  CHECK (price > 0)
        );
    """)
    op.execute("CREATE INDEX idx_trades_user ON trades (scenario_id, user_id, id DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trades CASCADE;")
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
