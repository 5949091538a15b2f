"""003: create scenarios, scenario_stocks and price_ticks

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE scenarios (
            id              VARCHAR(64)     PRIMARY KEY,
            title           VARCHAR(200)    NOT NULL,
            prompt          TEXT,
            initial_cash    NUMERIC(20, 6)  NOT NULL,
            start_at        TIMESTAMPTZ     NOT NULL,
            end_at          TIMESTAMPTZ     NOT NULL,
            allow_short     BOOLEAN         NOT NULL DEFAULT FALSE,
            status          VARCHAR(16)     NOT NULL DEFAULT 'DRAFT',
            created_by      VARCHAR(64),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_scenarios_cash    CHECK (initial_cash > 0),
            CONSTRAINT ck_scenarios_window  CHECK (end_at > start_at),
            CONSTRAINT ck_scenarios_status  CHECK (
                status IN ('DRAFT', 'SCHEDULED', 'LIVE', 'CLOSED', 'ARCHIVED')
            )
        );
    """)
    op.execute("CREATE INDEX idx_scenarios_status ON scenarios (status, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_scenarios_updated_at
            BEFORE UPDATE ON scenarios
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)

    op.execute("""
        CREATE TABLE scenario_stocks (
            id              VARCHAR(64)     PRIMARY KEY,
            scenario_id     VARCHAR(64)     NOT NULL REFERENCES scenarios (id) ON DELETE CASCADE,
            symbol          VARCHAR(12)     NOT NULL,
            display_name    VARCHAR(100)    NOT NULL,
            starting_price  NUMERIC(18, 4)  NOT NULL,
            price_mode      VARCHAR(16)     NOT NULL DEFAULT 'SIMULATED',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_scenario_stocks_symbol UNIQUE (scenario_id, symbol),
            CONSTRAINT ck_scenario_stocks_price  CHECK (starting_price > 0),
            CONSTRAINT ck_scenario_stocks_mode   CHECK (price_mode IN ('SIMULATED'))
        );
    """)

    op.execute("""
        CREATE TABLE price_ticks (
            id              VARCHAR(64)     PRIMARY KEY,
            instrument_id   VARCHAR(64)     NOT NULL REFERENCES scenario_stocks (id) ON DELETE CASCADE,
            ts              TIMESTAMPTZ     NOT NULL,
            price           NUMERIC(18, 4)  NOT NULL,
            CONSTRAINT ck_price_ticks_price CHECK (price > 0)
        );
    """)
    op.execute("CREATE INDEX idx_price_ticks_instrument_ts ON price_ticks (instrument_id, ts DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS price_ticks CASCADE;")
    op.execute("DROP TABLE IF EXISTS scenario_stocks CASCADE;")
    op.execute("DROP TABLE IF EXISTS scenarios CASCADE;")
