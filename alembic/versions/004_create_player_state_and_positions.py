"""004: create player_scenario_state and positions

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE player_scenario_state (
            scenario_id     VARCHAR(64)     NOT NULL REFERENCES scenarios (id) ON DELETE CASCADE,
            user_id         VARCHAR(64)     NOT NULL,
            cash_available  NUMERIC(20, 6)  NOT NULL,
            cash_locked     NUMERIC(20, 6)  NOT NULL DEFAULT 0,
            version         BIGINT          NOT NULL DEFAULT 0,
            initialized_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            PRIMARY KEY (scenario_id, user_id),
            CONSTRAINT ck_player_state_available CHECK (cash_available >= 0),
            CONSTRAINT ck_player_state_locked    CHECK (cash_locked >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_player_state_updated_at
            BEFORE UPDATE ON player_scenario_state
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)

    op.execute("""
        CREATE TABLE positions (
            scenario_id     VARCHAR(64)     NOT NULL,
            user_id         VARCHAR(64)     NOT NULL,
            instrument_id   VARCHAR(64)     NOT NULL REFERENCES scenario_stocks (id),
            quantity        NUMERIC(20, 4)  NOT NULL DEFAULT 0,
            avg_cost        NUMERIC(18, 4)  NOT NULL DEFAULT 0,
            realized_pnl    NUMERIC(20, 6)  NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            PRIMARY KEY (scenario_id, user_id, instrument_id),
            CONSTRAINT fk_positions_player FOREIGN KEY (scenario_id, user_id)
                REFERENCES player_scenario_state (scenario_id, user_id) ON DELETE CASCADE,
            CONSTRAINT ck_positions_avg_cost CHECK (avg_cost >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_positions_updated_at
            BEFORE UPDATE ON positions
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS positions CASCADE;")
    op.execute("DROP TABLE IF EXISTS player_scenario_state CASCADE;")
