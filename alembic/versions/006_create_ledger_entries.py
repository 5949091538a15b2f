"""006: create ledger_entries (append-only cash journal, never updated)

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE ledger_entries (
            id                      BIGSERIAL       PRIMARY KEY,
            scenario_id             VARCHAR(64)     NOT NULL,
            user_id                 VARCHAR(64)     NOT NULL,
            entry_type              VARCHAR(20)     NOT NULL,
            amount                  NUMERIC(20, 6)  NOT NULL,
            cash_available_after    NUMERIC(20, 6)  NOT NULL,
            reference_type          VARCHAR(16),
            reference_id            VARCHAR(64),
            description             VARCHAR(255),
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT fk_ledger_player FOREIGN KEY (scenario_id, user_id)
                REFERENCES player_scenario_state (scenario_id, user_id) ON DELETE CASCADE,
            CONSTRAINT ck_ledger_entry_type CHECK (
                entry_type IN ('SEED', 'ORDER_RESERVE', 'ORDER_RELEASE', 'TRADE_DEBIT', 'TRADE_CREDIT')
            ),
            CONSTRAINT ck_ledger_after CHECK (cash_available_after >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_ledger_player ON ledger_entries (scenario_id, user_id, id DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS ledger_entries CASCADE;")
