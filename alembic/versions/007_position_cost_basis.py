"""007: exact cost basis on positions

avg_cost was stored at price precision (4dp) while the ledger computes it at
amount precision, so the basis read back after a fill could differ from the
cash actually paid. positions now carry the signed cost basis at amount
precision and avg_cost is widened to match.

Revision ID: 007
Revises: 006
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("ALTER TABLE positions ALTER COLUMN avg_cost TYPE NUMERIC(20, 6);")
    op.execute("ALTER TABLE positions ADD COLUMN cost_basis NUMERIC(24, 6) NOT NULL DEFAULT 0;")
    op.execute("UPDATE positions SET cost_basis = ROUND(quantity * avg_cost, 6);")


def downgrade() -> None:
    op.execute("ALTER TABLE positions DROP COLUMN IF EXISTS cost_basis;")
    op.execute("ALTER TABLE positions ALTER COLUMN avg_cost TYPE NUMERIC(18, 4);")
