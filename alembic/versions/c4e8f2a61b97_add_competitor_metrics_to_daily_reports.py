"""add competitor_metrics to daily_reports

Revision ID: c4e8f2a61b97
Revises: a7c3e91b2d40
Create Date: 2026-10-18 10:30:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "c4e8f2a61b97"
down_revision: str | None = "a7c3e91b2d40"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.add_column("daily_reports", sa.Column("competitor_metrics", JSONB(), nullable=True))


def downgrade() -> None:
    op.drop_column("daily_reports", "competitor_metrics")
