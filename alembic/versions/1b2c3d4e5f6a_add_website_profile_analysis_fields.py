"""add website profile semantic analysis fields

Revision ID: 1b2c3d4e5f6a
Revises: 0a1b2c3d4e5f
Create Date: 2026-10-19 15:00:00.000000
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "1b2c3d4e5f6a"
down_revision: Union[str, None] = "0a1b2c3d4e5f"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        "website_profiles",
        sa.Column("summary", sa.Text(), nullable=True),
    )
    op.add_column(
        "website_profiles",
        sa.Column("value_props", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    )
    op.add_column(
        "website_profiles",
        sa.Column("intents", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    )


def downgrade() -> None:
    op.drop_column("website_profiles", "intents")
    op.drop_column("website_profiles", "value_props")
    op.drop_column("website_profiles", "summary")
