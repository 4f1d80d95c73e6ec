"""create abouts table"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create profile details with a free-text gender column."""
    op.create_table(
        "abouts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("full_name", sa.String(length=256), nullable=False),
        sa.Column("gender", sa.String(length=32), nullable=False),
        sa.Column("bio", sa.String(length=2048), nullable=False, server_default=""),
    )


def downgrade() -> None:
    """Drop profile details."""
    op.drop_table("abouts")
