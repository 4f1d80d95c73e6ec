"""convert about gender to enum"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

from services.identity.domain import Gender

# revision identifiers, used by Alembic.
revision = "0003"
down_revision = "0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Store gender as the integer value of ``Gender``."""
    op.add_column(
        "abouts",
        sa.Column("gender_code", sa.Integer(), nullable=False, server_default="0"),
    )
    op.execute(
        "UPDATE abouts SET gender_code = CASE WHEN lower(gender) = 'female' "
        f"THEN {Gender.FEMALE.value} ELSE {Gender.MALE.value} END"
    )
    # Batch mode recreates the table on SQLite, which cannot alter columns.
    with op.batch_alter_table("abouts") as batch:
        batch.drop_column("gender")
        batch.alter_column(
            "gender_code",
            new_column_name="gender",
            existing_type=sa.Integer(),
            existing_nullable=False,
            server_default=None,
        )


def downgrade() -> None:
    """Restore the free-text gender column."""
    op.add_column(
        "abouts",
        sa.Column(
            "gender_text", sa.String(length=32), nullable=False, server_default="Male"
        ),
    )
    op.execute(
        f"UPDATE abouts SET gender_text = CASE WHEN gender = {Gender.FEMALE.value} "
        "THEN 'Female' ELSE 'Male' END"
    )
    with op.batch_alter_table("abouts") as batch:
        batch.drop_column("gender")
        batch.alter_column(
            "gender_text",
            new_column_name="gender",
            existing_type=sa.String(length=32),
            existing_nullable=False,
            server_default=None,
        )
