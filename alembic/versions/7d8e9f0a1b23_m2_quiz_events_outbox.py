"""m2_quiz_events_outbox

Revision ID: 7d8e9f0a1b23
Revises: 3c1d2e4f5a60
Create Date: 2026-10-17 09:30:00.000000
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "7d8e9f0a1b23"
down_revision: str | None = "3c1d2e4f5a60"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "quiz_events",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("object_id", sa.BigInteger(), nullable=True),
        sa.Column("related_user_id", sa.BigInteger(), nullable=True),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("snapshots", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_quiz_events"),
    )
    op.create_index("idx_quiz_events_type_created", "quiz_events", ["event_type", "created_at"], unique=False)
    op.create_index("idx_quiz_events_object", "quiz_events", ["object_id"], unique=False)


def downgrade() -> None:
    op.drop_index("idx_quiz_events_object", table_name="quiz_events")
    op.drop_index("idx_quiz_events_type_created", table_name="quiz_events")
    op.drop_table("quiz_events")
