"""Add claim marker and per-channel outcomes to meeting_reminders.

Revision ID: 002
Revises: 001
Create Date: 2026-02-07

dispatching_at is set by a conditional update before a reminder is
dispatched so overlapping ticks can't send it twice. channel_outcomes keeps
the sent/failed/skipped result of every channel per recipient.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        "meeting_reminders",
        sa.Column("dispatching_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
    )
    op.add_column(
        "meeting_reminders",
        sa.Column(
            "channel_outcomes",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default="{}",
            nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_column("meeting_reminders", "channel_outcomes")
    op.drop_column("meeting_reminders", "dispatching_at")
