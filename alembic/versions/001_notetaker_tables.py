"""Create meetings and user_settings tables.

Revision ID: 001_notetaker_tables
Revises:
Create Date: 2026-10-19

- meetings: calendar meetings with mirrored Recall.ai bot state and the
  serialized transcript / sentence list
- user_settings: per-user bot join lead time

Indexes cover webhook lookup by bot_id, the scheduling pass (start_time)
and the poll pass (bot_status).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision: str = "001_notetaker_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── meetings table ───────────────────────────────────────────────────

    op.create_table(
        "meetings",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(200), nullable=False),
        sa.Column("calendar_event_id", sa.String(300), nullable=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("meeting_url", sa.String(1000), nullable=True),
        sa.Column(
            "platform",
            sa.String(50),
            server_default=sa.text("'unknown'"),
            nullable=False,
        ),
        sa.Column(
            "notetaker_enabled",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column("bot_id", sa.String(200), nullable=True),
        sa.Column("bot_status", sa.String(50), nullable=True),
        sa.Column("transcript", sa.Text(), nullable=True),
        sa.Column("transcript_sentences", sa.Text(), nullable=True),
        sa.Column("recording_id", sa.String(200), nullable=True),
        sa.Column("transcript_id", sa.String(200), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "user_id", "calendar_event_id", name="uq_meeting_user_event"
        ),
    )

    op.create_index("ix_meetings_bot_id", "meetings", ["bot_id"])
    op.create_index("ix_meetings_start_time", "meetings", ["start_time"])
    op.create_index("ix_meetings_bot_status", "meetings", ["bot_status"])

    # ── user_settings table ──────────────────────────────────────────────

    op.create_table(
        "user_settings",
        sa.Column("user_id", sa.String(200), primary_key=True),
        sa.Column(
            "bot_join_minutes_before",
            sa.Integer(),
            server_default=sa.text("2"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("user_settings")
    op.drop_index("ix_meetings_bot_status", table_name="meetings")
    op.drop_index("ix_meetings_start_time", table_name="meetings")
    op.drop_index("ix_meetings_bot_id", table_name="meetings")
    op.drop_table("meetings")
