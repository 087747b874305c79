"""Meeting persistence models.

Two SQLAlchemy models:
- MeetingModel: Calendar meetings with mirrored Recall.ai bot state and the
  serialized transcript / sentence list once processing completes
- UserSettingsModel: Per-user notetaker preferences (bot join lead time)

Indexes cover the three hot lookups: by bot_id (webhooks), by start_time
with bot_id NULL (scheduling pass), and by bot_status (poll pass).
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.notetaker.core.database import Base


class MeetingModel(Base):
    """Meeting mirrored from a user's calendar.

    bot_id and bot_status are written together by the bot manager.
    transcript and transcript_sentences are serialized JSON text written
    once on successful transcript processing.
    """

    __tablename__ = "meetings"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "calendar_event_id",
            name="uq_meeting_user_event",
        ),
        Index("ix_meetings_bot_id", "bot_id"),
        Index("ix_meetings_start_time", "start_time"),
        Index("ix_meetings_bot_status", "bot_status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(String(200), nullable=False)
    calendar_event_id: Mapped[str | None] = mapped_column(String(300), nullable=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    meeting_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    platform: Mapped[str] = mapped_column(
        String(50),
        default="unknown",
        server_default=text("'unknown'"),
    )
    notetaker_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default=text("false"),
    )
    bot_id: Mapped[str | None] = mapped_column(String(200), nullable=True)
    bot_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    transcript: Mapped[str | None] = mapped_column(Text, nullable=True)
    transcript_sentences: Mapped[str | None] = mapped_column(Text, nullable=True)
    recording_id: Mapped[str | None] = mapped_column(String(200), nullable=True)
    transcript_id: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )


class UserSettingsModel(Base):
    """Per-user notetaker preferences. One row per user."""

    __tablename__ = "user_settings"

    user_id: Mapped[str] = mapped_column(String(200), primary_key=True)
    bot_join_minutes_before: Mapped[int] = mapped_column(
        Integer,
        default=2,
        server_default=text("2"),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
