"""Meeting repository -- async CRUD for meetings and user settings.

Provides MeetingRepository with the session_factory callable pattern.
Handles conversion between Pydantic schemas and SQLAlchemy models.

Updates are full-field overwrites keyed by meeting id; there is no version
column, so concurrent writers resolve as last-writer-wins.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.notetaker.meetings.bot.errors import MeetingNotFoundError
from src.notetaker.meetings.models import MeetingModel, UserSettingsModel
from src.notetaker.meetings.schemas import (
    ACTIVE_BOT_STATUSES,
    BotStatus,
    Meeting,
    MeetingCreate,
    MeetingPlatform,
    UserSettings,
)

logger = structlog.get_logger(__name__)

# Columns the bot pipeline is allowed to overwrite
UPDATABLE_FIELDS = frozenset(
    {
        "notetaker_enabled",
        "bot_id",
        "bot_status",
        "transcript",
        "transcript_sentences",
        "recording_id",
        "transcript_id",
    }
)


# ── Serialization Helpers ───────────────────────────────────────────────────


def _model_to_meeting(model: MeetingModel) -> Meeting:
    """Convert MeetingModel to Meeting schema."""
    return Meeting(
        id=model.id,
        user_id=model.user_id,
        calendar_event_id=model.calendar_event_id,
        title=model.title,
        start_time=model.start_time,
        end_time=model.end_time,
        meeting_url=model.meeting_url,
        platform=MeetingPlatform(model.platform or "unknown"),
        notetaker_enabled=bool(model.notetaker_enabled),
        bot_id=model.bot_id,
        bot_status=BotStatus(model.bot_status) if model.bot_status else None,
        transcript=model.transcript,
        transcript_sentences=model.transcript_sentences,
        recording_id=model.recording_id,
        transcript_id=model.transcript_id,
        created_at=model.created_at,
        updated_at=model.updated_at or model.created_at,
    )


# ── Repository ──────────────────────────────────────────────────────────────


class MeetingRepository:
    """Async CRUD operations for meetings and user settings.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    # ── Meetings ─────────────────────────────────────────────────────────

    async def create_meeting(self, user_id: str, data: MeetingCreate) -> Meeting:
        """Create a new meeting from calendar event data.

        Args:
            user_id: Owning user ID.
            data: MeetingCreate with event details.

        Returns:
            Meeting with all persisted fields.
        """
        async for session in self._session_factory():
            model = MeetingModel(
                user_id=user_id,
                calendar_event_id=data.calendar_event_id,
                title=data.title,
                start_time=data.start_time,
                end_time=data.end_time,
                meeting_url=data.meeting_url,
                platform=data.platform.value,
                notetaker_enabled=data.notetaker_enabled,
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            return _model_to_meeting(model)

    async def get_meeting(self, meeting_id: str) -> Meeting | None:
        """Get a meeting by ID."""
        async for session in self._session_factory():
            model = await session.get(MeetingModel, uuid.UUID(meeting_id))
            if model is None:
                return None
            return _model_to_meeting(model)

    async def get_meeting_by_event_id(
        self, user_id: str, calendar_event_id: str
    ) -> Meeting | None:
        """Get a user's meeting by calendar event ID (for dedup)."""
        async for session in self._session_factory():
            stmt = select(MeetingModel).where(
                MeetingModel.user_id == user_id,
                MeetingModel.calendar_event_id == calendar_event_id,
            )
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                return None
            return _model_to_meeting(model)

    async def get_meeting_by_bot_id(self, bot_id: str) -> Meeting | None:
        """Get the meeting a Recall.ai bot was created for.

        Webhooks only carry the bot id, so this is the entry point for
        every provider event.
        """
        async for session in self._session_factory():
            stmt = select(MeetingModel).where(MeetingModel.bot_id == bot_id).limit(1)
            result = await session.execute(stmt)
            model = result.scalars().first()
            if model is None:
                return None
            return _model_to_meeting(model)

    async def get_meetings_with_active_bots(self, now: datetime) -> list[Meeting]:
        """Meetings that have started and whose bot is not yet settled.

        Args:
            now: Only meetings with start_time <= now are returned.

        Returns:
            Meetings with a bot in scheduled, recording or pending status.
        """
        async for session in self._session_factory():
            stmt = (
                select(MeetingModel)
                .where(
                    MeetingModel.bot_id.is_not(None),
                    MeetingModel.bot_status.in_([s.value for s in ACTIVE_BOT_STATUSES]),
                    MeetingModel.start_time <= now,
                )
                .order_by(MeetingModel.start_time)
            )
            result = await session.execute(stmt)
            return [_model_to_meeting(m) for m in result.scalars().all()]

    async def get_meetings_needing_bots(
        self, from_time: datetime, to_time: datetime
    ) -> list[Meeting]:
        """Meetings in a time window that still need a bot.

        Filters to notetaker enabled, no bot yet, and a non-empty join URL.
        The ``bot_id IS NULL`` predicate is what prevents duplicate bots.
        """
        async for session in self._session_factory():
            stmt = (
                select(MeetingModel)
                .where(
                    MeetingModel.start_time >= from_time,
                    MeetingModel.start_time <= to_time,
                    MeetingModel.notetaker_enabled.is_(True),
                    MeetingModel.bot_id.is_(None),
                    MeetingModel.meeting_url.is_not(None),
                    MeetingModel.meeting_url != "",
                )
                .order_by(MeetingModel.start_time)
            )
            result = await session.execute(stmt)
            return [_model_to_meeting(m) for m in result.scalars().all()]

    async def get_enabled_meetings(self, user_id: str) -> list[Meeting]:
        """A user's meetings with the notetaker turned on."""
        async for session in self._session_factory():
            stmt = (
                select(MeetingModel)
                .where(
                    MeetingModel.user_id == user_id,
                    MeetingModel.notetaker_enabled.is_(True),
                )
                .order_by(MeetingModel.start_time)
            )
            result = await session.execute(stmt)
            return [_model_to_meeting(m) for m in result.scalars().all()]

    async def update_meeting(self, meeting_id: str, **fields: Any) -> Meeting:
        """Overwrite bot/transcript fields on a meeting.

        Args:
            meeting_id: Meeting UUID string.
            **fields: Subset of UPDATABLE_FIELDS. Enum values are stored
                by value.

        Returns:
            Updated Meeting.

        Raises:
            ValueError: If an unknown field is passed.
            MeetingNotFoundError: If the meeting does not exist.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update meeting fields: {sorted(unknown)}")

        async for session in self._session_factory():
            model = await session.get(MeetingModel, uuid.UUID(meeting_id))
            if model is None:
                raise MeetingNotFoundError(f"Meeting not found: id={meeting_id}")

            for name, value in fields.items():
                setattr(model, name, value.value if isinstance(value, Enum) else value)
            model.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(model)
            return _model_to_meeting(model)

    # ── User Settings ────────────────────────────────────────────────────

    async def get_user_settings(self, user_id: str) -> UserSettings | None:
        """Get a user's notetaker settings, None if never saved."""
        async for session in self._session_factory():
            model = await session.get(UserSettingsModel, user_id)
            if model is None:
                return None
            return UserSettings(
                user_id=model.user_id,
                bot_join_minutes_before=model.bot_join_minutes_before,
            )
