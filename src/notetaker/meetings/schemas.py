"""Pydantic v2 schemas for the meeting notetaker domain.

Defines the data contracts for meetings, their bot lifecycle status, and the
per-user notetaker settings. The bot manager, scheduler, calendar ingestion
and API layer all import from this module.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


# ── Enums ────────────────────────────────────────────────────────────────────


class BotStatus(str, Enum):
    """Lifecycle status of a meeting's Recall.ai bot, mirrored on Meeting."""

    PENDING = "pending"
    SCHEDULED = "scheduled"
    RECORDING = "recording"
    RECORDING_COMPLETED = "recording_completed"
    TRANSCRIPT_PROCESSING = "transcript_processing"
    COMPLETED = "completed"
    TRANSCRIPT_FAILED = "transcript_failed"
    FAILED = "failed"


# Statuses the poll pass reconciles against Recall.ai
ACTIVE_BOT_STATUSES = frozenset(
    {BotStatus.SCHEDULED, BotStatus.RECORDING, BotStatus.PENDING}
)


class MeetingPlatform(str, Enum):
    """Conferencing platform, derived from the join URL host."""

    ZOOM = "zoom"
    TEAMS = "teams"
    MEET = "meet"
    WEBEX = "webex"
    UNKNOWN = "unknown"


# ── Meeting Models ───────────────────────────────────────────────────────────


class Meeting(BaseModel):
    """Full meeting entity with bot and transcript state.

    ``transcript`` and ``transcript_sentences`` hold serialized text exactly
    as persisted; use ``sentences()`` to decode the sentence list.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    user_id: str
    calendar_event_id: str | None = None
    title: str
    start_time: datetime
    end_time: datetime
    meeting_url: str | None = None
    platform: MeetingPlatform = MeetingPlatform.UNKNOWN
    notetaker_enabled: bool = False
    bot_id: str | None = None
    bot_status: BotStatus | None = None
    transcript: str | None = None
    transcript_sentences: str | None = None
    recording_id: str | None = None
    transcript_id: str | None = None
    created_at: datetime
    updated_at: datetime

    def sentences(self) -> list[str]:
        """Decode the persisted sentence list (empty when absent)."""
        if not self.transcript_sentences:
            return []
        return json.loads(self.transcript_sentences)


class MeetingCreate(BaseModel):
    """Request schema for creating a meeting from a calendar event."""

    calendar_event_id: str | None = None
    title: str
    start_time: datetime
    end_time: datetime
    meeting_url: str | None = None
    platform: MeetingPlatform = MeetingPlatform.UNKNOWN
    notetaker_enabled: bool = False


class UserSettings(BaseModel):
    """Per-user notetaker preferences."""

    user_id: str
    bot_join_minutes_before: int = Field(default=2, ge=0)
