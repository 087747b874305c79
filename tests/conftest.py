"""Shared test fixtures for the notetaker test suite.

Provides:
- InMemoryMeetingRepository: dict-backed test double mirroring
  MeetingRepository, recording every update_meeting call
- repo / make_meeting fixtures for building meetings in a known state
- Isolated Settings (no .env, no Recall.ai key, scheduler autostart off)
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

import pytest

from src.notetaker.config import get_settings
from src.notetaker.meetings.bot.errors import MeetingNotFoundError
from src.notetaker.meetings.repository import UPDATABLE_FIELDS
from src.notetaker.meetings.schemas import (
    ACTIVE_BOT_STATUSES,
    Meeting,
    MeetingCreate,
    UserSettings,
)

NOW = datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)
USER_ID = "user-123"


# ── In-Memory Repository ────────────────────────────────────────────────────


class InMemoryMeetingRepository:
    """In-memory test double for MeetingRepository.

    Mirrors the MeetingRepository interface using dicts for storage.
    ``updates`` keeps (meeting_id, fields) for every update_meeting call so
    tests can assert that no store writes happened.
    """

    def __init__(self) -> None:
        self.meetings: dict[str, Meeting] = {}
        self.user_settings: dict[str, UserSettings] = {}
        self.updates: list[tuple[str, dict[str, Any]]] = []

    async def create_meeting(self, user_id: str, data: MeetingCreate) -> Meeting:
        now = datetime.now(timezone.utc)
        meeting = Meeting(
            id=uuid.uuid4(),
            user_id=user_id,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        self.meetings[str(meeting.id)] = meeting
        return meeting

    async def get_meeting(self, meeting_id: str) -> Meeting | None:
        return self.meetings.get(meeting_id)

    async def get_meeting_by_event_id(
        self, user_id: str, calendar_event_id: str
    ) -> Meeting | None:
        for m in self.meetings.values():
            if m.user_id == user_id and m.calendar_event_id == calendar_event_id:
                return m
        return None

    async def get_meeting_by_bot_id(self, bot_id: str) -> Meeting | None:
        for m in self.meetings.values():
            if m.bot_id == bot_id:
                return m
        return None

    async def get_meetings_with_active_bots(self, now: datetime) -> list[Meeting]:
        results = [
            m
            for m in self.meetings.values()
            if m.bot_id is not None
            and m.bot_status in ACTIVE_BOT_STATUSES
            and m.start_time <= now
        ]
        return sorted(results, key=lambda m: m.start_time)

    async def get_meetings_needing_bots(
        self, from_time: datetime, to_time: datetime
    ) -> list[Meeting]:
        results = [
            m
            for m in self.meetings.values()
            if from_time <= m.start_time <= to_time
            and m.notetaker_enabled
            and m.bot_id is None
            and m.meeting_url
        ]
        return sorted(results, key=lambda m: m.start_time)

    async def get_enabled_meetings(self, user_id: str) -> list[Meeting]:
        results = [
            m
            for m in self.meetings.values()
            if m.user_id == user_id and m.notetaker_enabled
        ]
        return sorted(results, key=lambda m: m.start_time)

    async def update_meeting(self, meeting_id: str, **fields: Any) -> Meeting:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update meeting fields: {sorted(unknown)}")
        m = self.meetings.get(meeting_id)
        if m is None:
            raise MeetingNotFoundError(f"Meeting not found: id={meeting_id}")
        self.updates.append(
            (meeting_id, {k: v.value if isinstance(v, Enum) else v for k, v in fields.items()})
        )
        updated = m.model_copy(update={**fields, "updated_at": datetime.now(timezone.utc)})
        self.meetings[meeting_id] = updated
        return updated

    async def get_user_settings(self, user_id: str) -> UserSettings | None:
        return self.user_settings.get(user_id)


# ── Fixtures ────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Settings built from a clean environment for every test."""
    for key in ("RECALL_API_KEY", "RECALL_WEBHOOK_TOKEN", "SENTRY_DSN"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("BOT_SCHEDULER_AUTOSTART", "false")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def repo() -> InMemoryMeetingRepository:
    return InMemoryMeetingRepository()


@pytest.fixture
def make_meeting(repo):
    """Factory storing a meeting in ``repo``; keyword overrides any field."""

    def _make(**overrides: Any) -> Meeting:
        defaults: dict[str, Any] = {
            "id": uuid.uuid4(),
            "user_id": USER_ID,
            "calendar_event_id": f"event-{uuid.uuid4().hex[:8]}",
            "title": "Weekly Sync",
            "start_time": NOW + timedelta(hours=1),
            "end_time": NOW + timedelta(hours=2),
            "meeting_url": "https://meet.google.com/abc-defg-hij",
            "notetaker_enabled": True,
            "created_at": NOW,
            "updated_at": NOW,
        }
        defaults.update(overrides)
        meeting = Meeting(**defaults)
        repo.meetings[str(meeting.id)] = meeting
        return meeting

    return _make
