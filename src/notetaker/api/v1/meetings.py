"""REST endpoints for meeting bot state.

Provides calendar event sync, the notetaker toggle (per meeting and
disable-all per user), meeting detail including extracted transcript
sentences, live bot status from Recall.ai, and manual transcript-creation
retry for meetings stuck after recording finished.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from src.notetaker.api.deps import (
    get_bot_manager,
    get_calendar_ingestor,
    get_meeting_repository,
    recall_http_error,
)
from src.notetaker.meetings.bot.errors import RecallError, ValidationError
from src.notetaker.meetings.bot.manager import BotManager
from src.notetaker.meetings.calendar.events import CalendarIngestor
from src.notetaker.meetings.repository import MeetingRepository
from src.notetaker.meetings.schemas import Meeting

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/meetings", tags=["meetings"])


# ── Response Schemas ─────────────────────────────────────────────────────────


class MeetingResponse(BaseModel):
    """Response for meeting data, serializes datetimes to ISO strings."""

    id: str
    user_id: str
    title: str
    start_time: str
    end_time: str
    meeting_url: str | None = None
    platform: str
    notetaker_enabled: bool
    bot_id: str | None = None
    bot_status: str | None = None
    recording_id: str | None = None
    transcript_id: str | None = None
    sentences: list[str] = Field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None


class BotStatusResponse(BaseModel):
    bot_id: str | None = None
    status: str
    meeting_status: str | None = None


class CalendarSyncRequest(BaseModel):
    """Calendar events (Google Calendar API shape) fetched for one user."""

    user_id: str = Field(min_length=1)
    events: list[dict] = Field(default_factory=list)


class CalendarSyncResponse(BaseModel):
    synced: int
    meetings: list[MeetingResponse]


class NotetakerToggleRequest(BaseModel):
    enabled: bool


class DisableAllRequest(BaseModel):
    user_id: str = Field(min_length=1)


class DisableAllResponse(BaseModel):
    disabled: int
    cleaned: int


class TranscriptRetryResponse(BaseModel):
    meeting_id: str
    transcript_id: str
    status: str


def _meeting_to_response(meeting: Meeting) -> MeetingResponse:
    return MeetingResponse(
        id=str(meeting.id),
        user_id=meeting.user_id,
        title=meeting.title,
        start_time=meeting.start_time.isoformat(),
        end_time=meeting.end_time.isoformat(),
        meeting_url=meeting.meeting_url,
        platform=meeting.platform.value,
        notetaker_enabled=meeting.notetaker_enabled,
        bot_id=meeting.bot_id,
        bot_status=meeting.bot_status.value if meeting.bot_status else None,
        recording_id=meeting.recording_id,
        transcript_id=meeting.transcript_id,
        sentences=meeting.sentences(),
        created_at=meeting.created_at.isoformat() if meeting.created_at else None,
        updated_at=meeting.updated_at.isoformat() if meeting.updated_at else None,
    )


async def _load_meeting(repo: MeetingRepository, meeting_id: str) -> Meeting:
    try:
        uuid.UUID(meeting_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Meeting not found: {meeting_id}",
        )

    meeting = await repo.get_meeting(meeting_id)
    if meeting is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Meeting not found: {meeting_id}",
        )
    return meeting


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.post("/sync", response_model=CalendarSyncResponse)
async def sync_calendar_events(
    body: CalendarSyncRequest,
    ingestor: CalendarIngestor = Depends(get_calendar_ingestor),
) -> CalendarSyncResponse:
    """Create meetings for calendar events not yet tracked for the user.

    New meetings start with the notetaker disabled.
    """
    meetings = await ingestor.ingest_events(body.user_id, body.events)
    return CalendarSyncResponse(
        synced=len(meetings),
        meetings=[_meeting_to_response(m) for m in meetings],
    )


@router.post("/notetaker/disable-all", response_model=DisableAllResponse)
async def disable_all_notetakers(
    body: DisableAllRequest,
    bot_mgr: BotManager = Depends(get_bot_manager),
) -> DisableAllResponse:
    """Turn the notetaker off for all of a user's meetings."""
    result = await bot_mgr.disable_all_notetakers(body.user_id)
    return DisableAllResponse(**result)


@router.patch("/{meeting_id}/notetaker", response_model=MeetingResponse)
async def toggle_notetaker(
    meeting_id: str,
    body: NotetakerToggleRequest,
    repo: MeetingRepository = Depends(get_meeting_repository),
    bot_mgr: BotManager = Depends(get_bot_manager),
) -> MeetingResponse:
    """Enable or disable the notetaker for one meeting.

    Enabling creates the bot right away when the meeting still qualifies.
    A meeting without a join URL cannot be enabled (400).
    """
    meeting = await _load_meeting(repo, meeting_id)

    try:
        updated = await bot_mgr.set_notetaker_enabled(meeting, body.enabled)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except RecallError as exc:
        raise recall_http_error(exc) from exc

    return _meeting_to_response(updated)


@router.get("/{meeting_id}", response_model=MeetingResponse)
async def get_meeting(
    meeting_id: str,
    repo: MeetingRepository = Depends(get_meeting_repository),
) -> MeetingResponse:
    """Get a meeting with its bot state and transcript sentences."""
    meeting = await _load_meeting(repo, meeting_id)
    return _meeting_to_response(meeting)


@router.get("/{meeting_id}/bot/status", response_model=BotStatusResponse)
async def get_bot_status(
    meeting_id: str,
    repo: MeetingRepository = Depends(get_meeting_repository),
    bot_mgr: BotManager = Depends(get_bot_manager),
) -> BotStatusResponse:
    """Get live bot status from Recall.ai for a meeting."""
    meeting = await _load_meeting(repo, meeting_id)
    meeting_status = meeting.bot_status.value if meeting.bot_status else None

    if not meeting.bot_id:
        return BotStatusResponse(bot_id=None, status="no_bot", meeting_status=meeting_status)

    try:
        bot_status = await bot_mgr.get_bot_status(meeting.bot_id)
    except RecallError as exc:
        raise recall_http_error(exc) from exc

    return BotStatusResponse(
        bot_id=meeting.bot_id,
        status=bot_status,
        meeting_status=meeting_status,
    )


@router.post(
    "/{meeting_id}/transcript/retry",
    response_model=TranscriptRetryResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def retry_transcript(
    meeting_id: str,
    repo: MeetingRepository = Depends(get_meeting_repository),
    bot_mgr: BotManager = Depends(get_bot_manager),
) -> TranscriptRetryResponse:
    """Re-request transcript creation for a meeting stuck at recording_completed."""
    meeting = await _load_meeting(repo, meeting_id)

    try:
        transcript_id = await bot_mgr.retry_transcript_creation(meeting)
    except RecallError as exc:
        raise recall_http_error(exc) from exc

    logger.info(
        "meetings.transcript_retry_requested",
        meeting_id=meeting_id,
        transcript_id=transcript_id,
    )
    return TranscriptRetryResponse(
        meeting_id=meeting_id,
        transcript_id=transcript_id,
        status="transcript_processing",
    )
