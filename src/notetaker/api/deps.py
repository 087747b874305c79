"""FastAPI dependency injection for the bot pipeline services.

The lifespan stores the composed services on ``app.state``; these
dependencies fetch them per request and answer 503 when startup did not
build them. Also maps the Recall error taxonomy onto HTTP errors.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from src.notetaker.meetings.bot.errors import (
    ConfigurationError,
    MeetingNotFoundError,
    ProviderError,
    RecallError,
    ValidationError,
)
from src.notetaker.meetings.bot.manager import BotManager
from src.notetaker.meetings.bot.recall_client import RecallClient
from src.notetaker.meetings.bot.scheduler import BotScheduler
from src.notetaker.meetings.calendar.events import CalendarIngestor
from src.notetaker.meetings.repository import MeetingRepository


def _from_state(request: Request, name: str, label: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} not initialized",
        )
    return service


async def get_meeting_repository(request: Request) -> MeetingRepository:
    """Retrieve MeetingRepository from app.state, 503 if not available."""
    return _from_state(request, "meeting_repository", "Meeting repository")


async def get_bot_manager(request: Request) -> BotManager:
    """Retrieve BotManager from app.state, 503 if not available."""
    return _from_state(request, "bot_manager", "Bot manager")


async def get_bot_scheduler(request: Request) -> BotScheduler:
    """Retrieve BotScheduler from app.state, 503 if not available."""
    return _from_state(request, "bot_scheduler", "Bot scheduler")


async def get_recall_client(request: Request) -> RecallClient:
    """Retrieve RecallClient from app.state, 503 if not available."""
    return _from_state(request, "recall_client", "Recall client")


def recall_http_error(exc: RecallError) -> HTTPException:
    """Translate a Recall error into the matching HTTP error."""
    if isinstance(exc, MeetingNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ConfigurationError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(exc, ValidationError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, ProviderError):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc))


async def get_calendar_ingestor(request: Request) -> CalendarIngestor:
    """Retrieve CalendarIngestor from app.state, 503 if not available."""
    return _from_state(request, "calendar_ingestor", "Calendar ingestor")
