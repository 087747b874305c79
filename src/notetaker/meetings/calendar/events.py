"""CalendarIngestor -- turns calendar event dicts into meeting records.

Accepts Google Calendar API event dicts (as returned by events.list),
extracts a conferencing join URL from the description, location or
hangoutLink, derives the platform tag from the URL host, and creates one
meeting per (user_id, event id).

New meetings start with the notetaker disabled: the user opts each meeting
in, and only then does the bot scheduler create a bot for it.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING

import structlog

from src.notetaker.meetings.schemas import Meeting, MeetingCreate, MeetingPlatform

if TYPE_CHECKING:
    from src.notetaker.meetings.repository import MeetingRepository

logger = structlog.get_logger(__name__)

# ── URL Extraction ───────────────────────────────────────────────────────────

# Checked in order; the first match wins
MEETING_URL_PATTERNS = (
    re.compile(r"https://[a-zA-Z0-9.-]*zoom\.us/j/[0-9]+(?:\?\S*)?"),
    re.compile(
        r"https://[a-zA-Z0-9.-]*teams\.microsoft\.com/l/meetup-join/[a-zA-Z0-9.-]+(?:\?\S*)?"
    ),
    re.compile(r"https://meet\.google\.com/[a-zA-Z0-9.-]+(?:\?\S*)?"),
    re.compile(r"https://[a-zA-Z0-9.-]*webex\.com/[a-zA-Z0-9.-]+(?:\?\S*)?"),
)

PLATFORM_HOSTS = (
    ("zoom.us", MeetingPlatform.ZOOM),
    ("teams.microsoft.com", MeetingPlatform.TEAMS),
    ("meet.google.com", MeetingPlatform.MEET),
    ("webex.com", MeetingPlatform.WEBEX),
)


def extract_meeting_url(event: dict) -> str | None:
    """Find the conferencing join URL for a calendar event.

    Searches description, location and hangoutLink for a Zoom, Teams,
    Google Meet or Webex URL; falls back to hangoutLink.
    """
    hangout_link = event.get("hangoutLink") or ""
    search_text = " ".join(
        [event.get("description") or "", event.get("location") or "", hangout_link]
    )

    for pattern in MEETING_URL_PATTERNS:
        match = pattern.search(search_text)
        if match:
            return match.group(0)

    return hangout_link or None


def platform_from_url(url: str | None) -> MeetingPlatform:
    """Derive the platform tag from a join URL host."""
    if not url:
        return MeetingPlatform.UNKNOWN
    for host, platform in PLATFORM_HOSTS:
        if host in url:
            return platform
    return MeetingPlatform.UNKNOWN


# ── Ingestion ────────────────────────────────────────────────────────────────


class CalendarIngestor:
    """Creates meeting records for newly seen calendar events.

    Args:
        repository: MeetingRepository for persisting discovered meetings.
    """

    def __init__(self, repository: MeetingRepository) -> None:
        self._repository = repository

    async def ingest_events(self, user_id: str, events: list[dict]) -> list[Meeting]:
        """Create meetings for events not yet tracked for this user.

        Events without a timed start (all-day events) or without an id are
        skipped. Already-tracked events are returned as stored.

        Args:
            user_id: Owning user ID.
            events: Google Calendar event dicts.

        Returns:
            Meetings for every ingested event, existing and newly created.
        """
        meetings: list[Meeting] = []

        for event in events:
            event_start = _parse_event_time(event.get("start"))
            if event_start is None:
                continue

            event_id = event.get("id", "")
            if not event_id:
                logger.warning(
                    "calendar.event_missing_id",
                    title=event.get("summary"),
                )
                continue

            existing = await self._repository.get_meeting_by_event_id(user_id, event_id)
            if existing is not None:
                meetings.append(existing)
                continue

            meeting_url = extract_meeting_url(event)
            event_end = _parse_event_time(event.get("end")) or event_start

            meeting = await self._repository.create_meeting(
                user_id,
                MeetingCreate(
                    calendar_event_id=event_id,
                    title=event.get("summary") or "Untitled Meeting",
                    start_time=event_start,
                    end_time=event_end,
                    meeting_url=meeting_url,
                    platform=platform_from_url(meeting_url),
                    notetaker_enabled=False,
                ),
            )
            logger.info(
                "calendar.meeting_discovered",
                meeting_id=str(meeting.id),
                title=meeting.title,
                platform=meeting.platform.value,
                start_time=meeting.start_time.isoformat(),
            )
            meetings.append(meeting)

        return meetings


# ── Helpers ──────────────────────────────────────────────────────────────────


def _parse_event_time(value: dict | None) -> datetime | None:
    """Parse a timed ``dateTime`` from a Google Calendar start/end dict."""
    if not isinstance(value, dict):
        return None
    dt_str = value.get("dateTime")
    if not dt_str:
        return None
    try:
        return datetime.fromisoformat(dt_str.replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None
