"""BotManager for transcription bot lifecycle management.

Handles the full Recall.ai bot lifecycle for a meeting: scheduled creation
ahead of the start time, webhook-driven transitions (recording.done,
transcript.done), poll-driven reconciliation of provider status, and
transcript retrieval with sentence extraction.

State machine mirrored onto Meeting.bot_status:

    None -> scheduled -> recording / recording_completed
         -> transcript_processing -> completed / transcript_failed
    scheduled / recording -> failed   (provider reported an error)

Webhook and poll paths can observe the same meeting concurrently. Every
mutating transition for a meeting runs under an in-process asyncio.Lock
keyed by meeting id and re-reads the meeting before writing, so within one
process the second writer sees the first writer's result.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import structlog

from src.notetaker.core.monitoring import bot_operations_total
from src.notetaker.meetings.bot.errors import ValidationError
from src.notetaker.meetings.schemas import (
    ACTIVE_BOT_STATUSES,
    BotStatus,
    Meeting,
)
from src.notetaker.meetings.transcript.sentences import extract_sentences

if TYPE_CHECKING:
    from src.notetaker.meetings.bot.recall_client import RecallClient
    from src.notetaker.meetings.repository import MeetingRepository

logger = structlog.get_logger(__name__)

DEFAULT_JOIN_MINUTES_BEFORE = 2

RECORDING_DONE_EVENT = "recording.done"
TRANSCRIPT_DONE_EVENT = "transcript.done"

# A repeated recording.done for the same recording is ignored in these states
_PAST_RECORDING = frozenset(
    {
        BotStatus.TRANSCRIPT_PROCESSING,
        BotStatus.COMPLETED,
        BotStatus.TRANSCRIPT_FAILED,
    }
)

# Bot created but not yet in the call
_NOT_JOINED = frozenset({BotStatus.PENDING, BotStatus.SCHEDULED})


def compute_join_time(meeting: Meeting, join_lead_minutes: int) -> datetime:
    """When the bot should join: start time minus the lead time."""
    start = meeting.start_time
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    return start - timedelta(minutes=join_lead_minutes)


def should_create_bot(
    meeting: Meeting, join_lead_minutes: int, now: datetime
) -> bool:
    """Whether a bot may be created for this meeting right now.

    Requires notetaker enabled, no existing bot, a join URL, and a join
    time that has not yet passed. A meeting with a bot id never qualifies.
    """
    if not meeting.notetaker_enabled:
        return False
    if meeting.bot_id is not None:
        return False
    if not meeting.meeting_url:
        return False
    return compute_join_time(meeting, join_lead_minutes) > now


class BotManager:
    """Manages the lifecycle of Recall.ai transcription bots.

    Args:
        recall_client: RecallClient for Recall.ai API calls.
        repository: MeetingRepository for persisting bot state.
        default_join_minutes: Lead time used when the caller passes none.
    """

    def __init__(
        self,
        recall_client: RecallClient,
        repository: MeetingRepository,
        default_join_minutes: int = DEFAULT_JOIN_MINUTES_BEFORE,
    ) -> None:
        self._recall = recall_client
        self._repository = repository
        self._default_join_minutes = default_join_minutes
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_holders: dict[str, int] = {}

    @asynccontextmanager
    async def _locked(self, meeting_id: Any) -> AsyncIterator[None]:
        """Serialize transitions for one meeting.

        The lock is dropped once its last holder or waiter leaves, so the
        table only holds meetings with work in flight.
        """
        key = str(meeting_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._lock_holders[key] = self._lock_holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[key] -= 1
            if self._lock_holders[key] == 0:
                del self._lock_holders[key]
                del self._locks[key]

    async def _refresh(self, meeting: Meeting) -> Meeting:
        current = await self._repository.get_meeting(str(meeting.id))
        return current if current is not None else meeting

    async def join_minutes_for(self, user_id: str) -> int:
        """Join lead time from the user's settings.

        Users without settings, or with a zero lead saved, get the default.
        """
        settings = await self._repository.get_user_settings(user_id)
        if settings is None:
            return self._default_join_minutes
        return settings.bot_join_minutes_before or self._default_join_minutes

    # ── Creation ─────────────────────────────────────────────────────────

    async def create_meeting_bot(
        self,
        meeting: Meeting,
        join_lead_minutes: int | None = None,
        now: datetime | None = None,
    ) -> str | None:
        """Create a Recall.ai bot for a meeting if it still needs one.

        Args:
            meeting: Meeting to record.
            join_lead_minutes: Minutes before start the bot joins.
            now: Reference time (defaults to current UTC time).

        Returns:
            The new bot ID, or None when the meeting does not qualify.

        Raises:
            ConfigurationError, ValidationError, ProviderError: from
                RecallClient.create_bot.
        """
        lead = self._default_join_minutes if join_lead_minutes is None else join_lead_minutes
        now = now or datetime.now(timezone.utc)

        async with self._locked(meeting.id):
            current = await self._refresh(meeting)
            if not should_create_bot(current, lead, now):
                logger.debug(
                    "bot.create_skipped",
                    meeting_id=str(current.id),
                    has_bot=current.bot_id is not None,
                    notetaker_enabled=current.notetaker_enabled,
                )
                return None

            return await self._create_bot_locked(current, lead)

    async def _create_bot_locked(
        self, meeting: Meeting, join_lead_minutes: int, **extra_fields: Any
    ) -> str:
        """Create the provider bot and persist it; caller holds the lock.

        ``extra_fields`` are written in the same update as the bot id.
        Nothing is written when the provider call fails.
        """
        try:
            bot_id = await self._recall.create_bot(
                meeting.meeting_url,
                meeting.start_time,
                join_lead_minutes,
                meeting_title=meeting.title,
            )
        except Exception:
            bot_operations_total.labels(operation="create", outcome="error").inc()
            raise

        await self._repository.update_meeting(
            str(meeting.id),
            bot_id=bot_id,
            bot_status=BotStatus.SCHEDULED,
            **extra_fields,
        )
        bot_operations_total.labels(operation="create", outcome="success").inc()
        logger.info(
            "bot.scheduled",
            bot_id=bot_id,
            meeting_id=str(meeting.id),
            join_at=compute_join_time(meeting, join_lead_minutes).isoformat(),
        )
        return bot_id

    # ── Notetaker Toggle ─────────────────────────────────────────────────

    async def set_notetaker_enabled(
        self,
        meeting: Meeting,
        enabled: bool,
        now: datetime | None = None,
    ) -> Meeting:
        """Turn the notetaker on or off for a meeting.

        Enabling a meeting that still qualifies for a bot creates it right
        away with the owner's join lead, in the same write as the flag. If
        the provider rejects the bot the flag stays unchanged. Disabling
        leaves an existing bot in place.

        Returns:
            The meeting as stored after the change.

        Raises:
            ValidationError: Enabling a meeting without a join URL.
            ConfigurationError, ProviderError: from RecallClient.create_bot.
        """
        now = now or datetime.now(timezone.utc)
        lead = await self.join_minutes_for(meeting.user_id)

        async with self._locked(meeting.id):
            current = await self._refresh(meeting)
            if not enabled:
                updated = await self._repository.update_meeting(
                    str(current.id), notetaker_enabled=False
                )
                logger.info("bot.notetaker_disabled", meeting_id=str(current.id))
                return updated

            if not current.meeting_url:
                raise ValidationError("No meeting URL found for this meeting")

            candidate = current.model_copy(update={"notetaker_enabled": True})
            if should_create_bot(candidate, lead, now):
                await self._create_bot_locked(candidate, lead, notetaker_enabled=True)
            else:
                await self._repository.update_meeting(
                    str(current.id), notetaker_enabled=True
                )
            updated = await self._refresh(current)

        logger.info(
            "bot.notetaker_enabled",
            meeting_id=str(updated.id),
            bot_id=updated.bot_id,
        )
        return updated

    async def disable_all_notetakers(self, user_id: str) -> dict[str, int]:
        """Turn the notetaker off for every enabled meeting of a user.

        Bot data is cleared on meetings whose bot has not joined yet
        (pending or scheduled) so the scheduler treats them as fresh if
        they are enabled again. Bots already recording keep their state.

        Returns:
            ``{"disabled": n, "cleaned": m}``.
        """
        meetings = await self._repository.get_enabled_meetings(user_id)

        disabled = cleaned = 0
        for meeting in meetings:
            async with self._locked(meeting.id):
                current = await self._refresh(meeting)
                if not current.notetaker_enabled:
                    continue
                fields: dict[str, Any] = {"notetaker_enabled": False}
                if current.bot_id and current.bot_status in _NOT_JOINED:
                    fields.update(bot_id=None, bot_status=None)
                    cleaned += 1
                await self._repository.update_meeting(str(current.id), **fields)
                disabled += 1

        logger.info(
            "bot.notetakers_disabled",
            user_id=user_id,
            disabled=disabled,
            cleaned=cleaned,
        )
        return {"disabled": disabled, "cleaned": cleaned}

    async def get_bot_status(self, bot_id: str) -> str:
        """Get current simplified bot status from Recall.ai."""
        bot_data = await self._recall.get_bot_status(bot_id)
        return bot_data.get("status", "unknown")

    # ── Webhook Events ───────────────────────────────────────────────────

    async def handle_bot_event(self, event: str, data: dict) -> bool:
        """Route a Recall.ai webhook event.

        Args:
            event: Event name, e.g. "recording.done".
            data: Event payload ("data" field of the webhook body).

        Returns:
            True if the event type is handled, False if it was ignored.

        Raises:
            ValidationError: A recognized event is missing required ids.
        """
        if event == RECORDING_DONE_EVENT:
            await self.handle_recording_done(
                bot_id=_nested_id(data, "bot"),
                recording_id=_nested_id(data, "recording"),
            )
            return True

        if event == TRANSCRIPT_DONE_EVENT:
            await self.handle_transcript_done(
                bot_id=_nested_id(data, "bot"),
                transcript_id=_nested_id(data, "transcript"),
            )
            return True

        logger.info("bot.event_ignored", event_type=event)
        return False

    async def handle_recording_done(self, bot_id: str, recording_id: str) -> bool:
        """Record the finished recording and start async transcription.

        Transcript-job creation failure is logged and swallowed so the
        recording_completed transition is kept; the meeting can then be
        recovered with retry_transcript_creation.

        Returns:
            False if no meeting matches the bot id (stale or deleted).
        """
        meeting = await self._repository.get_meeting_by_bot_id(bot_id)
        if meeting is None:
            logger.warning(
                "bot.event_unknown_bot",
                bot_id=bot_id,
                event_type=RECORDING_DONE_EVENT,
            )
            return False

        async with self._locked(meeting.id):
            meeting = await self._refresh(meeting)
            if meeting.recording_id == recording_id and meeting.bot_status in _PAST_RECORDING:
                logger.info(
                    "bot.recording_already_processed",
                    bot_id=bot_id,
                    meeting_id=str(meeting.id),
                    status=meeting.bot_status.value,
                )
                return True

            await self._repository.update_meeting(
                str(meeting.id),
                recording_id=recording_id,
                bot_status=BotStatus.RECORDING_COMPLETED,
            )
            logger.info(
                "bot.recording_completed",
                bot_id=bot_id,
                meeting_id=str(meeting.id),
                recording_id=recording_id,
            )

            try:
                await self._start_transcript(meeting, recording_id)
            except Exception:
                bot_operations_total.labels(
                    operation="create_transcript", outcome="error"
                ).inc()
                logger.warning(
                    "bot.transcript_creation_failed",
                    bot_id=bot_id,
                    meeting_id=str(meeting.id),
                    recording_id=recording_id,
                    exc_info=True,
                )
        return True

    async def handle_transcript_done(self, bot_id: str, transcript_id: str) -> bool:
        """Download a finished transcript, extract sentences, and persist.

        No-op when Recall.ai does not yet report the transcript as done, or
        when the meeting already holds processed sentences (duplicate
        delivery). Any fetch/download failure marks the meeting
        transcript_failed, which is terminal.

        Returns:
            False if no meeting matches the bot id.
        """
        meeting = await self._repository.get_meeting_by_bot_id(bot_id)
        if meeting is None:
            logger.warning(
                "bot.event_unknown_bot",
                bot_id=bot_id,
                event_type=TRANSCRIPT_DONE_EVENT,
            )
            return False

        async with self._locked(meeting.id):
            meeting = await self._refresh(meeting)
            if (
                meeting.bot_status == BotStatus.COMPLETED
                and meeting.transcript_sentences is not None
            ):
                logger.info(
                    "bot.transcript_already_processed",
                    bot_id=bot_id,
                    meeting_id=str(meeting.id),
                )
                return True

            try:
                metadata = await self._recall.get_transcript(transcript_id)
                status_code = (metadata.get("status") or {}).get("code")
                if status_code != "done":
                    logger.info(
                        "bot.transcript_not_ready",
                        transcript_id=transcript_id,
                        status=status_code,
                    )
                    return True

                download_url = (metadata.get("data") or {}).get("download_url")
                payload = await self._recall.download_transcript(download_url)
                sentences = extract_sentences(payload.participants)
            except Exception:
                bot_operations_total.labels(
                    operation="process_transcript", outcome="error"
                ).inc()
                logger.exception(
                    "bot.transcript_fetch_failed",
                    bot_id=bot_id,
                    meeting_id=str(meeting.id),
                    transcript_id=transcript_id,
                )
                await self._repository.update_meeting(
                    str(meeting.id),
                    bot_status=BotStatus.TRANSCRIPT_FAILED,
                )
                return True

            if not payload.is_recognized:
                logger.warning(
                    "bot.transcript_unrecognized_shape",
                    meeting_id=str(meeting.id),
                    transcript_id=transcript_id,
                )

            await self._repository.update_meeting(
                str(meeting.id),
                transcript=json.dumps(payload.data),
                transcript_sentences=json.dumps(sentences),
                transcript_id=transcript_id,
                bot_status=BotStatus.COMPLETED,
            )

        bot_operations_total.labels(operation="process_transcript", outcome="success").inc()
        logger.info(
            "bot.transcript_completed",
            bot_id=bot_id,
            meeting_id=str(meeting.id),
            sentence_count=len(sentences),
            shape=payload.shape.value,
        )
        return True

    # ── Poll Reconciliation ──────────────────────────────────────────────

    async def reconcile_bot_status(self, meeting: Meeting) -> Meeting | None:
        """Mirror the provider's bot status onto the meeting.

        Mapping: recording -> recording, done -> completed (with a
        best-effort simple transcript fetch), error -> failed. Anything else
        keeps the current status. Writes only when status or transcript
        changed; skips meetings whose bot settled since they were listed.

        Returns:
            The updated Meeting, or None if nothing was written.

        Raises:
            ProviderError: The bot status could not be fetched.
        """
        if not meeting.bot_id:
            return None

        async with self._locked(meeting.id):
            current = await self._refresh(meeting)
            if current.bot_id != meeting.bot_id or current.bot_status not in ACTIVE_BOT_STATUSES:
                logger.debug(
                    "bot.reconcile_skipped",
                    meeting_id=str(current.id),
                    status=current.bot_status.value if current.bot_status else None,
                )
                return None

            bot_data = await self._recall.get_bot_status(current.bot_id)
            provider_status = bot_data.get("status")

            new_status = current.bot_status
            transcript = current.transcript

            if provider_status == "recording":
                new_status = BotStatus.RECORDING
            elif provider_status == "done":
                new_status = BotStatus.COMPLETED
                try:
                    transcript_data = await self._recall.get_bot_transcript(current.bot_id)
                    fetched = _serialize_transcript(transcript_data.get("transcript"))
                    if fetched:
                        transcript = fetched
                except Exception:
                    logger.warning(
                        "bot.poll_transcript_failed",
                        bot_id=current.bot_id,
                        meeting_id=str(current.id),
                        exc_info=True,
                    )
            elif provider_status == "error":
                new_status = BotStatus.FAILED

            if new_status == current.bot_status and transcript == current.transcript:
                return None

            updated = await self._repository.update_meeting(
                str(current.id),
                bot_status=new_status,
                transcript=transcript,
            )

        logger.info(
            "bot.status_reconciled",
            bot_id=current.bot_id,
            meeting_id=str(current.id),
            old_status=current.bot_status.value if current.bot_status else None,
            new_status=new_status.value if new_status else None,
            provider_status=provider_status,
        )
        return updated

    # ── Manual Recovery ──────────────────────────────────────────────────

    async def retry_transcript_creation(self, meeting: Meeting) -> str:
        """Re-request transcript creation for a meeting stuck after recording.

        Returns:
            The new Recall.ai transcript ID.

        Raises:
            ValidationError: The meeting has no recording or is not in
                recording_completed status.
            ConfigurationError, ProviderError: from RecallClient.
        """
        async with self._locked(meeting.id):
            current = await self._refresh(meeting)
            if current.bot_status != BotStatus.RECORDING_COMPLETED or not current.recording_id:
                raise ValidationError(
                    "Transcript retry requires a meeting in recording_completed "
                    "status with a recording id"
                )
            transcript_id = await self._start_transcript(current, current.recording_id)

        logger.info(
            "bot.transcript_retried",
            meeting_id=str(current.id),
            transcript_id=transcript_id,
        )
        return transcript_id

    async def _start_transcript(self, meeting: Meeting, recording_id: str) -> str:
        """Create the async transcript job and mark the meeting processing."""
        transcript_id = await self._recall.create_transcript(recording_id)
        await self._repository.update_meeting(
            str(meeting.id),
            transcript_id=transcript_id,
            bot_status=BotStatus.TRANSCRIPT_PROCESSING,
        )
        bot_operations_total.labels(operation="create_transcript", outcome="success").inc()
        logger.info(
            "bot.transcript_processing",
            meeting_id=str(meeting.id),
            recording_id=recording_id,
            transcript_id=transcript_id,
        )
        return transcript_id


# ── Helpers ──────────────────────────────────────────────────────────────────


def _nested_id(data: dict, key: str) -> str:
    """Read ``data[key]["id"]`` from a webhook payload."""
    value = data.get(key) if isinstance(data, dict) else None
    nested_id = value.get("id") if isinstance(value, dict) else None
    if not nested_id:
        raise ValidationError(f"Webhook payload is missing {key}.id")
    return str(nested_id)


def _serialize_transcript(value: Any) -> str | None:
    """Serialize a simple transcript to text for storage."""
    if value is None or value == "" or value == []:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value)
