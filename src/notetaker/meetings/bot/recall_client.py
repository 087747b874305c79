"""Async HTTP client wrapper for Recall.ai REST API.

Provides RecallClient covering the transcription bot lifecycle: create,
status, simple transcript, recording, async transcript creation, transcript
metadata, and transcript download. All methods are async and log with
structlog for observability.

Every failure surfaces as a typed error from
src.notetaker.meetings.bot.errors. There is deliberately no retry at this
layer: the bot scheduler re-polls on a fixed interval, which subsumes it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import structlog

from src.notetaker.meetings.bot.errors import (
    ConfigurationError,
    ProviderError,
    ValidationError,
)
from src.notetaker.meetings.transcript.payload import (
    TranscriptPayload,
    parse_transcript_payload,
)

logger = structlog.get_logger(__name__)

DEFAULT_JOIN_MINUTES_BEFORE = 2

# Recall.ai status_changes codes -> simplified bot status
STATUS_CODE_MAP = {
    "ready": "scheduled",
    "joining_call": "joining",
    "in_waiting_room": "joining",
    "in_call_not_recording": "recording",
    "in_call_recording": "recording",
    "call_ended": "done",
    "done": "done",
    "fatal": "error",
}


@dataclass(frozen=True)
class BotConfigValidation:
    """Structured result of checking the Recall.ai configuration."""

    is_valid: bool
    message: str


def normalize_bot_status(bot_data: dict) -> str:
    """Derive the simplified bot status from a Recall.ai bot document.

    Prefers a flat ``status`` (string or ``{code}``); otherwise uses the
    latest entry of ``status_changes``.
    """
    status = bot_data.get("status")
    if isinstance(status, dict):
        status = status.get("code")
    if not status:
        status_changes = bot_data.get("status_changes") or []
        if not status_changes:
            return "unknown"
        status = status_changes[-1].get("code", "unknown")
    return STATUS_CODE_MAP.get(status, status)


def _error_detail(response: httpx.Response) -> str:
    """Extract Recall.ai's error message from a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return str(body)


def _parse_json(response: httpx.Response, operation: str) -> Any:
    """Decode a 2xx body, raising ProviderError when it is not JSON."""
    try:
        return response.json()
    except ValueError as exc:
        raise ProviderError(
            f"Failed to {operation}: response body is not JSON",
            status_code=response.status_code,
            detail=response.text[:200],
        ) from exc


def _expect_object(body: Any, operation: str) -> dict:
    if not isinstance(body, dict):
        raise ProviderError(
            f"Failed to {operation}: expected a JSON object, got {type(body).__name__}"
        )
    return body


def _parse_id(response: httpx.Response, operation: str) -> str:
    """Read the ``id`` of a created resource from a 2xx body."""
    body = _expect_object(_parse_json(response, operation), operation)
    resource_id = body.get("id")
    if not resource_id:
        raise ProviderError(
            f"Failed to {operation}: response has no id",
            status_code=response.status_code,
            detail=str(body)[:200],
        )
    return str(resource_id)


class RecallClient:
    """Async client for Recall.ai REST API.

    Uses httpx.AsyncClient with configurable timeouts per operation type.
    The client can be constructed without an API key so configuration
    problems surface as ConfigurationError at call time (and through
    validate_configuration) instead of at startup.

    Args:
        api_key: Recall.ai API token.
        region: Recall.ai region (default: us-west-2).
        bot_name_prefix: Display name prefix for created bots.
    """

    # Timeouts per operation type
    TIMEOUT_MUTATE = 30.0  # create operations
    TIMEOUT_READ = 10.0    # get/status operations
    TIMEOUT_DOWNLOAD = 60.0

    def __init__(
        self,
        api_key: str,
        region: str = "us-west-2",
        bot_name_prefix: str = "Transcription Bot",
    ) -> None:
        self._api_key = api_key
        self._base_url = f"https://{region}.recall.ai/api/v1"
        self._bot_name_prefix = bot_name_prefix
        self._headers = {
            "Authorization": api_key if api_key.startswith("Token ") else f"Token {api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _client(self, timeout: float) -> httpx.AsyncClient:
        """Create a new httpx client with specified timeout."""
        return httpx.AsyncClient(
            headers=self._headers,
            timeout=timeout,
        )

    # ── Configuration ────────────────────────────────────────────────────

    def validate_configuration(self) -> BotConfigValidation:
        """Check that a Recall.ai API key is configured."""
        if not self._api_key:
            return BotConfigValidation(
                is_valid=False,
                message=(
                    "RECALL_API_KEY environment variable is not set. "
                    "Add your Recall.ai API key to the environment."
                ),
            )
        return BotConfigValidation(is_valid=True, message="Bot configuration is valid")

    def _require_configuration(self) -> None:
        validation = self.validate_configuration()
        if not validation.is_valid:
            raise ConfigurationError(validation.message)

    # ── Bots ─────────────────────────────────────────────────────────────

    async def create_bot(
        self,
        meeting_url: str,
        meeting_start: datetime | None,
        join_lead_minutes: int = DEFAULT_JOIN_MINUTES_BEFORE,
        meeting_title: str | None = None,
    ) -> str:
        """Create a transcription bot that joins ahead of the meeting.

        POST /bot/ with join_at = meeting_start - join_lead_minutes.

        Args:
            meeting_url: Zoom/Meet/Teams/Webex join URL.
            meeting_start: Meeting start time (timezone-aware).
            join_lead_minutes: Minutes before start the bot should join.
            meeting_title: Used for logging only.

        Returns:
            Recall.ai bot ID.

        Raises:
            ConfigurationError: API key is not configured.
            ValidationError: meeting_url or meeting_start is missing.
            ProviderError: The request failed or the response carried no bot id.
        """
        self._require_configuration()
        if not meeting_url:
            raise ValidationError("Meeting URL is required to create a bot")
        if meeting_start is None:
            raise ValidationError("Start time is required to create a bot")

        if meeting_start.tzinfo is None:
            meeting_start = meeting_start.replace(tzinfo=timezone.utc)
        join_at = meeting_start - timedelta(minutes=join_lead_minutes)
        now = datetime.now(timezone.utc)

        config = {
            "bot_name": f"{self._bot_name_prefix} {now.isoformat()}",
            "meeting_url": meeting_url,
            "join_at": join_at.astimezone(timezone.utc).isoformat(),
            "recording_config": {
                "transcript": {
                    "provider": {
                        "recallai_streaming": {
                            "language": "en",
                        },
                    },
                },
            },
        }

        try:
            async with self._client(self.TIMEOUT_MUTATE) as client:
                response = await client.post(
                    f"{self._base_url}/bot/",
                    json=config,
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise self._provider_error("create bot", exc) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"Failed to create bot: {exc}") from exc

        bot_id = _parse_id(response, "create bot")
        logger.info(
            "recall.bot_created",
            bot_id=bot_id,
            meeting_title=meeting_title,
            join_at=config["join_at"],
            join_lead_minutes=join_lead_minutes,
        )
        return bot_id

    async def get_bot(self, bot_id: str) -> dict:
        """Get full bot details.

        GET /bot/{bot_id}/ returns complete bot state including
        status_changes, recordings, and configuration.
        """
        data = await self._get_json(
            f"{self._base_url}/bot/{bot_id}/", "get bot status"
        )
        return _expect_object(data, "get bot status")

    async def get_bot_status(self, bot_id: str) -> dict:
        """Get the bot document with a normalized ``status`` key.

        Args:
            bot_id: Recall.ai bot identifier.

        Returns:
            Bot detail dict whose ``status`` is one of scheduled, joining,
            recording, done, error (or the provider code when unmapped).

        Raises:
            ProviderError: Transport or HTTP failure, or a body that is not a JSON object.
        """
        bot_data = await self.get_bot(bot_id)
        status = normalize_bot_status(bot_data)
        logger.debug(
            "recall.bot_status",
            bot_id=bot_id,
            status=status,
        )
        return {**bot_data, "status": status}

    async def get_bot_transcript(self, bot_id: str) -> dict:
        """Get the bot's transcript in the simple per-speaker shape.

        GET /bot/{bot_id}/transcript/. A bare list response is wrapped as
        ``{"transcript": [...]}``.
        """
        data = await self._get_json(
            f"{self._base_url}/bot/{bot_id}/transcript/", "get bot transcript"
        )
        if not isinstance(data, dict):
            data = {"transcript": data}
        logger.info(
            "recall.bot_transcript_retrieved",
            bot_id=bot_id,
        )
        return data

    async def get_bot_recording(self, bot_id: str) -> dict:
        """Get recording metadata after the meeting ends.

        GET /bot/{bot_id}/recording/
        """
        return await self._get_json(
            f"{self._base_url}/bot/{bot_id}/recording/", "get bot recording"
        )

    # ── Async transcripts ────────────────────────────────────────────────

    async def create_transcript(self, recording_id: str) -> str:
        """Request async transcript generation for a finished recording.

        POST /recording/{recording_id}/create_transcript/

        Returns:
            Recall.ai transcript ID.

        Raises:
            ConfigurationError: API key is not configured.
            ValidationError: recording_id is missing.
            ProviderError: The request failed or the response carried no transcript id.
        """
        self._require_configuration()
        if not recording_id:
            raise ValidationError("Recording ID is required to create a transcript")

        try:
            async with self._client(self.TIMEOUT_MUTATE) as client:
                response = await client.post(
                    f"{self._base_url}/recording/{recording_id}/create_transcript/",
                    json={"provider": {"recallai_async": {"language": "en"}}},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise self._provider_error("create transcript", exc) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"Failed to create transcript: {exc}") from exc

        transcript_id = _parse_id(response, "create transcript")
        logger.info(
            "recall.transcript_created",
            recording_id=recording_id,
            transcript_id=transcript_id,
        )
        return transcript_id

    async def get_transcript(self, transcript_id: str) -> dict:
        """Get transcript metadata.

        GET /transcript/{transcript_id}/ -- ``status.code`` is "done" once
        ``data.download_url`` is available.
        """
        self._require_configuration()
        data = await self._get_json(
            f"{self._base_url}/transcript/{transcript_id}/", "fetch transcript"
        )
        return _expect_object(data, "fetch transcript")

    async def download_transcript(self, download_url: str) -> TranscriptPayload:
        """Download and classify a transcript body.

        The download URL is pre-signed, so no Recall.ai credentials are sent.

        Returns:
            TranscriptPayload; unrecognized shapes are carried through as-is.

        Raises:
            ValidationError: download_url is missing.
            ProviderError: The download failed.
        """
        if not download_url:
            raise ValidationError("Download URL is required to download a transcript")

        try:
            async with httpx.AsyncClient(timeout=self.TIMEOUT_DOWNLOAD) as client:
                response = await client.get(download_url)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise self._provider_error("download transcript", exc) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"Failed to download transcript: {exc}") from exc

        try:
            raw: Any = response.json()
        except ValueError:
            raw = response.text

        payload = parse_transcript_payload(raw)
        logger.info(
            "recall.transcript_downloaded",
            shape=payload.shape.value,
            content_length=len(response.content),
        )
        return payload

    # ── Helpers ──────────────────────────────────────────────────────────

    async def _get_json(self, url: str, operation: str) -> Any:
        try:
            async with self._client(self.TIMEOUT_READ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise self._provider_error(operation, exc) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"Failed to {operation}: {exc}") from exc
        return _parse_json(response, operation)

    @staticmethod
    def _provider_error(operation: str, exc: httpx.HTTPStatusError) -> ProviderError:
        detail = _error_detail(exc.response)
        logger.warning(
            "recall.request_failed",
            operation=operation,
            status_code=exc.response.status_code,
            detail=detail,
        )
        return ProviderError(
            f"Failed to {operation}: {detail}",
            status_code=exc.response.status_code,
            detail=detail,
        )
