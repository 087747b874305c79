"""Unit tests for BotManager.

Covers bot creation guards, webhook transitions (recording.done,
transcript.done), poll reconciliation, manual transcript retry, and
serialization of concurrent transitions on one meeting. RecallClient is an
AsyncMock; storage is the InMemoryMeetingRepository double.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from src.notetaker.meetings.bot.errors import ProviderError, ValidationError
from src.notetaker.meetings.bot.manager import BotManager, compute_join_time, should_create_bot
from src.notetaker.meetings.calendar.events import CalendarIngestor
from src.notetaker.meetings.schemas import BotStatus, UserSettings
from src.notetaker.meetings.transcript.payload import TranscriptPayload, TranscriptShape

NOW = datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)

PARTICIPANTS = [
    {
        "participant": {"id": 1, "name": "Alice"},
        "words": [
            {"text": "Hello", "start_timestamp": {"relative": 0.0}, "end_timestamp": {"relative": 0.5}},
            {"text": "there", "start_timestamp": {"relative": 0.6}, "end_timestamp": {"relative": 0.9}},
            {"text": "Bye", "start_timestamp": {"relative": 3.0}, "end_timestamp": {"relative": 3.2}},
        ],
    }
]


# ── Fixtures ────────────────────────────────────────────────────────────────


@pytest.fixture
def mock_recall():
    """Mock RecallClient."""
    recall = AsyncMock()
    recall.create_bot = AsyncMock(return_value="bot-new")
    recall.create_transcript = AsyncMock(return_value="tr-1")
    recall.get_transcript = AsyncMock(
        return_value={
            "id": "tr-1",
            "status": {"code": "done"},
            "data": {"download_url": "https://files.example.com/tr-1"},
        }
    )
    recall.download_transcript = AsyncMock(
        return_value=TranscriptPayload(TranscriptShape.ARRAY, PARTICIPANTS)
    )
    recall.get_bot_status = AsyncMock(return_value={"id": "bot-1", "status": "scheduled"})
    recall.get_bot_transcript = AsyncMock(return_value={"transcript": []})
    return recall


@pytest.fixture
def bot_manager(mock_recall, repo):
    return BotManager(recall_client=mock_recall, repository=repo)


# ── Creation ────────────────────────────────────────────────────────────────


class TestCreateMeetingBot:
    def test_join_time_subtracts_lead(self, make_meeting):
        meeting = make_meeting(start_time=NOW)
        assert compute_join_time(meeting, 2) == NOW - timedelta(minutes=2)

    @pytest.mark.asyncio
    async def test_creates_bot_and_sets_status_together(self, bot_manager, mock_recall, repo, make_meeting):
        meeting = make_meeting()

        bot_id = await bot_manager.create_meeting_bot(meeting, join_lead_minutes=2, now=NOW)

        assert bot_id == "bot-new"
        mock_recall.create_bot.assert_awaited_once_with(
            meeting.meeting_url, meeting.start_time, 2, meeting_title=meeting.title
        )
        assert repo.updates == [
            (str(meeting.id), {"bot_id": "bot-new", "bot_status": "scheduled"})
        ]

    @pytest.mark.asyncio
    async def test_default_join_minutes_used(self, mock_recall, repo, make_meeting):
        manager = BotManager(mock_recall, repo, default_join_minutes=7)
        meeting = make_meeting()

        await manager.create_meeting_bot(meeting, now=NOW)

        assert mock_recall.create_bot.call_args.args[2] == 7

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"notetaker_enabled": False},
            {"meeting_url": None},
            {"meeting_url": ""},
            {"bot_id": "bot-existing", "bot_status": BotStatus.SCHEDULED},
        ],
    )
    async def test_skips_ineligible_meetings(self, bot_manager, mock_recall, repo, make_meeting, overrides):
        meeting = make_meeting(**overrides)

        assert await bot_manager.create_meeting_bot(meeting, 2, now=NOW) is None
        mock_recall.create_bot.assert_not_awaited()
        assert repo.updates == []

    @pytest.mark.asyncio
    async def test_skips_when_join_time_passed(self, bot_manager, mock_recall, make_meeting):
        meeting = make_meeting(start_time=NOW + timedelta(minutes=1))

        assert not should_create_bot(meeting, 2, NOW)
        assert await bot_manager.create_meeting_bot(meeting, 2, now=NOW) is None
        mock_recall.create_bot.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rechecks_stored_meeting_before_creating(self, bot_manager, mock_recall, repo, make_meeting):
        stale = make_meeting()
        await repo.update_meeting(str(stale.id), bot_id="bot-other", bot_status=BotStatus.SCHEDULED)
        repo.updates.clear()

        assert await bot_manager.create_meeting_bot(stale, 2, now=NOW) is None
        mock_recall.create_bot.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_creation_makes_one_bot(self, bot_manager, mock_recall, make_meeting):
        meeting = make_meeting()

        results = await asyncio.gather(
            bot_manager.create_meeting_bot(meeting, 2, now=NOW),
            bot_manager.create_meeting_bot(meeting, 2, now=NOW),
        )

        assert results.count("bot-new") == 1
        assert results.count(None) == 1
        assert mock_recall.create_bot.await_count == 1
        assert bot_manager._locks == {}

    @pytest.mark.asyncio
    async def test_provider_error_propagates_without_writes(self, bot_manager, mock_recall, repo, make_meeting):
        mock_recall.create_bot.side_effect = ProviderError("boom", status_code=500)
        meeting = make_meeting()

        with pytest.raises(ProviderError):
            await bot_manager.create_meeting_bot(meeting, 2, now=NOW)
        assert repo.updates == []


# ── recording.done ──────────────────────────────────────────────────────────


class TestRecordingDone:
    @pytest.mark.asyncio
    async def test_sets_recording_then_transcript_processing(self, bot_manager, mock_recall, repo, make_meeting):
        meeting = make_meeting(bot_id="bot-1", bot_status=BotStatus.RECORDING)

        assert await bot_manager.handle_recording_done("bot-1", "rec-1") is True

        mock_recall.create_transcript.assert_awaited_once_with("rec-1")
        assert repo.updates == [
            (str(meeting.id), {"recording_id": "rec-1", "bot_status": "recording_completed"}),
            (str(meeting.id), {"transcript_id": "tr-1", "bot_status": "transcript_processing"}),
        ]

    @pytest.mark.asyncio
    async def test_unknown_bot_makes_no_writes(self, bot_manager, mock_recall, repo):
        assert await bot_manager.handle_recording_done("bot-unknown", "rec-1") is False
        mock_recall.create_transcript.assert_not_awaited()
        assert repo.updates == []

    @pytest.mark.asyncio
    async def test_duplicate_delivery_is_skipped(self, bot_manager, mock_recall, repo, make_meeting):
        make_meeting(
            bot_id="bot-1",
            bot_status=BotStatus.TRANSCRIPT_PROCESSING,
            recording_id="rec-1",
            transcript_id="tr-1",
        )

        assert await bot_manager.handle_recording_done("bot-1", "rec-1") is True

        mock_recall.create_transcript.assert_not_awaited()
        assert repo.updates == []

    @pytest.mark.asyncio
    async def test_transcript_creation_failure_is_swallowed(self, bot_manager, mock_recall, repo, make_meeting):
        mock_recall.create_transcript.side_effect = ProviderError("nope", status_code=400)
        meeting = make_meeting(bot_id="bot-1", bot_status=BotStatus.RECORDING)

        assert await bot_manager.handle_recording_done("bot-1", "rec-1") is True

        stored = repo.meetings[str(meeting.id)]
        assert stored.bot_status == BotStatus.RECORDING_COMPLETED
        assert stored.recording_id == "rec-1"
        assert stored.transcript_id is None


# ── transcript.done ─────────────────────────────────────────────────────────


class TestTranscriptDone:
    @pytest.mark.asyncio
    async def test_persists_payload_and_sentences_in_one_write(self, bot_manager, repo, make_meeting):
        meeting = make_meeting(bot_id="bot-1", bot_status=BotStatus.TRANSCRIPT_PROCESSING)

        assert await bot_manager.handle_transcript_done("bot-1", "tr-1") is True

        assert len(repo.updates) == 1
        stored = repo.meetings[str(meeting.id)]
        assert stored.bot_status == BotStatus.COMPLETED
        assert json.loads(stored.transcript) == PARTICIPANTS
        assert stored.sentences() == ["Hello there", "Bye"]

    @pytest.mark.asyncio
    async def test_not_done_transcript_makes_no_writes(self, bot_manager, mock_recall, repo, make_meeting):
        mock_recall.get_transcript.return_value = {"id": "tr-1", "status": {"code": "processing"}}
        make_meeting(bot_id="bot-1", bot_status=BotStatus.TRANSCRIPT_PROCESSING)

        assert await bot_manager.handle_transcript_done("bot-1", "tr-1") is True

        mock_recall.download_transcript.assert_not_awaited()
        assert repo.updates == []

    @pytest.mark.asyncio
    async def test_download_failure_marks_transcript_failed(self, bot_manager, mock_recall, repo, make_meeting):
        mock_recall.download_transcript.side_effect = ProviderError("expired", status_code=403)
        meeting = make_meeting(bot_id="bot-1", bot_status=BotStatus.TRANSCRIPT_PROCESSING)

        await bot_manager.handle_transcript_done("bot-1", "tr-1")

        stored = repo.meetings[str(meeting.id)]
        assert stored.bot_status == BotStatus.TRANSCRIPT_FAILED
        assert stored.transcript is None
        assert stored.transcript_sentences is None

    @pytest.mark.asyncio
    async def test_metadata_failure_marks_transcript_failed(self, bot_manager, mock_recall, repo, make_meeting):
        mock_recall.get_transcript.side_effect = ProviderError("down")
        meeting = make_meeting(bot_id="bot-1", bot_status=BotStatus.TRANSCRIPT_PROCESSING)

        await bot_manager.handle_transcript_done("bot-1", "tr-1")

        assert repo.meetings[str(meeting.id)].bot_status == BotStatus.TRANSCRIPT_FAILED

    @pytest.mark.asyncio
    async def test_unrecognized_payload_stored_raw_without_sentences(self, bot_manager, mock_recall, repo, make_meeting):
        mock_recall.download_transcript.return_value = TranscriptPayload(
            TranscriptShape.UNRECOGNIZED, {"format": "vtt"}
        )
        meeting = make_meeting(bot_id="bot-1", bot_status=BotStatus.TRANSCRIPT_PROCESSING)

        await bot_manager.handle_transcript_done("bot-1", "tr-1")

        stored = repo.meetings[str(meeting.id)]
        assert stored.bot_status == BotStatus.COMPLETED
        assert json.loads(stored.transcript) == {"format": "vtt"}
        assert stored.sentences() == []

    @pytest.mark.asyncio
    async def test_duplicate_delivery_is_skipped(self, bot_manager, mock_recall, repo, make_meeting):
        make_meeting(
            bot_id="bot-1",
            bot_status=BotStatus.COMPLETED,
            transcript="[]",
            transcript_sentences='["Done"]',
        )

        assert await bot_manager.handle_transcript_done("bot-1", "tr-1") is True

        mock_recall.get_transcript.assert_not_awaited()
        assert repo.updates == []

    @pytest.mark.asyncio
    async def test_unknown_bot_makes_no_writes(self, bot_manager, mock_recall, repo):
        assert await bot_manager.handle_transcript_done("bot-unknown", "tr-1") is False
        mock_recall.get_transcript.assert_not_awaited()
        assert repo.updates == []


# ── Event Routing ───────────────────────────────────────────────────────────


class TestHandleBotEvent:
    @pytest.mark.asyncio
    async def test_routes_recording_done(self, bot_manager, mock_recall, make_meeting):
        make_meeting(bot_id="bot-1", bot_status=BotStatus.RECORDING)

        handled = await bot_manager.handle_bot_event(
            "recording.done", {"recording": {"id": "rec-9"}, "bot": {"id": "bot-1"}}
        )

        assert handled is True
        mock_recall.create_transcript.assert_awaited_once_with("rec-9")

    @pytest.mark.asyncio
    async def test_routes_transcript_done(self, bot_manager, mock_recall, make_meeting):
        make_meeting(bot_id="bot-1", bot_status=BotStatus.TRANSCRIPT_PROCESSING)

        handled = await bot_manager.handle_bot_event(
            "transcript.done", {"transcript": {"id": "tr-9"}, "bot": {"id": "bot-1"}}
        )

        assert handled is True
        mock_recall.get_transcript.assert_awaited_once_with("tr-9")

    @pytest.mark.asyncio
    async def test_unknown_event_is_ignored(self, bot_manager, repo):
        assert await bot_manager.handle_bot_event("bot.status_change", {"bot": {"id": "b"}}) is False
        assert repo.updates == []

    @pytest.mark.asyncio
    async def test_missing_ids_raise_validation_error(self, bot_manager):
        with pytest.raises(ValidationError):
            await bot_manager.handle_bot_event("recording.done", {"bot": {"id": "bot-1"}})


# ── Poll Reconciliation ─────────────────────────────────────────────────────


class TestReconcileBotStatus:
    @pytest.mark.asyncio
    async def test_recording_status_mirrored(self, bot_manager, mock_recall, make_meeting):
        mock_recall.get_bot_status.return_value = {"status": "recording"}
        meeting = make_meeting(bot_id="bot-1", bot_status=BotStatus.SCHEDULED)

        updated = await bot_manager.reconcile_bot_status(meeting)

        assert updated is not None
        assert updated.bot_status == BotStatus.RECORDING

    @pytest.mark.asyncio
    async def test_error_marks_failed_and_leaves_transcript(self, bot_manager, mock_recall, repo, make_meeting):
        mock_recall.get_bot_status.return_value = {"status": "error"}
        meeting = make_meeting(bot_id="bot-1", bot_status=BotStatus.RECORDING)

        await bot_manager.reconcile_bot_status(meeting)

        stored = repo.meetings[str(meeting.id)]
        assert stored.bot_status == BotStatus.FAILED
        assert stored.transcript is None
        assert stored.transcript_sentences is None
        mock_recall.get_bot_transcript.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_done_fetches_simple_transcript(self, bot_manager, mock_recall, repo, make_meeting):
        simple = [{"speaker": "Alice", "words": [{"text": "hi"}]}]
        mock_recall.get_bot_status.return_value = {"status": "done"}
        mock_recall.get_bot_transcript.return_value = {"transcript": simple}
        meeting = make_meeting(bot_id="bot-1", bot_status=BotStatus.RECORDING)

        await bot_manager.reconcile_bot_status(meeting)

        stored = repo.meetings[str(meeting.id)]
        assert stored.bot_status == BotStatus.COMPLETED
        assert json.loads(stored.transcript) == simple

    @pytest.mark.asyncio
    async def test_done_still_completes_when_transcript_fetch_fails(self, bot_manager, mock_recall, repo, make_meeting):
        mock_recall.get_bot_status.return_value = {"status": "done"}
        mock_recall.get_bot_transcript.side_effect = ProviderError("not ready")
        meeting = make_meeting(bot_id="bot-1", bot_status=BotStatus.RECORDING)

        await bot_manager.reconcile_bot_status(meeting)

        stored = repo.meetings[str(meeting.id)]
        assert stored.bot_status == BotStatus.COMPLETED
        assert stored.transcript is None

    @pytest.mark.asyncio
    async def test_unchanged_status_makes_no_writes(self, bot_manager, mock_recall, repo, make_meeting):
        mock_recall.get_bot_status.return_value = {"status": "joining"}
        meeting = make_meeting(bot_id="bot-1", bot_status=BotStatus.SCHEDULED)

        assert await bot_manager.reconcile_bot_status(meeting) is None
        assert repo.updates == []

    @pytest.mark.asyncio
    async def test_skips_meeting_settled_since_listing(self, bot_manager, mock_recall, repo, make_meeting):
        listed = make_meeting(bot_id="bot-1", bot_status=BotStatus.RECORDING)
        await repo.update_meeting(str(listed.id), bot_status=BotStatus.TRANSCRIPT_PROCESSING)
        repo.updates.clear()

        assert await bot_manager.reconcile_bot_status(listed) is None
        mock_recall.get_bot_status.assert_not_awaited()
        assert repo.updates == []

    @pytest.mark.asyncio
    async def test_provider_error_propagates(self, bot_manager, mock_recall, make_meeting):
        mock_recall.get_bot_status.side_effect = ProviderError("down")
        meeting = make_meeting(bot_id="bot-1", bot_status=BotStatus.SCHEDULED)

        with pytest.raises(ProviderError):
            await bot_manager.reconcile_bot_status(meeting)


# ── Manual Retry ────────────────────────────────────────────────────────────


class TestRetryTranscriptCreation:
    @pytest.mark.asyncio
    async def test_retries_stuck_meeting(self, bot_manager, mock_recall, repo, make_meeting):
        meeting = make_meeting(
            bot_id="bot-1",
            bot_status=BotStatus.RECORDING_COMPLETED,
            recording_id="rec-1",
        )

        assert await bot_manager.retry_transcript_creation(meeting) == "tr-1"

        stored = repo.meetings[str(meeting.id)]
        assert stored.bot_status == BotStatus.TRANSCRIPT_PROCESSING
        assert stored.transcript_id == "tr-1"

    @pytest.mark.asyncio
    async def test_rejects_meeting_in_other_status(self, bot_manager, mock_recall, make_meeting):
        meeting = make_meeting(bot_id="bot-1", bot_status=BotStatus.COMPLETED, recording_id="rec-1")

        with pytest.raises(ValidationError):
            await bot_manager.retry_transcript_creation(meeting)
        mock_recall.create_transcript.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_errors_propagate(self, bot_manager, mock_recall, make_meeting):
        mock_recall.create_transcript.side_effect = ProviderError("still failing")
        meeting = make_meeting(
            bot_id="bot-1",
            bot_status=BotStatus.RECORDING_COMPLETED,
            recording_id="rec-1",
        )

        with pytest.raises(ProviderError):
            await bot_manager.retry_transcript_creation(meeting)

    @pytest.mark.asyncio
    async def test_lock_released_and_dropped_after_error(self, bot_manager, mock_recall, make_meeting):
        mock_recall.create_transcript.side_effect = ProviderError("still failing")
        meeting = make_meeting(
            bot_id="bot-1",
            bot_status=BotStatus.RECORDING_COMPLETED,
            recording_id="rec-1",
        )

        with pytest.raises(ProviderError):
            await bot_manager.retry_transcript_creation(meeting)

        assert bot_manager._locks == {}
        assert bot_manager._lock_holders == {}


# ── Notetaker Toggle ────────────────────────────────────────────────────────


class TestJoinMinutesFor:
    @pytest.mark.asyncio
    async def test_default_without_settings(self, bot_manager):
        assert await bot_manager.join_minutes_for("nobody") == 2

    @pytest.mark.asyncio
    async def test_saved_lead_is_used(self, bot_manager, repo):
        repo.user_settings["u1"] = UserSettings(user_id="u1", bot_join_minutes_before=7)

        assert await bot_manager.join_minutes_for("u1") == 7

    @pytest.mark.asyncio
    async def test_zero_lead_falls_back_to_default(self, mock_recall, repo):
        repo.user_settings["u1"] = UserSettings(user_id="u1", bot_join_minutes_before=0)
        manager = BotManager(mock_recall, repo, default_join_minutes=4)

        assert await manager.join_minutes_for("u1") == 4


class TestSetNotetakerEnabled:
    @pytest.mark.asyncio
    async def test_enable_creates_bot_in_same_write(self, bot_manager, mock_recall, repo, make_meeting):
        repo.user_settings["user-123"] = UserSettings(user_id="user-123", bot_join_minutes_before=10)
        meeting = make_meeting(notetaker_enabled=False)

        updated = await bot_manager.set_notetaker_enabled(meeting, True, now=NOW)

        assert updated.notetaker_enabled is True
        assert updated.bot_id == "bot-new"
        assert updated.bot_status == BotStatus.SCHEDULED
        assert mock_recall.create_bot.call_args.args[2] == 10
        assert repo.updates == [
            (
                str(meeting.id),
                {"bot_id": "bot-new", "bot_status": "scheduled", "notetaker_enabled": True},
            )
        ]

    @pytest.mark.asyncio
    async def test_enable_after_join_time_only_sets_flag(self, bot_manager, mock_recall, make_meeting):
        meeting = make_meeting(notetaker_enabled=False, start_time=NOW + timedelta(minutes=1))

        updated = await bot_manager.set_notetaker_enabled(meeting, True, now=NOW)

        assert updated.notetaker_enabled is True
        assert updated.bot_id is None
        mock_recall.create_bot.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_enable_with_existing_bot_does_not_create_another(self, bot_manager, mock_recall, make_meeting):
        meeting = make_meeting(notetaker_enabled=False, bot_id="bot-1", bot_status=BotStatus.SCHEDULED)

        updated = await bot_manager.set_notetaker_enabled(meeting, True, now=NOW)

        assert updated.bot_id == "bot-1"
        mock_recall.create_bot.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_enable_without_url_raises(self, bot_manager, mock_recall, repo, make_meeting):
        meeting = make_meeting(notetaker_enabled=False, meeting_url="")

        with pytest.raises(ValidationError):
            await bot_manager.set_notetaker_enabled(meeting, True, now=NOW)

        assert repo.updates == []
        mock_recall.create_bot.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_enable_provider_failure_leaves_flag_off(self, bot_manager, mock_recall, repo, make_meeting):
        mock_recall.create_bot.side_effect = ProviderError("Failed to create bot: response has no id")
        meeting = make_meeting(notetaker_enabled=False)

        with pytest.raises(ProviderError):
            await bot_manager.set_notetaker_enabled(meeting, True, now=NOW)

        stored = repo.meetings[str(meeting.id)]
        assert stored.notetaker_enabled is False
        assert stored.bot_id is None

    @pytest.mark.asyncio
    async def test_disable_keeps_bot(self, bot_manager, repo, make_meeting):
        meeting = make_meeting(bot_id="bot-1", bot_status=BotStatus.SCHEDULED)

        updated = await bot_manager.set_notetaker_enabled(meeting, False, now=NOW)

        assert updated.notetaker_enabled is False
        assert updated.bot_id == "bot-1"
        assert repo.updates == [(str(meeting.id), {"notetaker_enabled": False})]

    @pytest.mark.asyncio
    async def test_ingested_meeting_gets_bot_once_enabled(self, bot_manager, mock_recall, repo):
        ingestor = CalendarIngestor(repo)
        [meeting] = await ingestor.ingest_events(
            "user-123",
            [
                {
                    "id": "evt-1",
                    "summary": "Planning",
                    "start": {"dateTime": (NOW + timedelta(hours=1)).isoformat()},
                    "hangoutLink": "https://meet.google.com/abc-defg-hij",
                }
            ],
        )
        assert not should_create_bot(meeting, 2, NOW)

        updated = await bot_manager.set_notetaker_enabled(meeting, True, now=NOW)

        assert updated.bot_id == "bot-new"
        assert mock_recall.create_bot.call_args.args[0] == "https://meet.google.com/abc-defg-hij"


class TestDisableAllNotetakers:
    @pytest.mark.asyncio
    async def test_clears_unjoined_bots_and_keeps_started_ones(self, bot_manager, repo, make_meeting):
        scheduled = make_meeting(bot_id="bot-1", bot_status=BotStatus.SCHEDULED)
        recording = make_meeting(bot_id="bot-2", bot_status=BotStatus.RECORDING)
        plain = make_meeting()
        other = make_meeting(user_id="user-999")

        result = await bot_manager.disable_all_notetakers("user-123")

        assert result == {"disabled": 3, "cleaned": 1}
        assert repo.meetings[str(scheduled.id)].bot_id is None
        assert repo.meetings[str(scheduled.id)].bot_status is None
        assert repo.meetings[str(recording.id)].bot_id == "bot-2"
        assert repo.meetings[str(recording.id)].notetaker_enabled is False
        assert repo.meetings[str(plain.id)].notetaker_enabled is False
        assert repo.meetings[str(other.id)].notetaker_enabled is True

    @pytest.mark.asyncio
    async def test_nothing_enabled(self, bot_manager, repo, make_meeting):
        make_meeting(notetaker_enabled=False)

        assert await bot_manager.disable_all_notetakers("user-123") == {"disabled": 0, "cleaned": 0}
        assert repo.updates == []
