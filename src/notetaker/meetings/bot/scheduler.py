"""BotScheduler -- periodic bot status polling and bot scheduling.

Each tick runs two passes:

1. Poll: reconcile every started meeting whose bot is still active
   (scheduled, recording, pending) against Recall.ai.
2. Schedule: create bots for enabled meetings starting within the
   scheduling window that have a join URL and no bot yet.

Webhooks are the primary signal for recording/transcript completion; the
poll pass catches bots whose webhooks were missed and provider-side errors.

The scheduler is an explicit handle owned by the application lifespan:
start() and stop() are idempotent and the loop runs as a named asyncio.Task.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import structlog

from src.notetaker.core.monitoring import (
    scheduler_run_duration_seconds,
    scheduler_runs_total,
)

if TYPE_CHECKING:
    from src.notetaker.meetings.bot.manager import BotManager
    from src.notetaker.meetings.repository import MeetingRepository

logger = structlog.get_logger(__name__)

# ── Constants ────────────────────────────────────────────────────────────────

POLL_INTERVAL_SECONDS = 5 * 60
SCHEDULING_WINDOW_HOURS = 24


class BotScheduler:
    """Runs the bot poll and scheduling passes on a fixed interval.

    Args:
        bot_manager: BotManager performing the per-meeting transitions.
        repository: MeetingRepository for the batch queries.
        interval_seconds: Delay between ticks.
        scheduling_window_hours: How far ahead meetings get bots.
    """

    def __init__(
        self,
        bot_manager: BotManager,
        repository: MeetingRepository,
        interval_seconds: float = POLL_INTERVAL_SECONDS,
        scheduling_window_hours: int = SCHEDULING_WINDOW_HOURS,
    ) -> None:
        self._bot_manager = bot_manager
        self._repository = repository
        self._interval_seconds = interval_seconds
        self._scheduling_window = timedelta(hours=scheduling_window_hours)
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    # ── Passes ───────────────────────────────────────────────────────────

    async def poll_all_bot_statuses(self, now: datetime | None = None) -> int:
        """Reconcile every started meeting with an active bot.

        Returns:
            Number of meetings whose state changed.
        """
        now = now or datetime.now(timezone.utc)
        meetings = await self._repository.get_meetings_with_active_bots(now)

        updated = 0
        for meeting in meetings:
            try:
                if await self._bot_manager.reconcile_bot_status(meeting) is not None:
                    updated += 1
            except Exception:
                logger.exception(
                    "bot_scheduler.poll_failed",
                    meeting_id=str(meeting.id),
                    bot_id=meeting.bot_id,
                )

        logger.info(
            "bot_scheduler.poll_complete",
            checked=len(meetings),
            updated=updated,
        )
        return updated

    async def schedule_upcoming_bots(self, now: datetime | None = None) -> int:
        """Create bots for enabled meetings starting within the window.

        The join lead time comes from BotManager.join_minutes_for, looked up
        once per owner per pass.

        Returns:
            Number of bots created.
        """
        now = now or datetime.now(timezone.utc)
        meetings = await self._repository.get_meetings_needing_bots(
            now, now + self._scheduling_window
        )

        lead_by_user: dict[str, int] = {}
        created = 0
        for meeting in meetings:
            try:
                if meeting.user_id not in lead_by_user:
                    lead_by_user[meeting.user_id] = await self._bot_manager.join_minutes_for(
                        meeting.user_id
                    )
                bot_id = await self._bot_manager.create_meeting_bot(
                    meeting,
                    join_lead_minutes=lead_by_user[meeting.user_id],
                    now=now,
                )
                if bot_id is not None:
                    created += 1
            except Exception:
                logger.exception(
                    "bot_scheduler.schedule_failed",
                    meeting_id=str(meeting.id),
                    title=meeting.title,
                )

        logger.info(
            "bot_scheduler.schedule_complete",
            candidates=len(meetings),
            created=created,
        )
        return created

    async def run_once(self) -> dict[str, int]:
        """Run one tick: the poll pass, then the scheduling pass.

        A failing pass is logged and does not prevent the other.
        """
        started = time.perf_counter()
        result = {"updated": 0, "scheduled": 0}

        for task, key, run in (
            ("poll", "updated", self.poll_all_bot_statuses),
            ("schedule", "scheduled", self.schedule_upcoming_bots),
        ):
            try:
                result[key] = await run()
                scheduler_runs_total.labels(task=task, outcome="success").inc()
            except Exception:
                scheduler_runs_total.labels(task=task, outcome="error").inc()
                logger.exception("bot_scheduler.pass_failed", task=task)

        scheduler_run_duration_seconds.observe(time.perf_counter() - started)
        return result

    # ── Loop Control ─────────────────────────────────────────────────────

    def start(self) -> bool:
        """Start the background loop if it is not already running.

        Must be called from a running event loop. The first tick runs
        immediately.

        Returns:
            True if a new loop was started, False if one was running.
        """
        if self.is_running:
            logger.debug("bot_scheduler.already_running")
            return False

        self._task = asyncio.create_task(self._run_loop(), name="bot_scheduler")
        logger.info(
            "bot_scheduler.started",
            interval_seconds=self._interval_seconds,
        )
        return True

    async def stop(self) -> None:
        """Cancel the background loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None or task.done():
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("bot_scheduler.stopped")

    async def _run_loop(self) -> None:
        while True:
            await self.run_once()
            logger.debug("bot_scheduler.tick_complete")
            await asyncio.sleep(self._interval_seconds)
