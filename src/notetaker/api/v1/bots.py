"""Bot scheduler control endpoints.

- POST /bots/init: start the background scheduler (idempotent)
- POST /bots/poll: run one poll + scheduling tick now
- GET /bots/config: report whether the Recall.ai configuration is valid
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.notetaker.api.deps import get_bot_scheduler, get_recall_client
from src.notetaker.meetings.bot.recall_client import RecallClient
from src.notetaker.meetings.bot.scheduler import BotScheduler

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/bots", tags=["bots"])


class SchedulerResponse(BaseModel):
    success: bool
    message: str
    running: bool


class PollResponse(BaseModel):
    success: bool
    message: str
    updated: int
    scheduled: int


class BotConfigResponse(BaseModel):
    success: bool
    is_valid: bool
    message: str
    recall_api_key: str


@router.post("/init", response_model=SchedulerResponse)
async def init_scheduler(
    scheduler: BotScheduler = Depends(get_bot_scheduler),
) -> SchedulerResponse:
    """Start the bot scheduler if it is not already running."""
    started = scheduler.start()
    message = (
        "Bot scheduler initialized successfully" if started else "Bot scheduler already running"
    )
    logger.info("bots.scheduler_init", started=started)
    return SchedulerResponse(success=True, message=message, running=scheduler.is_running)


@router.post("/poll", response_model=PollResponse)
async def poll_bots(
    scheduler: BotScheduler = Depends(get_bot_scheduler),
) -> PollResponse:
    """Run the poll and scheduling passes immediately."""
    logger.info("bots.manual_poll")
    result = await scheduler.run_once()
    return PollResponse(
        success=True,
        message="Bot polling completed",
        updated=result["updated"],
        scheduled=result["scheduled"],
    )


@router.get("/config", response_model=BotConfigResponse)
async def bot_config(
    recall_client: RecallClient = Depends(get_recall_client),
) -> BotConfigResponse:
    """Validate the Recall.ai configuration without calling Recall.ai."""
    validation = recall_client.validate_configuration()
    return BotConfigResponse(
        success=True,
        is_valid=validation.is_valid,
        message=validation.message,
        recall_api_key="set" if validation.is_valid else "missing",
    )
