"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS, Sentry,
and a lifespan that composes the bot pipeline: RecallClient ->
MeetingRepository -> BotManager -> BotScheduler. The scheduler handle is
owned here and stopped on shutdown.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.notetaker.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.notetaker.api.v1.router import router as v1_router
from src.notetaker.config import Settings, get_settings
from src.notetaker.core.database import close_db, get_session, init_db
from src.notetaker.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.notetaker.meetings.bot.manager import BotManager
from src.notetaker.meetings.bot.recall_client import RecallClient
from src.notetaker.meetings.bot.scheduler import BotScheduler
from src.notetaker.meetings.calendar.events import CalendarIngestor
from src.notetaker.meetings.repository import MeetingRepository

log = structlog.get_logger(__name__)


def build_services(app: FastAPI, settings: Settings) -> BotScheduler:
    """Compose the bot pipeline and expose it on app.state."""
    recall_client = RecallClient(
        api_key=settings.RECALL_API_KEY,
        region=settings.RECALL_AI_REGION,
        bot_name_prefix=settings.BOT_NAME_PREFIX,
    )
    meeting_repo = MeetingRepository(session_factory=get_session)
    bot_manager = BotManager(
        recall_client=recall_client,
        repository=meeting_repo,
        default_join_minutes=settings.DEFAULT_BOT_JOIN_MINUTES_BEFORE,
    )
    bot_scheduler = BotScheduler(
        bot_manager=bot_manager,
        repository=meeting_repo,
        interval_seconds=settings.BOT_POLL_INTERVAL_SECONDS,
        scheduling_window_hours=settings.BOT_SCHEDULING_WINDOW_HOURS,
    )

    app.state.recall_client = recall_client
    app.state.meeting_repository = meeting_repo
    app.state.bot_manager = bot_manager
    app.state.bot_scheduler = bot_scheduler
    app.state.calendar_ingestor = CalendarIngestor(repository=meeting_repo)
    return bot_scheduler


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: init DB, Sentry and the bot pipeline; stop on shutdown."""
    settings = get_settings()
    configure_structlog()
    await init_db()

    # Initialize Sentry if DSN is configured
    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    bot_scheduler = build_services(app, settings)

    validation = app.state.recall_client.validate_configuration()
    if not validation.is_valid:
        log.warning("startup.recall_not_configured", message=validation.message)

    if settings.BOT_SCHEDULER_AUTOSTART:
        bot_scheduler.start()

    log.info(
        "startup.bot_pipeline_initialized",
        scheduler_running=bot_scheduler.is_running,
        poll_interval_seconds=settings.BOT_POLL_INTERVAL_SECONDS,
    )

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    await bot_scheduler.stop()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Meeting Notetaker API",
        version="0.1.0",
        description="Recall.ai meeting bots, webhooks, and transcript sentences",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    # CORS middleware
    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    app.include_router(v1_router, prefix="/api/v1")

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
