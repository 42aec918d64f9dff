"""FastAPI application factory"""

import logging
import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request

from shared.database import DatabaseManager, PoolConfig
from shared.migrations.runner import MigrationRunner
from shared.models.account import Platform
from shared.repositories import AccountRepository, CommandRepository, StateRepository

from api.core.config import Settings, get_settings
from api.core.errors import register_exception_handlers
from api.core.logging import setup_logging
from api.routers import channels_router, commands_router, oauth_router
from api.services import (
    ChannelService,
    CommandService,
    DiscordAPIClient,
    OAuthFlowController,
    StateStore,
    TokenSweeper,
    TokenSweepScheduler,
    TwitchAPIClient,
)

logger = logging.getLogger(__name__)


async def close_all(resources: list[tuple[str, Callable[[], Awaitable[None]]]]) -> None:
    """Close every resource in order; one failure does not skip the rest."""
    for name, close in resources:
        try:
            await close()
            logger.info(f"{name} closed")
        except Exception as e:
            logger.exception(f"Error closing {name}: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build every collaborator on startup, tear them down on shutdown"""
    settings: Settings = app.state.settings

    # Startup
    logger.info("Starting R0 API server")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"API URL: {settings.api_url}")

    db_manager = DatabaseManager(settings.database_url, PoolConfig(ssl=settings.database_ssl))
    await db_manager.connect()
    if settings.run_migrations:
        await MigrationRunner(db_manager.pool).run_pending()
    pool = db_manager.pool

    twitch_api = TwitchAPIClient(
        settings.twitch_client_id,
        settings.twitch_client_secret,
        settings.api_url,
        timeout=settings.http_timeout,
    )
    discord_api = DiscordAPIClient(
        settings.discord_client_id,
        settings.discord_client_secret,
        settings.api_url,
        timeout=settings.http_timeout,
    )

    state_store = StateStore(
        StateRepository(pool), ttl=timedelta(minutes=settings.state_ttl_minutes)
    )
    channels = AccountRepository(pool, Platform.TWITCH)
    guilds = AccountRepository(pool, Platform.DISCORD)
    channel_service = ChannelService(channels)

    app.state.db_manager = db_manager
    app.state.channel_service = channel_service
    app.state.command_service = CommandService(CommandRepository(pool), channel_service)
    app.state.twitch_flow = OAuthFlowController(twitch_api, state_store, channels)
    app.state.discord_flow = OAuthFlowController(discord_api, state_store, guilds)

    sweepers = [TokenSweeper(twitch_api, channels, dev_mode=settings.is_development)]
    if discord_api.is_configured:
        sweepers.append(TokenSweeper(discord_api, guilds, dev_mode=settings.is_development))
    else:
        logger.warning("Discord OAuth is not configured, Discord routes and sweep are disabled")

    scheduler = TokenSweepScheduler(
        sweepers, state_store=state_store, interval=settings.token_sweep_interval
    )
    if settings.enable_token_sweep:
        scheduler.start()

    yield

    # Shutdown
    logger.info("Shutting down R0 API server")
    await scheduler.stop()
    await close_all(
        [
            ("Twitch client", twitch_api.close),
            ("Discord client", discord_api.close),
            ("Database", db_manager.disconnect),
        ]
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure FastAPI application"""
    settings = settings or get_settings()

    # Setup logging first
    setup_logging(settings)

    app = FastAPI(
        title="R0 API",
        description="OAuth linking and command management for the R0 Twitch/Discord bot",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.settings = settings
    app.state.started_at = time.time()

    register_exception_handlers(app)

    # Register routers
    app.include_router(oauth_router.router)
    app.include_router(channels_router.router)
    app.include_router(commands_router.router)

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint - minimal service info"""
        return {"service": "r0-api", "status": "running"}

    # Liveness check, no external dependency
    @app.get("/health")
    async def health(request: Request):
        """Liveness check (no DB dependency)"""
        return {
            "status": "healthy",
            "uptime_seconds": int(time.time() - request.app.state.started_at),
        }

    # Readiness check
    @app.get("/status")
    async def status(request: Request):
        """Readiness check including the database"""
        db_manager: DatabaseManager | None = getattr(request.app.state, "db_manager", None)
        db_ok = db_manager is not None and await db_manager.check_health()
        return {
            "service": "r0-api",
            "version": "1.0.0",
            "uptime_seconds": int(time.time() - request.app.state.started_at),
            "db_connected": db_ok,
            "environment": settings.environment,
        }

    logger.info("FastAPI application configured")

    return app
