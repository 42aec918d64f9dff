"""Dependency injection utilities for FastAPI

Collaborators are built once in the application lifespan and stored on
``app.state``; these getters hand them to route handlers.
"""

import logging
import secrets

from fastapi import Depends, Header, Request

from api.core.config import Settings
from api.core.errors import ErrorKind, ServiceError
from api.services import ChannelService, CommandService, OAuthFlowController

logger = logging.getLogger(__name__)


# ============================================
# Service Dependencies
# ============================================


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_channel_service(request: Request) -> ChannelService:
    return request.app.state.channel_service


def get_command_service(request: Request) -> CommandService:
    return request.app.state.command_service


def get_twitch_flow(request: Request) -> OAuthFlowController:
    return request.app.state.twitch_flow


def get_discord_flow(request: Request) -> OAuthFlowController:
    return request.app.state.discord_flow


# ============================================
# Authentication Dependencies
# ============================================


async def require_api_key(
    r0_key: str | None = Header(None, convert_underscores=False),
    settings: Settings = Depends(get_app_settings),
) -> None:
    """Reject requests whose ``r0_key`` header does not match the configured key"""
    if not r0_key or not secrets.compare_digest(r0_key.encode(), settings.api_key.encode()):
        logger.warning("Rejected request with missing or invalid API key")
        raise ServiceError(ErrorKind.UNAUTHORIZED, "Invalid API key.")
