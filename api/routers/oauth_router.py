"""OAuth linking routes for Twitch channels and Discord guilds"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from api.core.dependencies import get_discord_flow, get_twitch_flow
from api.routers.common import MessageResponse
from api.services import OAuthFlowController

logger = logging.getLogger(__name__)

router = APIRouter(tags=["oauth"])


# ============================================
# Twitch
# ============================================


@router.get("/twitch", response_class=RedirectResponse)
async def twitch_oauth(flow: OAuthFlowController = Depends(get_twitch_flow)) -> RedirectResponse:
    """Redirect the broadcaster to Twitch's consent screen"""
    return RedirectResponse(url=await flow.begin_flow())


@router.get("/twitch/callback", response_model=MessageResponse, status_code=201)
async def twitch_callback(
    request: Request,
    flow: OAuthFlowController = Depends(get_twitch_flow),
) -> MessageResponse:
    """Handle Twitch OAuth callback"""
    await flow.handle_callback(request.query_params)
    return MessageResponse(message="The channel was successfully registered.")


# ============================================
# Discord
# ============================================


@router.get("/discord", response_class=RedirectResponse)
async def discord_oauth(
    flow: OAuthFlowController = Depends(get_discord_flow),
) -> RedirectResponse:
    """Redirect to Discord's bot installation screen"""
    return RedirectResponse(url=await flow.begin_flow())


@router.get("/discord/callback", response_model=MessageResponse, status_code=201)
async def discord_callback(
    request: Request,
    flow: OAuthFlowController = Depends(get_discord_flow),
) -> MessageResponse:
    """Handle Discord OAuth callback"""
    await flow.handle_callback(request.query_params)
    return MessageResponse(message="The guild was successfully registered.")
