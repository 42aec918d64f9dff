"""Channel management API routes"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from api.core.dependencies import get_channel_service, require_api_key
from api.routers.common import ChannelId, DataResponse, Force, MessageResponse, ToggleRequest
from api.services import ChannelService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/channels",
    tags=["channels"],
    dependencies=[Depends(require_api_key)],
)


# ============================================
# Request/Response Models
# ============================================


class ChannelResponse(BaseModel):
    """A linked channel. Credentials are never exposed."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    channel_id: str = Field(validation_alias="external_id")
    username: str
    enabled: bool
    registered_at: datetime | None = None
    last_refresh: datetime | None = None


# ============================================
# Channel Endpoints
# ============================================


@router.get("", response_model=DataResponse[list[ChannelResponse]])
async def list_channels(
    search: str = Query("", max_length=25),
    page: int = Query(1, ge=1),
    force: Force = False,
    service: ChannelService = Depends(get_channel_service),
) -> DataResponse[list[ChannelResponse]]:
    """Search channels by username"""
    channels = await service.search_channels(search, page, force=force)
    return DataResponse(data=[ChannelResponse.model_validate(c) for c in channels])


@router.get("/{channel_id}", response_model=DataResponse[ChannelResponse])
async def get_channel(
    channel_id: ChannelId,
    force: Force = False,
    service: ChannelService = Depends(get_channel_service),
) -> DataResponse[ChannelResponse]:
    channel = await service.get_channel(channel_id, force=force)
    return DataResponse(data=ChannelResponse.model_validate(channel))


@router.patch("/{channel_id}", response_model=DataResponse[ChannelResponse])
async def toggle_channel(
    channel_id: ChannelId,
    body: ToggleRequest | None = None,
    service: ChannelService = Depends(get_channel_service),
) -> DataResponse[ChannelResponse]:
    """Enable or disable a channel (inverts when ``enabled`` is omitted)"""
    enabled = body.enabled if body else None
    channel = await service.toggle_channel(channel_id, enabled)
    return DataResponse(data=ChannelResponse.model_validate(channel))


@router.delete("/{channel_id}", response_model=MessageResponse)
async def delete_channel(
    channel_id: ChannelId,
    service: ChannelService = Depends(get_channel_service),
) -> MessageResponse:
    await service.delete_channel(channel_id)
    return MessageResponse(message="The Twitch channel was successfully deleted.")
