"""Command and command-variable API routes"""

import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from shared.models.command import VARIABLE_MAX, VARIABLE_MIN

from api.core.dependencies import get_command_service, require_api_key
from api.routers.common import ChannelId, DataResponse, Force, ToggleRequest
from api.services import CommandService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/channels/{channel_id}/commands",
    tags=["commands"],
    dependencies=[Depends(require_api_key)],
)


# ============================================
# Request/Response Models
# ============================================


class CommandCreate(BaseModel):
    keyword: str
    content: str = Field(min_length=1, max_length=500)


class CommandUpdate(BaseModel):
    content: str = Field(min_length=1, max_length=500)


class CommandResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    channel_id: str
    keyword: str
    content: str
    enabled: bool


class VariableResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    value: int


class VariableSet(BaseModel):
    value: int = Field(ge=VARIABLE_MIN, le=VARIABLE_MAX)


class VariableIncrement(BaseModel):
    """Negative deltas decrement."""

    delta: int = Field(default=1, ge=VARIABLE_MIN, le=VARIABLE_MAX)


# ============================================
# Command Endpoints
# ============================================


@router.get("", response_model=DataResponse[list[CommandResponse]])
async def list_commands(
    channel_id: ChannelId,
    page: int = Query(1),
    force: Force = False,
    service: CommandService = Depends(get_command_service),
) -> DataResponse[list[CommandResponse]]:
    """List a channel's commands, 10 per page"""
    commands = await service.list_commands(channel_id, page, force=force)
    return DataResponse(data=[CommandResponse.model_validate(c) for c in commands])


@router.post("", response_model=DataResponse[CommandResponse], status_code=201)
async def create_command(
    channel_id: ChannelId,
    body: CommandCreate,
    force: Force = False,
    service: CommandService = Depends(get_command_service),
) -> DataResponse[CommandResponse]:
    command = await service.create_command(channel_id, body.keyword, body.content, force=force)
    return DataResponse(data=CommandResponse.model_validate(command))


@router.get("/{keyword}", response_model=DataResponse[CommandResponse])
async def get_command(
    channel_id: ChannelId,
    keyword: str,
    force: Force = False,
    service: CommandService = Depends(get_command_service),
) -> DataResponse[CommandResponse]:
    """Get a command with its variables substituted"""
    command = await service.get_command(channel_id, keyword, force=force)
    return DataResponse(data=CommandResponse.model_validate(command))


@router.put("/{keyword}", response_model=DataResponse[CommandResponse])
async def update_command(
    channel_id: ChannelId,
    keyword: str,
    body: CommandUpdate,
    force: Force = False,
    service: CommandService = Depends(get_command_service),
) -> DataResponse[CommandResponse]:
    """Replace a command's content; variables still in use keep their values"""
    command = await service.update_command(channel_id, keyword, body.content, force=force)
    return DataResponse(data=CommandResponse.model_validate(command))


@router.patch("/{keyword}", response_model=DataResponse[CommandResponse])
async def toggle_command(
    channel_id: ChannelId,
    keyword: str,
    body: ToggleRequest | None = None,
    force: Force = False,
    service: CommandService = Depends(get_command_service),
) -> DataResponse[CommandResponse]:
    enabled = body.enabled if body else None
    command = await service.toggle_command(channel_id, keyword, enabled, force=force)
    return DataResponse(data=CommandResponse.model_validate(command))


@router.delete("/{keyword}", response_model=DataResponse[CommandResponse])
async def delete_command(
    channel_id: ChannelId,
    keyword: str,
    force: Force = False,
    service: CommandService = Depends(get_command_service),
) -> DataResponse[CommandResponse]:
    command = await service.delete_command(channel_id, keyword, force=force)
    return DataResponse(data=CommandResponse.model_validate(command))


# ============================================
# Variable Endpoints
# ============================================


@router.get("/{keyword}/variables", response_model=DataResponse[list[VariableResponse]])
async def list_variables(
    channel_id: ChannelId,
    keyword: str,
    force: Force = False,
    service: CommandService = Depends(get_command_service),
) -> DataResponse[list[VariableResponse]]:
    variables = await service.list_variables(channel_id, keyword, force=force)
    return DataResponse(data=[VariableResponse.model_validate(v) for v in variables])


@router.put("/{keyword}/variables/{name}", response_model=DataResponse[VariableResponse])
async def set_variable(
    channel_id: ChannelId,
    keyword: str,
    name: str,
    body: VariableSet,
    force: Force = False,
    service: CommandService = Depends(get_command_service),
) -> DataResponse[VariableResponse]:
    variable = await service.set_variable(channel_id, keyword, name, body.value, force=force)
    return DataResponse(data=VariableResponse.model_validate(variable))


@router.patch("/{keyword}/variables/{name}", response_model=DataResponse[VariableResponse])
async def increment_variable(
    channel_id: ChannelId,
    keyword: str,
    name: str,
    body: VariableIncrement,
    force: Force = False,
    service: CommandService = Depends(get_command_service),
) -> DataResponse[VariableResponse]:
    """Atomically add ``delta`` to a variable"""
    variable = await service.increment_variable(
        channel_id, keyword, name, body.delta, force=force
    )
    return DataResponse(data=VariableResponse.model_validate(variable))
