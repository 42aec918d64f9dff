"""Response envelopes and parameters shared by the API routers"""

from typing import Annotated, Generic, TypeVar

from fastapi import Path, Query
from pydantic import BaseModel

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    success: bool = True
    data: T


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ToggleRequest(BaseModel):
    """Omit ``enabled`` (or the whole body) to invert the current value."""

    enabled: bool | None = None


ChannelId = Annotated[str, Path(pattern=r"^[0-9]+$", max_length=32)]
Force = Annotated[bool, Query(description="Include disabled items")]
