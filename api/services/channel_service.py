"""Channel management service, a thin business-logic layer.

All SQL operations are delegated to ``AccountRepository`` (Twitch
platform). This service adds the enabled/disabled rules the API and the
command service share.
"""

import logging

from shared.models.account import LinkedAccount
from shared.repositories.account import AccountRepository

from api.core.errors import ErrorKind, ServiceError

logger = logging.getLogger(__name__)

PAGE_SIZE = 10

NOT_REGISTERED = "This Twitch channel isn't registered with us."
CHANNEL_DISABLED = "This Twitch channel is disabled."


class ChannelService:
    """API-facing channel operations."""

    def __init__(self, accounts: AccountRepository) -> None:
        self.accounts = accounts

    async def _require(self, channel_id: str) -> LinkedAccount:
        channel = await self.accounts.get(channel_id)
        if channel is None:
            raise ServiceError(ErrorKind.NOT_FOUND, NOT_REGISTERED)
        return channel

    async def get_channel(self, channel_id: str, *, force: bool = False) -> LinkedAccount:
        """Get a channel; a disabled one only when forced."""
        channel = await self._require(channel_id)
        if not channel.enabled and not force:
            raise ServiceError(ErrorKind.DISABLED, CHANNEL_DISABLED)
        return channel

    async def verify_channel(self, channel_id: str) -> bool:
        """Whether the channel is enabled. Raises NOT_FOUND if it is not registered."""
        channel = await self._require(channel_id)
        return channel.enabled

    async def search_channels(
        self, query: str = "", page: int = 1, *, force: bool = False
    ) -> list[LinkedAccount]:
        """Username substring search, PAGE_SIZE per page."""
        if page < 1:
            raise ServiceError(ErrorKind.INVALID_REQUEST, "The query parameters are invalid.")
        return await self.accounts.search(
            query,
            limit=PAGE_SIZE,
            offset=(page - 1) * PAGE_SIZE,
            include_disabled=force,
        )

    async def toggle_channel(self, channel_id: str, enabled: bool | None = None) -> LinkedAccount:
        """Set the enabled flag, or invert it when *enabled* is None."""
        channel = await self.accounts.set_enabled(channel_id, enabled)
        if channel is None:
            raise ServiceError(ErrorKind.NOT_FOUND, NOT_REGISTERED)
        action = "enabled" if channel.enabled else "disabled"
        logger.info(f"Channel {channel_id} {action}")
        return channel

    async def delete_channel(self, channel_id: str) -> LinkedAccount:
        """Delete a channel; its commands and variables cascade."""
        channel = await self.accounts.delete(channel_id)
        if channel is None:
            raise ServiceError(ErrorKind.NOT_FOUND, NOT_REGISTERED)
        logger.info(f"Channel {channel_id} ({channel.username}) deleted")
        return channel
