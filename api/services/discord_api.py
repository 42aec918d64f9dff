"""Discord OAuth client (bot installation into a guild)"""

import logging

from pydantic import Field, StrictStr

from shared.models.account import Platform

from api.core.errors import ErrorKind, ServiceError
from api.services.oauth_client import AccountIdentity, CallbackQuery, OAuthClient, TokenPair

logger = logging.getLogger(__name__)

DISCORD_API_URL = "https://discord.com/api/v10"


class DiscordCallbackQuery(CallbackQuery):
    guild_id: StrictStr = Field(min_length=1)


class DiscordAPIClient(OAuthClient):
    """Client for the Discord OAuth2 API.

    The ``bot`` scope makes Discord add the bot to the guild the user picks
    and report that guild on the callback and in the token response.
    """

    platform = Platform.DISCORD
    display_name = "Discord"
    AUTHORIZE_URL = "https://discord.com/oauth2/authorize"
    TOKEN_URL = f"{DISCORD_API_URL}/oauth2/token"
    VALIDATE_URL = f"{DISCORD_API_URL}/oauth2/@me"
    SCOPES = ["bot", "applications.commands"]
    CALLBACK_MODEL = DiscordCallbackQuery

    # Bot permission bitfield requested on install
    BOT_PERMISSIONS = "309237902400"

    def _extra_authorize_params(self) -> dict[str, str]:
        return {"permissions": self.BOT_PERMISSIONS}

    async def identify(self, tokens: TokenPair, query: CallbackQuery) -> AccountIdentity:
        """The linked account is the guild from the token response.

        The callback's ``guild_id`` is user-editable, so it must agree with
        the guild Discord reports for the granted token.
        """
        guild = tokens.raw.get("guild")
        guild_id = guild.get("id") if isinstance(guild, dict) else None
        if not isinstance(guild_id, str) or not guild_id:
            raise ServiceError(
                ErrorKind.PROVIDER_PROTOCOL, "Discord token response has no guild id"
            )
        claimed = query.guild_id  # type: ignore[attr-defined]
        if guild_id != claimed:
            logger.warning(f"Discord callback guild_id {claimed} does not match token guild {guild_id}")
            raise ServiceError(ErrorKind.INVALID_REQUEST, "The query parameters are invalid.")
        name = guild.get("name") or ""
        logger.debug(f"Token exchanged for Discord guild: {guild_id}")
        return AccountIdentity(external_id=guild_id, username=name)
