"""Twitch OAuth client.

Links a broadcaster's channel: the user access token obtained here is what
the bot uses to manage the broadcast and chat on the channel's behalf.
"""

import logging

import httpx
from pydantic import BaseModel, Field, StrictStr, ValidationError

from shared.models.account import Platform

from api.core.errors import ErrorKind, ServiceError
from api.services.oauth_client import AccountIdentity, CallbackQuery, OAuthClient, TokenPair

logger = logging.getLogger(__name__)

HELIX_BASE = "https://api.twitch.tv/helix"
OAUTH_BASE = "https://id.twitch.tv/oauth2"


class TwitchCallbackQuery(CallbackQuery):
    scope: StrictStr = Field(min_length=1)


class HelixUser(BaseModel):
    id: StrictStr
    login: StrictStr


class TwitchAPIClient(OAuthClient):
    """Client for the Twitch identity provider and the Helix users endpoint."""

    platform = Platform.TWITCH
    display_name = "Twitch"
    AUTHORIZE_URL = f"{OAUTH_BASE}/authorize"
    TOKEN_URL = f"{OAUTH_BASE}/token"
    VALIDATE_URL = f"{OAUTH_BASE}/validate"
    SCOPES = [
        "channel:manage:broadcast",
        "clips:edit",
        "chat:read",
        "chat:edit",
    ]
    CALLBACK_MODEL = TwitchCallbackQuery

    def __init__(self, client_id: str, client_secret: str, api_url: str, **kwargs):
        if not client_id or not client_secret:
            raise ValueError("Twitch client_id and client_secret are required")
        super().__init__(client_id, client_secret, api_url, **kwargs)

    def _extra_authorize_params(self) -> dict[str, str]:
        # Always show the consent screen so the right account gets linked
        return {"force_verify": "true"}

    def _validation_headers(self, access_token: str) -> dict[str, str]:
        return {"Authorization": f"OAuth {access_token}"}

    async def identify(self, tokens: TokenPair, query: CallbackQuery) -> AccountIdentity:
        """Look up the user the token was issued for (GET helix/users)."""
        try:
            response = await self._http.get(
                f"{HELIX_BASE}/users",
                headers={
                    "Authorization": f"Bearer {tokens.access_token}",
                    "Client-Id": self.client_id,
                },
            )
        except httpx.HTTPError as e:
            logger.error(f"Helix GET /users error: {type(e).__name__}")
            raise ServiceError(ErrorKind.PROVIDER_UNAVAILABLE, "Twitch could not be reached.") from e

        if response.status_code != 200:
            logger.error(f"Failed to fetch token owner: {response.status_code}")
            raise ServiceError(
                ErrorKind.PROVIDER_PROTOCOL, f"Helix users returned HTTP {response.status_code}"
            )

        try:
            users = response.json().get("data") or []
            user = HelixUser.model_validate(users[0])
        except (ValueError, AttributeError, IndexError, ValidationError) as e:
            raise ServiceError(ErrorKind.PROVIDER_PROTOCOL, "Malformed Helix users response") from e

        logger.debug(f"Token exchanged for Twitch user: {user.id}")
        return AccountIdentity(external_id=user.id, username=user.login)
