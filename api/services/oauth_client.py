"""Shared OAuth2 authorization-code client.

Token types:
- Authorization code: short-lived, exchanged once for a token pair on callback.
- User access token: stored per linked account, validated by the token sweep.
- Refresh token: exchanged for a new pair when the access token is rejected.
  Providers may rotate it, so both tokens are always stored together.

Subclasses fill in the provider endpoints, scopes, the callback query shape
and how the linked identity is resolved.
"""

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, ClassVar
from urllib.parse import quote, urlencode

import httpx
from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from shared.models.account import Platform

from api.core.errors import ErrorKind, ServiceError

logger = logging.getLogger(__name__)


class TokenResponse(BaseModel):
    """Strict shape of a token endpoint response. Nothing is coerced."""

    access_token: StrictStr
    refresh_token: StrictStr
    expires_in: int | None = None


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int | None = None
    # Full decoded response, for provider-specific extras (e.g. Discord's guild)
    raw: dict[str, Any] = field(default_factory=dict)


class TokenStatus(StrEnum):
    VALID = "valid"
    INVALID = "invalid"
    UNKNOWN = "unknown"


@dataclass
class AccountIdentity:
    external_id: str
    username: str


class CallbackQuery(BaseModel):
    """Successful authorization redirect."""

    model_config = ConfigDict(extra="ignore")

    state: StrictStr = Field(min_length=1)
    code: StrictStr = Field(min_length=1)


class ProviderErrorQuery(BaseModel):
    """Redirect sent when the user denies consent or the provider fails."""

    model_config = ConfigDict(extra="ignore")

    state: StrictStr = Field(min_length=1)
    error: StrictStr = Field(min_length=1)
    error_description: str | None = None


class OAuthClient:
    """Base client for one identity provider.

    Manages a shared httpx client for connection reuse. Pass ``http`` to
    inject a preconfigured client (tests use ``httpx.MockTransport``).
    """

    platform: ClassVar[Platform]
    display_name: ClassVar[str]
    AUTHORIZE_URL: ClassVar[str]
    TOKEN_URL: ClassVar[str]
    VALIDATE_URL: ClassVar[str]
    SCOPES: ClassVar[list[str]]
    CALLBACK_MODEL: ClassVar[type[CallbackQuery]] = CallbackQuery

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        api_url: str,
        *,
        timeout: float = 10.0,
        http: httpx.AsyncClient | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_url = api_url.rstrip("/")

        self._http = http or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        """Close the shared HTTP client. Call on app shutdown."""
        await self._http.aclose()

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @property
    def redirect_uri(self) -> str:
        """Callback URI; the code exchange must send exactly the same value."""
        return f"{self.api_url}/{self.platform}/callback"

    # ------------------------------------------------------------------
    # Provider hooks
    # ------------------------------------------------------------------

    def _extra_authorize_params(self) -> dict[str, str]:
        return {}

    def _validation_headers(self, access_token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    async def identify(self, tokens: TokenPair, query: CallbackQuery) -> AccountIdentity:
        """Resolve the external account a fresh token pair belongs to."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # OAuth flow
    # ------------------------------------------------------------------

    def generate_oauth_url(self, state: str) -> str:
        """Build the authorization URL the user is redirected to."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.SCOPES),
            **self._extra_authorize_params(),
            "state": state,
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params, quote_via=quote)}"

    async def exchange_code(self, code: str) -> TokenPair:
        """Trade an authorization code for an access/refresh token pair."""
        return await self._request_tokens(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
            }
        )

    async def refresh_tokens(self, refresh_token: str) -> TokenPair:
        """Trade a refresh token for a new token pair."""
        return await self._request_tokens(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )

    async def _request_tokens(self, data: dict[str, str]) -> TokenPair:
        payload = {"client_id": self.client_id, "client_secret": self.client_secret, **data}
        grant = data["grant_type"]

        try:
            response = await self._http.post(
                self.TOKEN_URL,
                data=payload,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as e:
            logger.error(f"{self.display_name} token request ({grant}) failed: {type(e).__name__}")
            raise ServiceError(
                ErrorKind.PROVIDER_UNAVAILABLE, f"{self.display_name} could not be reached."
            ) from e

        if response.status_code != 200:
            logger.error(f"{self.display_name} token request ({grant}) failed: {response.status_code}")
            logger.debug(f"Response: {response.text}")
            raise ServiceError(
                ErrorKind.PROVIDER_PROTOCOL,
                f"{self.display_name} token endpoint returned HTTP {response.status_code}",
            )

        return self._parse_tokens(response)

    def _parse_tokens(self, response: httpx.Response) -> TokenPair:
        try:
            data = response.json()
            parsed = TokenResponse.model_validate(data)
        except (ValueError, ValidationError) as e:
            raise ServiceError(
                ErrorKind.PROVIDER_PROTOCOL,
                f"Malformed {self.display_name} token response",
            ) from e

        return TokenPair(
            access_token=parsed.access_token,
            refresh_token=parsed.refresh_token,
            expires_in=parsed.expires_in,
            raw=data,
        )

    # ------------------------------------------------------------------
    # Token validation
    # ------------------------------------------------------------------

    async def validate_token(self, access_token: str) -> TokenStatus:
        """Ask the provider whether an access token is still valid.

        Only a 401 marks the token invalid. Any other failure is UNKNOWN so
        a provider outage never causes a refresh storm.
        """
        try:
            response = await self._http.get(
                self.VALIDATE_URL, headers=self._validation_headers(access_token)
            )
        except httpx.HTTPError as e:
            logger.warning(f"{self.display_name} token validation failed: {type(e).__name__}")
            return TokenStatus.UNKNOWN

        if response.is_success:
            return TokenStatus.VALID
        if response.status_code == 401:
            return TokenStatus.INVALID

        logger.warning(f"{self.display_name} token validation returned {response.status_code}")
        return TokenStatus.UNKNOWN
