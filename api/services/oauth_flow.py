"""OAuth authorization-code flow: redirect, callback, account linking."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

from pydantic import ValidationError

from shared.models.account import LinkedAccount
from shared.repositories.account import AccountRepository

from api.core.errors import ErrorKind, ServiceError
from api.services.oauth_client import CallbackQuery, OAuthClient, ProviderErrorQuery
from api.services.state_store import StateStore

logger = logging.getLogger(__name__)


class FlowState(StrEnum):
    STARTED = "started"
    PENDING_CALLBACK = "pending_callback"
    LINKED = "linked"
    REJECTED = "rejected"
    EXPIRED = "expired"
    ERROR = "error"


_FAILURE_STATES = {
    ErrorKind.PROVIDER_REJECTED: FlowState.REJECTED,
    ErrorKind.EXPIRED_STATE: FlowState.EXPIRED,
}


def failure_state(kind: ErrorKind) -> FlowState:
    """Terminal state of a flow that failed with *kind*."""
    return _FAILURE_STATES.get(kind, FlowState.ERROR)


@dataclass
class FlowResult:
    state: FlowState
    account: LinkedAccount


class OAuthFlowController:
    """Runs flows for one provider.

    A flow is STARTED by :meth:`begin_flow`, which leaves it
    PENDING_CALLBACK until the provider redirects back. The callback ends it
    in exactly one terminal state: LINKED on success, REJECTED when the
    provider reports an error, EXPIRED for a stale state and ERROR for
    everything else. Nothing is persisted unless the flow ends LINKED.
    """

    def __init__(
        self,
        provider: OAuthClient,
        state_store: StateStore,
        accounts: AccountRepository,
    ) -> None:
        self.provider = provider
        self.state_store = state_store
        self.accounts = accounts

    @property
    def platform(self) -> str:
        return self.provider.display_name

    async def begin_flow(self) -> str:
        """Allocate a state and return the provider authorization URL."""
        if not self.provider.is_configured:
            raise ServiceError(
                ErrorKind.NOT_CONFIGURED, f"{self.platform} OAuth is not configured."
            )

        state = await self.state_store.create()
        logger.debug(f"{self.platform} flow {FlowState.PENDING_CALLBACK}")
        return self.provider.generate_oauth_url(state)

    async def handle_callback(self, query: Mapping[str, str]) -> FlowResult:
        """Finish a flow from the provider's redirect query parameters."""
        try:
            result = await self._complete(query)
        except ServiceError as e:
            logger.warning(
                f"{self.platform} flow {failure_state(e.kind)}: {e.kind.name}: {e.message}"
            )
            raise

        account = result.account
        logger.info(f"{self.platform} account linked: {account.username} ({account.external_id})")
        return result

    def _parse_query(self, query: Mapping[str, str]) -> CallbackQuery | ProviderErrorQuery:
        model: type[CallbackQuery] | type[ProviderErrorQuery]
        model = ProviderErrorQuery if "error" in query else self.provider.CALLBACK_MODEL
        try:
            return model.model_validate(dict(query))
        except ValidationError as e:
            raise ServiceError(
                ErrorKind.INVALID_REQUEST, "The query parameters are invalid."
            ) from e

    async def _complete(self, query: Mapping[str, str]) -> FlowResult:
        parsed = self._parse_query(query)

        # Consumed before anything else so a replayed callback cannot proceed
        await self.state_store.consume(parsed.state)

        if isinstance(parsed, ProviderErrorQuery):
            raise ServiceError(
                ErrorKind.PROVIDER_REJECTED, parsed.error_description or parsed.error
            )

        tokens = await self.provider.exchange_code(parsed.code)
        identity = await self.provider.identify(tokens, parsed)

        account = await self.accounts.upsert(
            identity.external_id,
            identity.username,
            tokens.access_token,
            tokens.refresh_token,
        )
        return FlowResult(state=FlowState.LINKED, account=account)
