"""Periodic validation and refresh of stored access tokens."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from shared.models.account import LinkedAccount
from shared.repositories.account import AccountRepository

from api.core.errors import ServiceError
from api.services.oauth_client import OAuthClient, TokenStatus
from api.services.state_store import StateStore

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    platform: str
    invalid: int = 0
    refreshed: list[str] = field(default_factory=list)
    disabled: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class TokenSweeper:
    """Verify and refresh the enabled accounts of one provider.

    Every account is handled independently: an exception for one is logged
    and never stops the others.
    """

    def __init__(
        self,
        provider: OAuthClient,
        accounts: AccountRepository,
        *,
        dev_mode: bool = False,
    ) -> None:
        self.provider = provider
        self.accounts = accounts
        self.dev_mode = dev_mode

    @property
    def platform(self) -> str:
        return self.provider.display_name

    async def _needs_refresh(self, account: LinkedAccount) -> bool:
        status = await self.provider.validate_token(account.access_token)
        if status is TokenStatus.UNKNOWN:
            logger.warning(f"{self.platform} token of {account.external_id} not verified, skipping")
        return status is TokenStatus.INVALID

    async def verify_tokens(self) -> list[LinkedAccount]:
        """Return the enabled accounts whose access token the provider rejects (401)."""
        accounts = await self.accounts.list_enabled()
        results = await asyncio.gather(
            *(self._needs_refresh(account) for account in accounts),
            return_exceptions=True,
        )

        invalid = []
        for account, result in zip(accounts, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(
                    f"{self.platform} token check for {account.external_id} crashed: "
                    f"{type(result).__name__}: {result}"
                )
            elif result:
                invalid.append(account)
        return invalid

    async def refresh_token(self, account: LinkedAccount) -> LinkedAccount:
        """Refresh one account's token pair.

        On failure the account is disabled, except in development mode where
        it is returned untouched.
        """
        try:
            tokens = await self.provider.refresh_tokens(account.refresh_token)
        except ServiceError as e:
            logger.warning(
                f"{self.platform} token refresh failed for {account.external_id}: "
                f"{e.kind.name}: {e.message}"
            )
            if self.dev_mode:
                logger.info(f"Development mode: leaving {account.external_id} enabled")
                return account

            disabled = await self.accounts.set_enabled(account.external_id, False)
            logger.warning(f"{self.platform} account {account.external_id} disabled")
            return disabled or account

        updated = await self.accounts.update_tokens(
            account.external_id, tokens.access_token, tokens.refresh_token
        )
        if updated is None:
            # Deleted while the refresh was in flight
            logger.info(f"{self.platform} account {account.external_id} vanished during refresh")
            return account

        logger.debug(f"{self.platform} token refreshed for {account.external_id}")
        return updated

    async def sweep(self) -> SweepReport:
        """One verify-then-refresh pass over all enabled accounts."""
        report = SweepReport(platform=self.platform)
        invalid = await self.verify_tokens()
        report.invalid = len(invalid)

        results = await asyncio.gather(
            *(self.refresh_token(account) for account in invalid),
            return_exceptions=True,
        )
        for account, result in zip(invalid, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(
                    f"{self.platform} refresh of {account.external_id} crashed: "
                    f"{type(result).__name__}: {result}"
                )
                report.failed.append(account.external_id)
            elif result.enabled and result.access_token != account.access_token:
                report.refreshed.append(account.external_id)
            elif not result.enabled:
                report.disabled.append(account.external_id)
            else:
                report.failed.append(account.external_id)
        return report


class TokenSweepScheduler:
    """Runs a sweep for every provider once at start, then on a fixed interval.

    Cycles never overlap: a firing while the previous cycle still runs is
    skipped.
    """

    def __init__(
        self,
        sweepers: Sequence[TokenSweeper],
        state_store: StateStore | None = None,
        interval: float = 3600,
    ) -> None:
        self.sweepers = list(sweepers)
        self.state_store = state_store
        self.interval = interval
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def run_cycle(self) -> list[SweepReport]:
        """Purge expired states, then sweep every provider concurrently."""
        if self._running:
            logger.warning("Token sweep still running, skipping this cycle")
            return []

        self._running = True
        try:
            if self.state_store is not None:
                try:
                    await self.state_store.purge_expired()
                except Exception as e:
                    logger.error(f"Purging expired states failed: {type(e).__name__}: {e}")

            results = await asyncio.gather(
                *(sweeper.sweep() for sweeper in self.sweepers),
                return_exceptions=True,
            )

            reports = []
            for sweeper, result in zip(self.sweepers, results, strict=True):
                if isinstance(result, BaseException):
                    logger.error(
                        f"{sweeper.platform} token sweep failed: {type(result).__name__}: {result}"
                    )
                    continue
                logger.info(
                    f"{result.platform} token sweep: {result.invalid} invalid, "
                    f"{len(result.refreshed)} refreshed, {len(result.disabled)} disabled, "
                    f"{len(result.failed)} failed"
                )
                reports.append(result)
            return reports
        finally:
            self._running = False

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Token sweep cycle crashed: {e}")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Token sweep started (interval={self.interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Token sweep stopped")
