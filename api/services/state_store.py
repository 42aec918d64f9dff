"""Single-use OAuth state tokens (CSRF nonces)."""

import logging
import secrets
from datetime import UTC, datetime, timedelta

from shared.repositories.state import StateRepository

from api.core.errors import ErrorKind, ServiceError

logger = logging.getLogger(__name__)

STATE_TTL = timedelta(minutes=10)


class StateStore:
    """Create and consume the ``state`` values round-tripped through OAuth redirects.

    A state is valid for ``ttl`` after creation and can be consumed once.
    Consumption deletes the row in the same statement that reads it, so a
    replayed ``state`` fails even when both callbacks arrive concurrently.
    """

    def __init__(self, repo: StateRepository, ttl: timedelta = STATE_TTL) -> None:
        self.repo = repo
        self.ttl = ttl

    async def create(self) -> str:
        """Generate a random state (160 bits, hex-encoded) and persist it."""
        value = secrets.token_hex(20)
        await self.repo.create(value)
        return value

    async def consume(self, value: str) -> datetime:
        """Consume a state and return its creation time.

        Raises INVALID_STATE if the state does not exist (or was already
        used) and EXPIRED_STATE if it outlived the TTL. Either way the state
        no longer exists afterwards.
        """
        state = await self.repo.pop(value)
        if state is None:
            raise ServiceError(ErrorKind.INVALID_STATE, "The 'state' query parameter is invalid.")

        age = datetime.now(UTC) - state.created_at
        if age > self.ttl:
            logger.info(f"Rejected expired OAuth state (age={int(age.total_seconds())}s)")
            raise ServiceError(
                ErrorKind.EXPIRED_STATE, "This session has expired, please try again."
            )

        return state.created_at

    async def purge_expired(self) -> int:
        """Delete states older than the TTL (abandoned flows)."""
        removed = await self.repo.delete_older_than(datetime.now(UTC) - self.ttl)
        if removed:
            logger.debug(f"Purged {removed} expired OAuth state(s)")
        return removed
