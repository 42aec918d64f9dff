"""Repository for the oauth_states table."""

from __future__ import annotations

from datetime import datetime

import asyncpg

from shared.models.state import OAuthState


class StateRepository:
    """Pure SQL operations for OAuth state nonces."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def create(self, value: str) -> OAuthState:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "INSERT INTO oauth_states (value) VALUES ($1) RETURNING value, created_at",
                value,
            )
            return OAuthState(**dict(row))

    async def pop(self, value: str) -> OAuthState | None:
        """Delete a state and return it, or None if it does not exist.

        A single DELETE ... RETURNING, so of two concurrent callers only one
        gets the row back.
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "DELETE FROM oauth_states WHERE value = $1 RETURNING value, created_at",
                value,
            )
            if not row:
                return None
            return OAuthState(**dict(row))

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Delete states created before *cutoff*. Returns the number removed."""
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM oauth_states WHERE created_at < $1",
                cutoff,
            )
            # asyncpg returns the command tag, e.g. "DELETE 3"
            return int(result.split()[-1])
