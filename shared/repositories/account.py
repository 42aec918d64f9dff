"""Repository for linked accounts (channels and guilds tables)."""

from __future__ import annotations

import asyncio
import logging

import asyncpg

from shared.cache import AsyncTTLCache, cached
from shared.models.account import LinkedAccount, Platform

logger = logging.getLogger(__name__)

_COLUMNS = (
    "external_id, username, access_token, refresh_token, "
    "enabled, registered_at, last_refresh"
)


def escape_like(value: str) -> str:
    """Make LIKE wildcards in *value* match literally (used with ESCAPE '\\')."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def _retry_on_db_error(func, max_retries: int = 2):
    """Retry helper for idempotent write operations."""
    for attempt in range(1, max_retries + 1):
        try:
            return await func()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if attempt >= max_retries:
                logger.exception(f"DB operation failed after {max_retries} attempts")
                raise
            delay = 0.5 * attempt
            logger.warning(
                f"DB operation attempt {attempt}/{max_retries} failed: {type(e).__name__}, "
                f"retrying in {delay}s..."
            )
            await asyncio.sleep(delay)


class AccountRepository:
    """Pure SQL operations for one platform's linked accounts.

    Twitch accounts live in ``channels``, Discord accounts in ``guilds``;
    both tables share the same columns.
    """

    def __init__(self, pool: asyncpg.Pool, platform: Platform) -> None:
        self.pool = pool
        self.platform = platform
        self.table = platform.table
        self.cache = AsyncTTLCache(maxsize=256, ttl=300)

    def _invalidate(self, external_id: str) -> None:
        self.cache.invalidate(f"{self.table}:{external_id}")

    @cached(key_func=lambda self, external_id: f"{self.table}:{external_id}")
    async def get(self, external_id: str) -> LinkedAccount | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM {self.table} WHERE external_id = $1",
                external_id,
            )
            if not row:
                return None
            return LinkedAccount(**dict(row))

    async def list_enabled(self) -> list[LinkedAccount]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_COLUMNS} FROM {self.table} WHERE enabled = TRUE"
            )
            return [LinkedAccount(**dict(r)) for r in rows]

    async def search(
        self,
        query: str = "",
        *,
        limit: int = 10,
        offset: int = 0,
        include_disabled: bool = False,
    ) -> list[LinkedAccount]:
        """Case-insensitive username substring search, ordered by username."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {_COLUMNS} FROM {self.table}
                WHERE ($2 OR enabled = TRUE)
                  AND username ILIKE '%' || $1 || '%' ESCAPE '\\'
                ORDER BY username, external_id
                LIMIT $3 OFFSET $4
                """,
                escape_like(query),
                include_disabled,
                limit,
                offset,
            )
            return [LinkedAccount(**dict(r)) for r in rows]

    async def upsert(
        self,
        external_id: str,
        username: str,
        access_token: str,
        refresh_token: str,
    ) -> LinkedAccount:
        """Insert a new enabled account, or re-enable an existing one with new credentials."""

        async def _query():
            async with self.pool.acquire() as conn:
                return await conn.fetchrow(
                    f"""
                    INSERT INTO {self.table} (external_id, username, access_token, refresh_token)
                    VALUES ($1, $2, $3, $4)
                    ON CONFLICT (external_id) DO UPDATE SET
                        username      = COALESCE(NULLIF(EXCLUDED.username, ''), {self.table}.username),
                        access_token  = EXCLUDED.access_token,
                        refresh_token = EXCLUDED.refresh_token,
                        enabled       = TRUE,
                        last_refresh  = NOW()
                    RETURNING {_COLUMNS}
                    """,
                    external_id,
                    username,
                    access_token,
                    refresh_token,
                )

        row = await _retry_on_db_error(_query)
        self._invalidate(external_id)
        return LinkedAccount(**dict(row))

    async def update_tokens(
        self, external_id: str, access_token: str, refresh_token: str
    ) -> LinkedAccount | None:
        """Store refreshed credentials and stamp last_refresh."""

        async def _query():
            async with self.pool.acquire() as conn:
                return await conn.fetchrow(
                    f"""
                    UPDATE {self.table} SET
                        access_token  = $2,
                        refresh_token = $3,
                        last_refresh  = NOW()
                    WHERE external_id = $1
                    RETURNING {_COLUMNS}
                    """,
                    external_id,
                    access_token,
                    refresh_token,
                )

        row = await _retry_on_db_error(_query)
        self._invalidate(external_id)
        return LinkedAccount(**dict(row)) if row else None

    async def set_enabled(self, external_id: str, enabled: bool | None) -> LinkedAccount | None:
        """Set ``enabled`` to the given value, or invert it when *enabled* is None."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE {self.table} SET enabled = COALESCE($2, NOT enabled)
                WHERE external_id = $1
                RETURNING {_COLUMNS}
                """,
                external_id,
                enabled,
            )
        self._invalidate(external_id)
        return LinkedAccount(**dict(row)) if row else None

    async def delete(self, external_id: str) -> LinkedAccount | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"DELETE FROM {self.table} WHERE external_id = $1 RETURNING {_COLUMNS}",
                external_id,
            )
        self._invalidate(external_id)
        return LinkedAccount(**dict(row)) if row else None
