"""Repository for commands and variables tables."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import asyncpg

from shared.models.command import Command, Variable

logger = logging.getLogger(__name__)

_CMD_COLUMNS = "id, channel_id, keyword, content, enabled, created_at, updated_at"
_VAR_COLUMNS = "id, command_id, name, value"


class VariableOutOfRangeError(ValueError):
    """An update would push a variable outside the INTEGER column range."""


class CommandRepository:
    """Pure SQL operations for commands and the variables they own."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    # ==================== Helpers ====================

    @staticmethod
    async def _load_variables(
        conn: asyncpg.Connection, command_ids: list[int]
    ) -> dict[int, list[Variable]]:
        by_command: dict[int, list[Variable]] = {cid: [] for cid in command_ids}
        if not command_ids:
            return by_command
        rows = await conn.fetch(
            f"SELECT {_VAR_COLUMNS} FROM variables "
            "WHERE command_id = ANY($1::int[]) ORDER BY id",
            command_ids,
        )
        for row in rows:
            by_command[row["command_id"]].append(Variable(**dict(row)))
        return by_command

    async def _fetch_one(
        self, conn: asyncpg.Connection, channel_id: str, keyword: str
    ) -> Command | None:
        row = await conn.fetchrow(
            f"SELECT {_CMD_COLUMNS} FROM commands WHERE channel_id = $1 AND keyword = $2",
            channel_id,
            keyword,
        )
        if not row:
            return None
        variables = await self._load_variables(conn, [row["id"]])
        return Command(**dict(row), variables=variables[row["id"]])

    @staticmethod
    async def _insert_variables(
        conn: asyncpg.Connection, command_id: int, names: Iterable[str]
    ) -> None:
        args = [(command_id, name) for name in names]
        if not args:
            return
        await conn.executemany(
            "INSERT INTO variables (command_id, name) VALUES ($1, $2) "
            "ON CONFLICT (command_id, name) DO NOTHING",
            args,
        )

    # ==================== Commands ====================

    async def get(self, channel_id: str, keyword: str) -> Command | None:
        """Get a command with its variables."""
        async with self.pool.acquire() as conn:
            return await self._fetch_one(conn, channel_id, keyword)

    async def list_by_channel(
        self,
        channel_id: str,
        *,
        limit: int = 10,
        offset: int = 0,
        include_disabled: bool = False,
    ) -> list[Command]:
        """List a channel's commands ordered by keyword, with their variables."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {_CMD_COLUMNS} FROM commands
                WHERE channel_id = $1 AND ($2 OR enabled = TRUE)
                ORDER BY keyword
                LIMIT $3 OFFSET $4
                """,
                channel_id,
                include_disabled,
                limit,
                offset,
            )
            variables = await self._load_variables(conn, [r["id"] for r in rows])
            return [Command(**dict(r), variables=variables[r["id"]]) for r in rows]

    async def create(
        self,
        channel_id: str,
        keyword: str,
        content: str,
        variable_names: Iterable[str],
    ) -> Command | None:
        """Insert a command and its variables in one transaction.

        Returns None when (channel_id, keyword) already exists.
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO commands (channel_id, keyword, content)
                    VALUES ($1, $2, $3)
                    ON CONFLICT (channel_id, keyword) DO NOTHING
                    RETURNING {_CMD_COLUMNS}
                    """,
                    channel_id,
                    keyword,
                    content,
                )
                if not row:
                    return None
                await self._insert_variables(conn, row["id"], variable_names)
                return await self._fetch_one(conn, channel_id, keyword)

    async def update(
        self,
        command: Command,
        content: str,
        *,
        create: Iterable[str] = (),
        delete: Iterable[str] = (),
    ) -> Command:
        """Replace a command's content and apply a variable diff atomically."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(
                    "UPDATE commands SET content = $2, updated_at = NOW() WHERE id = $1",
                    command.id,
                    content,
                )
                to_delete = list(delete)
                if to_delete:
                    await conn.execute(
                        "DELETE FROM variables WHERE command_id = $1 AND name = ANY($2::text[])",
                        command.id,
                        to_delete,
                    )
                await self._insert_variables(conn, command.id, create)
                updated = await self._fetch_one(conn, command.channel_id, command.keyword)
                assert updated is not None
                return updated

    async def set_enabled(
        self, channel_id: str, keyword: str, enabled: bool | None
    ) -> Command | None:
        """Set ``enabled`` to the given value, or invert it when *enabled* is None."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                UPDATE commands SET enabled = COALESCE($3, NOT enabled), updated_at = NOW()
                WHERE channel_id = $1 AND keyword = $2
                RETURNING id
                """,
                channel_id,
                keyword,
                enabled,
            )
            if not row:
                return None
            return await self._fetch_one(conn, channel_id, keyword)

    async def delete(self, channel_id: str, keyword: str) -> Command | None:
        """Delete a command (variables cascade) and return it as it was."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                existing = await self._fetch_one(conn, channel_id, keyword)
                if existing is None:
                    return None
                await conn.execute("DELETE FROM commands WHERE id = $1", existing.id)
                return existing

    # ==================== Variables ====================

    async def set_variable(self, command_id: int, name: str, value: int) -> Variable | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE variables SET value = $3
                WHERE command_id = $1 AND name = $2
                RETURNING {_VAR_COLUMNS}
                """,
                command_id,
                name,
                value,
            )
            return Variable(**dict(row)) if row else None

    async def increment_variable(self, command_id: int, name: str, delta: int) -> Variable | None:
        """Atomically add *delta* (may be negative) to a variable."""
        async with self.pool.acquire() as conn:
            try:
                row = await conn.fetchrow(
                    f"""
                    UPDATE variables SET value = value + $3
                    WHERE command_id = $1 AND name = $2
                    RETURNING {_VAR_COLUMNS}
                    """,
                    command_id,
                    name,
                    delta,
                )
            except asyncpg.NumericValueOutOfRangeError as e:
                raise VariableOutOfRangeError(f"Variable '{name}' would overflow") from e
            return Variable(**dict(row)) if row else None
