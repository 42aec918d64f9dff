"""Plain-SQL migration runner with a tracking table."""

from __future__ import annotations

import logging
from pathlib import Path

import asyncpg

logger = logging.getLogger(__name__)

VERSIONS_DIR = Path(__file__).resolve().parent / "versions"


class MigrationRunner:
    """Apply ``versions/NNN_description.sql`` files in filename order.

    Each applied version is recorded in ``schema_migrations`` and never
    re-applied. A migration and its tracking row commit in one transaction.
    """

    TRACKING_TABLE = "schema_migrations"

    def __init__(self, pool: asyncpg.Pool, versions_dir: Path | None = None) -> None:
        self.pool = pool
        self.versions_dir = versions_dir or VERSIONS_DIR

    async def ensure_table(self) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.TRACKING_TABLE} (
                    version    TEXT PRIMARY KEY,
                    name       TEXT NOT NULL,
                    applied_at TIMESTAMPTZ DEFAULT NOW()
                )
                """
            )

    async def get_applied(self) -> set[str]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(f"SELECT version FROM {self.TRACKING_TABLE}")  # noqa: S608
            return {row["version"] for row in rows}

    def pending(self, applied: set[str]) -> list[Path]:
        """SQL files not yet recorded as applied, in version order."""
        return [p for p in sorted(self.versions_dir.glob("*.sql")) if p.stem not in applied]

    async def run_pending(self) -> list[str]:
        """Apply all pending migrations and return their versions."""
        await self.ensure_table()
        to_apply = self.pending(await self.get_applied())

        if not to_apply:
            logger.info("Database schema is up to date")
            return []

        for sql_path in to_apply:
            await self._apply_one(sql_path)

        versions = [p.stem for p in to_apply]
        logger.info(f"Applied {len(versions)} migration(s): {', '.join(versions)}")
        return versions

    async def _apply_one(self, sql_path: Path) -> None:
        version = sql_path.stem
        logger.info(f"Applying migration: {version}")
        sql = sql_path.read_text(encoding="utf-8")
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(sql)
                await conn.execute(
                    f"INSERT INTO {self.TRACKING_TABLE} (version, name) VALUES ($1, $2)",
                    version,
                    sql_path.name,
                )
