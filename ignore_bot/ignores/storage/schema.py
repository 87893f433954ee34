from __future__ import annotations

import asyncio
import os
from pathlib import Path

import aiosqlite

from .utils import _open_sqlite_connection, logger


class IgnoreSchemaMixin:
    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path, *, busy_timeout_ms: int | None = None) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.busy_timeout_ms = busy_timeout_ms
        self._db: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    @staticmethod
    def _allow_destructive_reset_on_mismatch() -> bool:
        raw = os.getenv("IGNORE_SQLITE_RESET_ON_SCHEMA_MISMATCH", "")
        return raw.strip().lower() in {"1", "true", "yes", "y", "on"}

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("IgnoreStore.init() must be awaited before use")
        return self._db

    async def _has_user_tables(self, db: aiosqlite.Connection) -> bool:
        async with db.execute(
            """
            SELECT 1
            FROM sqlite_master
            WHERE type = 'table'
              AND name NOT LIKE 'sqlite_%'
            LIMIT 1
            """
        ) as cursor:
            row = await cursor.fetchone()
        return bool(row)

    async def init(self) -> None:
        if self._db is None:
            self._db = await _open_sqlite_connection(self.db_path, busy_timeout_ms=self.busy_timeout_ms)
        db = self._db
        try:
            async with db.execute("PRAGMA user_version") as cursor:
                row = await cursor.fetchone()
            version = int(row[0]) if row else 0
            has_tables = await self._has_user_tables(db)

            if version > self.SCHEMA_VERSION:
                if has_tables and self._allow_destructive_reset_on_mismatch():
                    logger.warning(
                        "Resetting ignore schema (found user_version=%s, supported=%s)",
                        version,
                        self.SCHEMA_VERSION,
                    )
                    await self._reset_schema(db)
                    await db.execute(f"PRAGMA user_version = {self.SCHEMA_VERSION}")
                    await db.commit()
                    return
                raise RuntimeError(
                    "SQLite schema version mismatch detected (database is newer than this bot build). "
                    f"Found user_version={version}, supported={self.SCHEMA_VERSION}. "
                    "Set IGNORE_SQLITE_RESET_ON_SCHEMA_MISMATCH=1 to allow destructive reset."
                )

            await self._create_schema(db)
            if version != self.SCHEMA_VERSION:
                await db.execute(f"PRAGMA user_version = {self.SCHEMA_VERSION}")
            await db.commit()
        except Exception:
            await self.close()
            raise
        logger.info("Ignore store ready at %s", self.db_path)

    async def close(self) -> None:
        db, self._db = self._db, None
        if db is None:
            return
        try:
            await db.close()
        except aiosqlite.Error as exc:
            logger.error("Failed to close ignore store %s: %s", self.db_path, exc)

    async def _reset_schema(self, db: aiosqlite.Connection) -> None:
        for table in ("ignore_list", "known_users"):
            await db.execute(f"DROP TABLE IF EXISTS {table}")
        await self._create_schema(db)

    async def _create_schema(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS ignore_list (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                actor_id TEXT NOT NULL,
                target_id TEXT NOT NULL,
                created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(actor_id, target_id)
            )
            """
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_ignore_list_actor ON ignore_list(actor_id)")
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS known_users (
                user_id TEXT PRIMARY KEY,
                discord_id TEXT NOT NULL,
                display_name TEXT NOT NULL,
                first_seen DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
                updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
