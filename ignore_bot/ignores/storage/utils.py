from __future__ import annotations

import enum
import logging
import os
import uuid
from pathlib import Path

import aiosqlite

logger = logging.getLogger("ignore_bot")


def _sqlite_busy_timeout_ms() -> int:
    raw = os.getenv("IGNORE_SQLITE_BUSY_TIMEOUT_MS", "5000").strip()
    try:
        timeout = int(raw)
    except ValueError:
        timeout = 5000
    return max(0, min(timeout, 60000))


async def _open_sqlite_connection(db_path: str | Path, *, busy_timeout_ms: int | None = None) -> aiosqlite.Connection:
    db = await aiosqlite.connect(db_path)
    try:
        await db.execute("PRAGMA journal_mode=WAL")
        await db.execute("PRAGMA synchronous=FULL")
        timeout_ms = _sqlite_busy_timeout_ms() if busy_timeout_ms is None else max(0, min(busy_timeout_ms, 60000))
        if timeout_ms > 0:
            await db.execute(f"PRAGMA busy_timeout={timeout_ms}")
    except Exception:
        await db.close()
        raise
    return db


def _uuid_key(value: uuid.UUID) -> str:
    return str(value)


def _parse_uuid(raw: object) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(raw))
    except (TypeError, ValueError):
        return None


class RemovalResult(enum.Enum):
    """Outcome of deleting one ignore relation."""

    REMOVED = "removed"
    NOT_FOUND = "not_found"
    FAILED = "failed"

    @property
    def ok(self) -> bool:
        return self is not RemovalResult.FAILED
