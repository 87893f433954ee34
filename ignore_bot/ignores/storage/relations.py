from __future__ import annotations

import uuid
from typing import Set

import aiosqlite

from .utils import RemovalResult, _parse_uuid, _uuid_key, logger


class IgnoreRelationsMixin:
    async def add(self, actor: uuid.UUID, target: uuid.UUID) -> bool:
        async with self._write_lock:
            try:
                await self.db.execute(
                    """
                    INSERT INTO ignore_list (actor_id, target_id, created_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(actor_id, target_id) DO UPDATE SET
                        created_at = CURRENT_TIMESTAMP
                    """,
                    (_uuid_key(actor), _uuid_key(target)),
                )
                await self.db.commit()
            except aiosqlite.Error as exc:
                await self._rollback_quietly()
                logger.error("Failed to add ignore actor=%s target=%s: %s", actor, target, exc)
                return False
        return True

    async def remove(self, actor: uuid.UUID, target: uuid.UUID) -> RemovalResult:
        async with self._write_lock:
            try:
                cursor = await self.db.execute(
                    "DELETE FROM ignore_list WHERE actor_id = ? AND target_id = ?",
                    (_uuid_key(actor), _uuid_key(target)),
                )
                deleted = cursor.rowcount
                await cursor.close()
                await self.db.commit()
            except aiosqlite.Error as exc:
                await self._rollback_quietly()
                logger.error("Failed to remove ignore actor=%s target=%s: %s", actor, target, exc)
                return RemovalResult.FAILED
        return RemovalResult.REMOVED if deleted > 0 else RemovalResult.NOT_FOUND

    async def exists(self, actor: uuid.UUID, target: uuid.UUID) -> bool:
        try:
            async with self.db.execute(
                "SELECT 1 FROM ignore_list WHERE actor_id = ? AND target_id = ? LIMIT 1",
                (_uuid_key(actor), _uuid_key(target)),
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            logger.error("Failed to check ignore actor=%s target=%s: %s", actor, target, exc)
            return False
        return row is not None

    async def fetch_targets(self, actor: uuid.UUID) -> Set[uuid.UUID] | None:
        """Every target ``actor`` ignores, or ``None`` when the read failed."""
        try:
            async with self.db.execute(
                "SELECT target_id FROM ignore_list WHERE actor_id = ?",
                (_uuid_key(actor),),
            ) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            logger.error("Failed to list ignores for actor=%s: %s", actor, exc)
            return None

        targets: Set[uuid.UUID] = set()
        for row in rows:
            target = _parse_uuid(row[0])
            if target is None:
                logger.warning("Skipping malformed ignore target %r for actor=%s", row[0], actor)
                continue
            targets.add(target)
        return targets

    async def list_targets(self, actor: uuid.UUID) -> Set[uuid.UUID]:
        targets = await self.fetch_targets(actor)
        return targets if targets is not None else set()

    async def count(self, actor: uuid.UUID) -> int:
        try:
            async with self.db.execute(
                "SELECT COUNT(*) FROM ignore_list WHERE actor_id = ?",
                (_uuid_key(actor),),
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            logger.error("Failed to count ignores for actor=%s: %s", actor, exc)
            return 0
        return int(row[0]) if row else 0

    async def _rollback_quietly(self) -> None:
        try:
            await self.db.rollback()
        except aiosqlite.Error as exc:
            logger.warning("Rollback failed on ignore store: %s", exc)
