from __future__ import annotations

import uuid

import aiosqlite

from .utils import _uuid_key, logger


class KnownUsersMixin:
    async def upsert_known_user(self, user_id: uuid.UUID, discord_id: int, display_name: str) -> bool:
        name = " ".join((display_name or "").split()) or "unknown"
        async with self._write_lock:
            try:
                await self.db.execute(
                    """
                    INSERT INTO known_users (user_id, discord_id, display_name, first_seen, updated_at)
                    VALUES (?, ?, ?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
                    ON CONFLICT(user_id) DO UPDATE SET
                        discord_id = excluded.discord_id,
                        display_name = excluded.display_name,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (_uuid_key(user_id), str(discord_id), name),
                )
                await self.db.commit()
            except aiosqlite.Error as exc:
                await self._rollback_quietly()
                logger.error("Failed to record known user %s (%s): %s", user_id, discord_id, exc)
                return False
        return True

    async def get_display_name(self, user_id: uuid.UUID) -> str | None:
        try:
            async with self.db.execute(
                "SELECT display_name FROM known_users WHERE user_id = ?",
                (_uuid_key(user_id),),
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            logger.error("Failed to resolve display name for %s: %s", user_id, exc)
            return None
        if row is None:
            return None
        name = str(row[0] or "").strip()
        return name or None
