from __future__ import annotations

from .storage.relations import IgnoreRelationsMixin
from .storage.schema import IgnoreSchemaMixin
from .storage.users import KnownUsersMixin


class IgnoreStore(
    IgnoreSchemaMixin,
    IgnoreRelationsMixin,
    KnownUsersMixin,
):
    """Durable (actor, target) ignore relations plus the display names of users seen in the lobby."""

    backend_name = "sqlite"

    async def ping(self) -> None:
        async with self.db.execute("SELECT 1") as cursor:
            await cursor.fetchone()
