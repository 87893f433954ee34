from __future__ import annotations

import re
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List

from .ignores.store import IgnoreStore

DISCORD_USER_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "https://discord.com/users")

_MENTION_RE = re.compile(r"^<@!?(\d+)>$")


def user_uuid_for_discord(discord_id: int) -> uuid.UUID:
    return uuid.uuid5(DISCORD_USER_NAMESPACE, f"discord:{int(discord_id)}")


@dataclass(slots=True)
class LobbyMember:
    user_id: uuid.UUID
    discord_id: int
    display_name: str
    joined_at: float = field(default_factory=time.monotonic)


class Lobby:
    """Users currently connected to the relay, plus name lookup for everyone ever seen."""

    def __init__(self, store: IgnoreStore) -> None:
        self.store = store
        self._members: Dict[uuid.UUID, LobbyMember] = {}

    def join(self, member: LobbyMember) -> bool:
        existing = self._members.get(member.user_id)
        if existing is not None:
            existing.display_name = member.display_name
            return False
        self._members[member.user_id] = member
        return True

    def leave(self, user_id: uuid.UUID) -> LobbyMember | None:
        return self._members.pop(user_id, None)

    def get(self, user_id: uuid.UUID) -> LobbyMember | None:
        return self._members.get(user_id)

    def members(self) -> List[LobbyMember]:
        return list(self._members.values())

    def __len__(self) -> int:
        return len(self._members)

    def find_online(self, query: str) -> LobbyMember | None:
        """Match an online member by mention, exact name, or unique name prefix (case-insensitive)."""
        text = (query or "").strip()
        if not text:
            return None
        mention = _MENTION_RE.match(text)
        if mention:
            return self._members.get(user_uuid_for_discord(int(mention.group(1))))

        wanted = text.casefold()
        prefixed: List[LobbyMember] = []
        for member in self._members.values():
            name = member.display_name.casefold()
            if name == wanted:
                return member
            if name.startswith(wanted):
                prefixed.append(member)
        if len(prefixed) == 1:
            return prefixed[0]
        return None

    def is_online(self, user_id: uuid.UUID) -> bool:
        return user_id in self._members

    async def resolve_name(self, user_id: uuid.UUID) -> str | None:
        member = self._members.get(user_id)
        if member is not None:
            return member.display_name
        return await self.store.get_display_name(user_id)
