from __future__ import annotations

import logging

import discord

from ...lobby import LobbyMember, user_uuid_for_discord
from ..common import display_name_of

logger = logging.getLogger("ignore_bot")


class LobbyMixin:
    async def _connect_member(self, author: discord.abc.User) -> tuple[LobbyMember, bool]:
        member = LobbyMember(
            user_id=user_uuid_for_discord(author.id),
            discord_id=int(author.id),
            display_name=display_name_of(author),
        )
        joined = self.lobby.join(member)
        await self.store.upsert_known_user(member.user_id, member.discord_id, member.display_name)
        if joined:
            logger.info("%s (%s) joined the lobby", member.display_name, member.discord_id)
            self._enqueue_prefetch(member.user_id)
        return self.lobby.get(member.user_id) or member, joined

    def _disconnect_member(self, author: discord.abc.User) -> LobbyMember | None:
        user_id = user_uuid_for_discord(author.id)
        member = self.lobby.leave(user_id)
        self.ignore_service.evict_on_disconnect(user_id)
        if member is not None:
            logger.info("%s (%s) left the lobby", member.display_name, member.discord_id)
        return member

    async def _refresh_member_name(self, member: LobbyMember, author: discord.abc.User) -> None:
        name = display_name_of(author)
        if name == member.display_name:
            return
        member.display_name = name
        await self.store.upsert_known_user(member.user_id, member.discord_id, name)

    async def _handle_join(self, message: discord.Message) -> None:
        member, joined = await self._connect_member(message.author)
        if not joined:
            await message.reply("You are already in the lobby.")
            return
        await message.reply(
            f"Welcome, {member.display_name}. You joined the lobby ({len(self.lobby)} online). "
            f"Type `{self.settings.command_prefix}ignore help` for ignore commands."
        )

    async def _handle_leave(self, message: discord.Message) -> None:
        member = self._disconnect_member(message.author)
        if member is None:
            await message.reply("You are not in the lobby.")
            return
        await message.reply("You left the lobby. Your ignore list is kept for next time.")
