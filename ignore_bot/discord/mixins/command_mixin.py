from __future__ import annotations

import logging

import discord

from ...lobby import user_uuid_for_discord
from ..common import chunk_text, collapse_spaces

logger = logging.getLogger("ignore_bot")


class CommandMixin:
    async def _reply_lines(self, message: discord.Message, lines: list[str]) -> None:
        for chunk in chunk_text("\n".join(lines), 1900):
            await message.reply(chunk)

    async def _try_handle_command(self, message: discord.Message) -> bool:
        raw = collapse_spaces(message.content)
        prefix = self.settings.command_prefix.strip()
        if not raw or not prefix or not raw.startswith(prefix):
            return False

        tokens = raw[len(prefix) :].split()
        if not tokens:
            return False
        name, args = tokens[0].lower(), tokens[1:]

        if name == "join":
            await self._handle_join(message)
            return True
        if name == "leave":
            await self._handle_leave(message)
            return True
        if name == "ignore":
            actor = user_uuid_for_discord(message.author.id)
            try:
                lines = await self.ignore_commands.handle_ignore(actor, args)
            except Exception as exc:
                logger.exception("Ignore command failed for %s: %s", message.author.id, exc)
                lines = ["Something went wrong while updating your ignore list."]
            await self._reply_lines(message, lines)
            return True
        if name == "ignorecache":
            await self._reply_lines(message, self.ignore_commands.handle_cache(int(message.author.id), args))
            return True
        if name in self.settings.whisper_commands and len(args) < 2:
            await message.reply(f"Usage: `{prefix}{name} <user> <message>`")
            return True
        return False
