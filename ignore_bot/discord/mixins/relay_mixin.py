from __future__ import annotations

import asyncio
import logging

import discord

from ...filters import WhisperAttempt, filter_recipients
from ...lobby import LobbyMember, user_uuid_for_discord
from ..common import chunk_text, collapse_spaces

logger = logging.getLogger("ignore_bot")


class RelayMixin:
    async def _send_dm(self, member: LobbyMember, text: str) -> bool:
        try:
            user = self.get_user(member.discord_id) or await self.fetch_user(member.discord_id)
            for chunk in chunk_text(text, 1900):
                await user.send(chunk)
        except discord.Forbidden:
            logger.warning("Cannot DM %s (%s): direct messages are closed", member.display_name, member.discord_id)
            return False
        except discord.HTTPException as exc:
            logger.warning("DM to %s (%s) failed: %s", member.display_name, member.discord_id, exc)
            return False
        return True

    async def _relay_chat(self, message: discord.Message) -> None:
        sender = self.lobby.get(user_uuid_for_discord(message.author.id))
        if sender is None:
            await message.reply(f"Join the lobby with `{self.settings.command_prefix}join` to chat.")
            return
        text = collapse_spaces(message.content)
        if not text:
            return
        await self._refresh_member_name(sender, message.author)

        others = [member for member in self.lobby.members() if member.user_id != sender.user_id]
        recipients = await filter_recipients(
            self.ignore_service,
            sender.user_id,
            others,
            key=lambda member: member.user_id,
        )
        if not recipients:
            return
        line = f"**{sender.display_name}**: {text}"
        await asyncio.gather(*(self._send_dm(member, line) for member in recipients))

    async def _handle_whisper(self, message: discord.Message, attempt: WhisperAttempt) -> None:
        sender = self.lobby.get(user_uuid_for_discord(message.author.id))
        if sender is None:
            await message.reply(f"Join the lobby with `{self.settings.command_prefix}join` to whisper.")
            return
        target = self.lobby.find_online(attempt.target_name)
        if target is None:
            await message.reply(f"User not found: {attempt.target_name}")
            return

        notice = await self.whisper_guard.check(sender.user_id, target.user_id, target.display_name)
        if notice is not None:
            await message.reply(notice)
            return

        body = collapse_spaces(attempt.body)
        if not await self._send_dm(target, f"[whisper from {sender.display_name}] {body}"):
            await message.reply(f"Could not deliver your whisper to {target.display_name}.")
            return
        await message.reply(f"[whisper to {target.display_name}] {body}")

    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return
        # The lobby lives in direct messages with the bot.
        if message.guild is not None:
            return
        if await self._try_handle_command(message):
            return

        attempt = self.whisper_guard.parse(message.content)
        if attempt is not None:
            await self._handle_whisper(message, attempt)
            return

        prefix = self.settings.command_prefix
        if collapse_spaces(message.content).startswith(prefix):
            await message.reply(f"Unknown command. Try `{prefix}ignore help`.")
            return

        try:
            await self._relay_chat(message)
        except Exception as exc:
            logger.exception("Relay failed for %s: %s", message.author.id, exc)
