from __future__ import annotations

import uuid
from typing import List, Sequence

from .config import Settings
from .ignores.service import IgnoreService
from .ignores.storage.utils import RemovalResult, logger
from .lobby import Lobby

IGNORE_SUBCOMMANDS = ("list", "clear", "help")


class IgnoreCommandHandler:
    """Text replies for the ``ignore`` and ``ignorecache`` commands."""

    def __init__(self, settings: Settings, service: IgnoreService, lobby: Lobby) -> None:
        self.settings = settings
        self.service = service
        self.lobby = lobby

    @property
    def _cmd(self) -> str:
        return f"{self.settings.command_prefix}ignore"

    async def handle_ignore(self, actor: uuid.UUID, args: Sequence[str]) -> List[str]:
        if not args:
            return self.usage()

        sub = args[0].lower()
        if sub == "list":
            return await self._list(actor)
        if sub == "clear":
            return await self._clear(actor)
        if sub == "help":
            return self.help()
        return await self._toggle(actor, " ".join(args))

    def handle_cache(self, discord_id: int, args: Sequence[str]) -> List[str]:
        if discord_id not in self.settings.admin_user_ids:
            return ["You are not allowed to use this command."]
        sub = args[0].lower() if args else "stats"
        if sub == "stats":
            return [
                f"Ignore cache: {self.service.cache_size()} loaded actor(s), "
                f"{len(self.lobby)} user(s) in the lobby."
            ]
        if sub == "flush":
            dropped = self.service.flush_cache()
            logger.info("Ignore cache flushed by discord_id=%s (%s entries)", discord_id, dropped)
            return [f"Flushed {dropped} ignore cache entries."]
        return [f"Usage: {self.settings.command_prefix}ignorecache stats|flush"]

    async def _toggle(self, actor: uuid.UUID, target_query: str) -> List[str]:
        target = self.lobby.find_online(target_query)
        if target is None:
            suggestions = [name for name in self.complete(actor, target_query) if name not in IGNORE_SUBCOMMANDS]
            if suggestions:
                return [f"User not found: {target_query}. Online matches: {', '.join(suggestions[:5])}"]
            return [f"User not found: {target_query}"]
        if target.user_id == actor:
            return ["You cannot ignore yourself!"]

        now_ignoring = await self.service.toggle(actor, target.user_id)
        if now_ignoring:
            return [f"Now ignoring {target.display_name}. You will no longer see their messages."]
        return [f"Stopped ignoring {target.display_name}."]

    async def _list(self, actor: uuid.UUID) -> List[str]:
        entries = await self.service.list_formatted(actor)
        if not entries:
            return ["You are not ignoring anyone."]
        return [f"Users you are ignoring ({len(entries)}):", *(f"- {entry}" for entry in entries)]

    async def _clear(self, actor: uuid.UUID) -> List[str]:
        total = await self.service.count(actor)
        if total == 0:
            return ["You are not ignoring anyone."]

        failed = 0
        for target in await self.service.list_targets(actor):
            result = await self.service.remove(actor, target)
            if result is RemovalResult.FAILED:
                failed += 1
        if failed:
            return [f"Ignore list partly cleared; {failed} of {total} entries could not be removed. Try again later."]
        return [f"Ignore list cleared. You are no longer ignoring {total} user(s)."]

    def usage(self) -> List[str]:
        return [
            "Usage:",
            f"  {self._cmd} <user> - ignore or unignore a user",
            f"  {self._cmd} list - show your ignore list",
            f"  {self._cmd} clear - clear your ignore list",
            f"  {self._cmd} help - show help",
        ]

    def help(self) -> List[str]:
        prefix = self.settings.command_prefix
        whisper = f"{prefix}{self.settings.whisper_commands[0]}" if self.settings.whisper_commands else ""
        lines = [
            "=== Chat Ignore ===",
            "Ignoring a user hides their lobby messages from you"
            + (f" and blocks their whispers ({whisper} <user> <message>)." if whisper else "."),
            "",
            "Commands:",
            f"  • {self._cmd} <user> - add or remove a user from your ignore list",
            f"  • {self._cmd} list - show everyone you are ignoring",
            f"  • {self._cmd} clear - remove everyone from your ignore list",
            f"  • {prefix}join / {prefix}leave - enter or leave the lobby",
        ]
        return lines

    def complete(self, actor: uuid.UUID, partial: str) -> List[str]:
        """Subcommands and online names starting with ``partial``, excluding the actor."""
        wanted = (partial or "").casefold()
        options = [sub for sub in IGNORE_SUBCOMMANDS if sub.startswith(wanted)]
        for member in self.lobby.members():
            if member.user_id == actor:
                continue
            if member.display_name.casefold().startswith(wanted):
                options.append(member.display_name)
        return options
