from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid

import discord

from ..commands import IgnoreCommandHandler
from ..config import Settings
from ..filters import WhisperGuard
from ..ignores.service import IgnoreService
from ..ignores.store import IgnoreStore
from ..lobby import Lobby
from .common import PendingPrefetch
from .mixins.command_mixin import CommandMixin
from .mixins.lobby_mixin import LobbyMixin
from .mixins.relay_mixin import RelayMixin
from .mixins.workers_mixin import WorkersMixin

logger = logging.getLogger("ignore_bot")


class IgnoreRelayBot(
    RelayMixin,
    CommandMixin,
    LobbyMixin,
    WorkersMixin,
    discord.Client,
):
    def __init__(
        self,
        settings: Settings,
        store: IgnoreStore,
        ignore_service: IgnoreService,
        lobby: Lobby,
    ) -> None:
        intents = discord.Intents.default()
        intents.dm_messages = True

        super().__init__(intents=intents)

        self.settings = settings
        self.store = store
        self.ignore_service = ignore_service
        self.lobby = lobby
        self.ignore_commands = IgnoreCommandHandler(settings, ignore_service, lobby)
        self.whisper_guard = WhisperGuard(settings, ignore_service)

        self.prefetch_queue: asyncio.Queue[PendingPrefetch] = asyncio.Queue(maxsize=settings.prefetch_queue_size)
        self.prefetch_pending: set[uuid.UUID] = set()
        self.prefetch_worker_task: asyncio.Task[None] | None = None

    async def setup_hook(self) -> None:
        await self.store.init()
        await self.store.ping()
        logger.info("Ignore store backend=%s reachable", self.store.backend_name)
        self.prefetch_worker_task = asyncio.create_task(self._prefetch_worker(), name="prefetch-worker")

    async def close(self) -> None:
        await self._cancel_task(self.prefetch_worker_task)
        dropped = self.ignore_service.flush_cache()
        logger.info("Dropped %s cached ignore lists on shutdown", dropped)
        await self._run_shutdown_step("store.close", self.store.close(), timeout=6.0)
        await self._run_shutdown_step("discord.Client.close", super().close(), timeout=6.0)

    async def _run_shutdown_step(self, label: str, coro: object, *, timeout: float) -> None:
        try:
            await asyncio.wait_for(coro, timeout=timeout)  # type: ignore[arg-type]
        except asyncio.TimeoutError:
            logger.warning("Shutdown step timed out: %s", label)
        except Exception as exc:
            logger.warning("Shutdown step failed: %s (%s)", label, exc)

    async def _cancel_task(self, task: asyncio.Task[None] | None) -> None:
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def on_ready(self) -> None:
        if self.user:
            logger.info("Connected as %s (%s)", self.user, self.user.id)
