from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from pathlib import Path

from .config import Settings
from .discord.client import IgnoreRelayBot
from .ignores.cache import IgnoreCache
from .ignores.service import IgnoreService
from .ignores.store import IgnoreStore
from .lobby import Lobby

logger = logging.getLogger("ignore_bot")


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logging.getLogger("discord.gateway").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def _is_process_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError:
        return False
    return True


def _acquire_instance_lock(lock_path: Path) -> None:
    # One process owns the SQLite file; a second bot would split the cache.
    lock_path.parent.mkdir(parents=True, exist_ok=True)

    if lock_path.exists():
        stale_pid = 0
        with contextlib.suppress(Exception):
            stale_pid = int(lock_path.read_text(encoding="utf-8").strip() or "0")
        if stale_pid > 0 and _is_process_alive(stale_pid):
            raise RuntimeError(f"Bot is already running (pid={stale_pid}). Stop it before starting a new one.")
        with contextlib.suppress(Exception):
            lock_path.unlink()

    lock_path.write_text(str(os.getpid()), encoding="utf-8")


def _release_instance_lock(lock_path: Path) -> None:
    with contextlib.suppress(Exception):
        if lock_path.exists():
            lock_path.unlink()


def build_bot(settings: Settings) -> IgnoreRelayBot:
    store = IgnoreStore(settings.sqlite_path, busy_timeout_ms=settings.sqlite_busy_timeout_ms)
    lobby = Lobby(store)
    service = IgnoreService(store, IgnoreCache(), directory=lobby)
    return IgnoreRelayBot(
        settings=settings,
        store=store,
        ignore_service=service,
        lobby=lobby,
    )


async def _run_bot(settings: Settings) -> None:
    bot = build_bot(settings)
    try:
        async with bot:
            await bot.start(settings.discord_token)
    finally:
        if not bot.is_closed():
            with contextlib.suppress(Exception):
                await asyncio.wait_for(bot.close(), timeout=10.0)


def main() -> None:
    configure_logging()
    settings = Settings.from_env()
    settings.validate()
    lock_path = settings.sqlite_path.parent / "ignore_bot.pid"
    _acquire_instance_lock(lock_path)
    try:
        asyncio.run(_run_bot(settings))
    except KeyboardInterrupt:
        logger.info("Shutdown requested, exiting.")
    finally:
        _release_instance_lock(lock_path)
