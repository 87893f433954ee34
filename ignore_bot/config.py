from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Set, Tuple

from dotenv import load_dotenv


load_dotenv()

DEFAULT_WHISPER_COMMANDS: Tuple[str, ...] = ("w", "whisper", "msg", "message", "tell", "pm", "t", "m")
DEFAULT_IGNORE_MESSAGE = "You cannot whisper {name} because they are ignoring you."


def _env_lookup(name: str, aliases: tuple[str, ...] = ()) -> str | None:
    for key in (name, *aliases):
        # Be tolerant to UTF-8 BOM accidentally saved in .env key names.
        for candidate in (key, f"\ufeff{key}"):
            raw = os.getenv(candidate)
            if raw is not None:
                return raw
    return None


def _env_bool(name: str, default: bool, aliases: tuple[str, ...] = ()) -> bool:
    raw = _env_lookup(name, aliases)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int, aliases: tuple[str, ...] = ()) -> int:
    raw = _env_lookup(name, aliases)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_id_set(name: str, aliases: tuple[str, ...] = ()) -> Set[int]:
    raw = (_env_lookup(name, aliases) or "").strip()
    if not raw:
        return set()
    result: Set[int] = set()
    for chunk in raw.split(","):
        value = chunk.strip()
        if not value:
            continue
        try:
            result.add(int(value))
        except ValueError:
            continue
    return result


def _env_command_list(
    name: str,
    default: Tuple[str, ...],
    prefix: str,
    aliases: tuple[str, ...] = (),
) -> Tuple[str, ...]:
    raw = _env_lookup(name, aliases)
    if raw is None:
        return default
    commands: list[str] = []
    for chunk in raw.split(","):
        value = chunk.strip().lower()
        # Accept "/w" or "!w" as well as the bare command name.
        for lead in (prefix, "/"):
            if lead and value.startswith(lead):
                value = value[len(lead) :]
                break
        if value and value not in commands:
            commands.append(value)
    return tuple(commands)


def _clean_token(value: str) -> str:
    cleaned = value.strip()
    if cleaned.lower().startswith("bot "):
        cleaned = cleaned[4:].strip()
    if (cleaned.startswith('"') and cleaned.endswith('"')) or (
        cleaned.startswith("'") and cleaned.endswith("'")
    ):
        cleaned = cleaned[1:-1].strip()
    return cleaned


def _env_str(name: str, default: str, aliases: tuple[str, ...] = ()) -> str:
    raw = _env_lookup(name, aliases)
    if raw is None:
        return default
    value = raw.strip()
    return value if value else default


@dataclass(slots=True)
class Settings:
    discord_token: str
    command_prefix: str

    sqlite_path: Path
    sqlite_busy_timeout_ms: int

    block_private_messages: bool
    whisper_commands: Tuple[str, ...]
    ignore_message: str
    admin_user_ids: Set[int]
    prefetch_queue_size: int

    @classmethod
    def from_env(cls) -> "Settings":
        prefix = _env_str("DISCORD_COMMAND_PREFIX", "!")
        return cls(
            discord_token=_clean_token(_env_lookup("DISCORD_TOKEN") or ""),
            command_prefix=prefix,
            sqlite_path=Path(_env_str("SQLITE_PATH", "./data/ignore_relations.db")).expanduser(),
            sqlite_busy_timeout_ms=max(0, min(_env_int("IGNORE_SQLITE_BUSY_TIMEOUT_MS", 5000), 60000)),
            block_private_messages=_env_bool("IGNORE_BLOCK_PRIVATE_MESSAGES", True),
            whisper_commands=_env_command_list(
                "WHISPER_COMMANDS",
                DEFAULT_WHISPER_COMMANDS,
                prefix,
                aliases=("IGNORE_BLOCKED_COMMANDS",),
            ),
            ignore_message=_env_str("IGNORE_MESSAGE_TEMPLATE", DEFAULT_IGNORE_MESSAGE),
            admin_user_ids=_env_id_set("IGNORE_ADMIN_USER_IDS"),
            prefetch_queue_size=_env_int("PREFETCH_QUEUE_SIZE", 256),
        )

    def format_ignore_message(self, name: str) -> str:
        return self.ignore_message.replace("{name}", name)

    def validate(self) -> None:
        if not self.discord_token:
            raise ValueError("DISCORD_TOKEN is required")
        if self.discord_token == "put_your_discord_bot_token_here":
            raise ValueError("DISCORD_TOKEN is still placeholder")
        if not self.command_prefix.strip():
            raise ValueError("DISCORD_COMMAND_PREFIX cannot be empty")
        if self.prefetch_queue_size < 1:
            raise ValueError("PREFETCH_QUEUE_SIZE must be >= 1")
        if self.block_private_messages and not self.whisper_commands:
            raise ValueError("WHISPER_COMMANDS cannot be empty while IGNORE_BLOCK_PRIVATE_MESSAGES is on")
