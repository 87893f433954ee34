from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Callable, Iterable, List, Sequence, TypeVar

from .config import Settings
from .ignores.service import IgnoreService

R = TypeVar("R")


async def filter_recipients(
    service: IgnoreService,
    sender: uuid.UUID,
    recipients: Iterable[R],
    key: Callable[[R], uuid.UUID],
) -> List[R]:
    """Drop every recipient that is ignoring ``sender``."""
    kept: List[R] = []
    for recipient in recipients:
        if await service.is_ignoring(key(recipient), sender):
            continue
        kept.append(recipient)
    return kept


@dataclass(slots=True)
class WhisperAttempt:
    command: str
    target_name: str
    body: str


def parse_whisper(text: str, prefix: str, commands: Sequence[str]) -> WhisperAttempt | None:
    """Recognise ``<prefix><command> <target> <message...>``; anything shorter is not a whisper."""
    parts = (text or "").strip().split(maxsplit=2)
    if len(parts) < 3 or not prefix or not parts[0].startswith(prefix):
        return None
    command = parts[0][len(prefix) :].lower()
    if command not in commands:
        return None
    body = parts[2].strip()
    if not body:
        return None
    return WhisperAttempt(command=command, target_name=parts[1], body=body)


class WhisperGuard:
    def __init__(self, settings: Settings, service: IgnoreService) -> None:
        self.settings = settings
        self.service = service

    def parse(self, text: str) -> WhisperAttempt | None:
        return parse_whisper(text, self.settings.command_prefix, self.settings.whisper_commands)

    async def check(self, sender: uuid.UUID, target: uuid.UUID, target_name: str) -> str | None:
        """Return the notice to show ``sender`` when the whisper must be blocked, else ``None``."""
        if not self.settings.block_private_messages:
            return None
        if sender == target:
            return None
        if await self.service.is_ignoring(target, sender):
            return self.settings.format_ignore_message(target_name)
        return None
