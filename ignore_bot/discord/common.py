from __future__ import annotations

import re
import uuid
from dataclasses import dataclass


def collapse_spaces(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def chunk_text(text: str, limit: int = 1900) -> list[str]:
    if len(text) <= limit:
        return [text]
    parts: list[str] = []
    current = ""
    for line in text.splitlines(keepends=True):
        if len(current) + len(line) <= limit:
            current += line
            continue
        if current:
            parts.append(current)
            current = ""
        if len(line) <= limit:
            current = line
        else:
            for i in range(0, len(line), limit):
                parts.append(line[i : i + limit])
    if current:
        parts.append(current)
    return parts


def display_name_of(author: object) -> str:
    for attr in ("global_name", "display_name", "name"):
        value = str(getattr(author, attr, "") or "").strip()
        if value:
            return value
    return "unknown"


@dataclass(slots=True)
class PendingPrefetch:
    user_id: uuid.UUID
