from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ignore_bot.commands import IgnoreCommandHandler  # noqa: E402
from ignore_bot.config import Settings  # noqa: E402
from ignore_bot.filters import WhisperGuard, filter_recipients, parse_whisper  # noqa: E402
from ignore_bot.ignores.cache import IgnoreCache  # noqa: E402
from ignore_bot.ignores.service import IgnoreService  # noqa: E402
from ignore_bot.ignores.storage.utils import RemovalResult  # noqa: E402
from ignore_bot.ignores.store import IgnoreStore  # noqa: E402
from ignore_bot.lobby import Lobby, LobbyMember, user_uuid_for_discord  # noqa: E402


ADMIN_ID = 900


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = dict(
        discord_token="token",
        command_prefix="!",
        sqlite_path=Path("unused.db"),
        sqlite_busy_timeout_ms=5000,
        block_private_messages=True,
        whisper_commands=("w", "msg", "tell"),
        ignore_message="You cannot whisper {name} because they are ignoring you.",
        admin_user_ids={ADMIN_ID},
        prefetch_queue_size=8,
    )
    values.update(overrides)
    return Settings(**values)  # type: ignore[arg-type]


def _member(discord_id: int, name: str) -> LobbyMember:
    return LobbyMember(user_id=user_uuid_for_discord(discord_id), discord_id=discord_id, display_name=name)


ALICE = _member(1, "Alice")
BOB = _member(2, "Bob")
CAROL = _member(3, "Carol")


def _run(tmp_path: Path, body, settings: Settings | None = None):  # type: ignore[no-untyped-def]
    async def scenario():  # type: ignore[no-untyped-def]
        store = IgnoreStore(tmp_path / "ignores.db")
        await store.init()
        try:
            lobby = Lobby(store)
            for member in (ALICE, BOB, CAROL):
                lobby.join(LobbyMember(member.user_id, member.discord_id, member.display_name))
            service = IgnoreService(store, IgnoreCache(), lobby)
            cfg = settings or _settings()
            handler = IgnoreCommandHandler(cfg, service, lobby)
            return await body(handler, service, lobby, WhisperGuard(cfg, service))
        finally:
            await store.close()

    return asyncio.run(scenario())


def test_filter_recipients_drops_only_those_ignoring_sender(tmp_path: Path) -> None:
    async def body(handler, service, lobby, guard) -> None:  # type: ignore[no-untyped-def]
        await service.add(BOB.user_id, ALICE.user_id)
        await service.add(ALICE.user_id, CAROL.user_id)

        kept = await filter_recipients(service, ALICE.user_id, [BOB, CAROL], key=lambda m: m.user_id)
        assert [m.display_name for m in kept] == ["Carol"]

        kept = await filter_recipients(service, CAROL.user_id, [ALICE, BOB], key=lambda m: m.user_id)
        assert [m.display_name for m in kept] == ["Bob"]

    _run(tmp_path, body)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("!w Bob hello there", ("w", "Bob", "hello there")),
        ("!MSG bob  hi", ("msg", "bob", "hi")),
        ("!tell <@2> ping", ("tell", "<@2>", "ping")),
    ],
)
def test_parse_whisper_recognises_configured_commands(text: str, expected: tuple[str, str, str]) -> None:
    attempt = parse_whisper(text, "!", ("w", "msg", "tell"))
    assert attempt is not None
    assert (attempt.command, attempt.target_name, attempt.body) == expected


@pytest.mark.parametrize("text", ["!w Bob", "!w", "w Bob hi", "!shout Bob hi", "", "?w Bob hi"])
def test_parse_whisper_rejects_other_messages(text: str) -> None:
    assert parse_whisper(text, "!", ("w", "msg")) is None


def test_whisper_guard_blocks_when_target_ignores_sender(tmp_path: Path) -> None:
    async def body(handler, service, lobby, guard) -> None:  # type: ignore[no-untyped-def]
        assert await guard.check(ALICE.user_id, BOB.user_id, "Bob") is None

        await service.add(BOB.user_id, ALICE.user_id)
        notice = await guard.check(ALICE.user_id, BOB.user_id, "Bob")
        assert notice == "You cannot whisper Bob because they are ignoring you."

        # Ignoring someone does not stop you from whispering them.
        assert await guard.check(BOB.user_id, ALICE.user_id, "Alice") is None

    _run(tmp_path, body)


def test_whisper_guard_never_blocks_self_whisper(tmp_path: Path) -> None:
    async def body(handler, service, lobby, guard) -> None:  # type: ignore[no-untyped-def]
        await service.add(ALICE.user_id, ALICE.user_id)
        assert await guard.check(ALICE.user_id, ALICE.user_id, "Alice") is None

    _run(tmp_path, body)


def test_whisper_guard_disabled_by_setting(tmp_path: Path) -> None:
    async def body(handler, service, lobby, guard) -> None:  # type: ignore[no-untyped-def]
        await service.add(BOB.user_id, ALICE.user_id)
        assert guard.parse("!w Bob hi") is not None
        assert await guard.check(ALICE.user_id, BOB.user_id, "Bob") is None

    _run(tmp_path, body, _settings(block_private_messages=False))


def test_ignore_without_args_shows_usage(tmp_path: Path) -> None:
    async def body(handler, service, lobby, guard) -> None:  # type: ignore[no-untyped-def]
        lines = await handler.handle_ignore(ALICE.user_id, [])
        assert lines[0] == "Usage:"
        assert "  !ignore <user> - ignore or unignore a user" in lines

    _run(tmp_path, body)


def test_ignore_toggle_messages(tmp_path: Path) -> None:
    async def body(handler, service, lobby, guard) -> None:  # type: ignore[no-untyped-def]
        assert await handler.handle_ignore(ALICE.user_id, ["bob"]) == [
            "Now ignoring Bob. You will no longer see their messages."
        ]
        assert await service.is_ignoring(ALICE.user_id, BOB.user_id) is True

        assert await handler.handle_ignore(ALICE.user_id, ["<@2>"]) == ["Stopped ignoring Bob."]
        assert await service.is_ignoring(ALICE.user_id, BOB.user_id) is False

    _run(tmp_path, body)


def test_ignore_self_and_unknown_targets(tmp_path: Path) -> None:
    async def body(handler, service, lobby, guard) -> None:  # type: ignore[no-untyped-def]
        assert await handler.handle_ignore(ALICE.user_id, ["Alice"]) == ["You cannot ignore yourself!"]
        assert await service.count(ALICE.user_id) == 0

        assert await handler.handle_ignore(ALICE.user_id, ["Zed"]) == ["User not found: Zed"]

        lobby.join(_member(4, "Caroline"))
        assert await handler.handle_ignore(ALICE.user_id, ["ca"]) == [
            "User not found: ca. Online matches: Carol, Caroline"
        ]

    _run(tmp_path, body)


def test_ignore_list_reports_status_and_empty_state(tmp_path: Path) -> None:
    async def body(handler, service, lobby, guard) -> None:  # type: ignore[no-untyped-def]
        assert await handler.handle_ignore(ALICE.user_id, ["list"]) == ["You are not ignoring anyone."]

        await handler.handle_ignore(ALICE.user_id, ["Carol"])
        await handler.handle_ignore(ALICE.user_id, ["Bob"])
        await service.store.upsert_known_user(CAROL.user_id, CAROL.discord_id, "Carol")
        lobby.leave(CAROL.user_id)

        assert await handler.handle_ignore(ALICE.user_id, ["LIST"]) == [
            "Users you are ignoring (2):",
            "- Bob [Online]",
            "- Carol [Offline]",
        ]

    _run(tmp_path, body)


def test_ignore_clear_removes_everything(tmp_path: Path) -> None:
    async def body(handler, service, lobby, guard) -> None:  # type: ignore[no-untyped-def]
        assert await handler.handle_ignore(ALICE.user_id, ["clear"]) == ["You are not ignoring anyone."]

        await service.add(ALICE.user_id, BOB.user_id)
        await service.add(ALICE.user_id, CAROL.user_id)
        assert await handler.handle_ignore(ALICE.user_id, ["clear"]) == [
            "Ignore list cleared. You are no longer ignoring 2 user(s)."
        ]
        assert await service.count(ALICE.user_id) == 0
        assert service.cache.get(ALICE.user_id) is None

    _run(tmp_path, body)


def test_ignore_clear_reports_partial_failure(tmp_path: Path) -> None:
    async def body(handler, service, lobby, guard) -> None:  # type: ignore[no-untyped-def]
        await service.add(ALICE.user_id, BOB.user_id)
        await service.add(ALICE.user_id, CAROL.user_id)

        real_remove = service.store.remove

        async def flaky_remove(actor, target):  # type: ignore[no-untyped-def]
            if target == BOB.user_id:
                return RemovalResult.FAILED
            return await real_remove(actor, target)

        service.store.remove = flaky_remove
        lines = await handler.handle_ignore(ALICE.user_id, ["clear"])
        assert lines == ["Ignore list partly cleared; 1 of 2 entries could not be removed. Try again later."]
        assert await service.list_targets(ALICE.user_id) == {BOB.user_id}

    _run(tmp_path, body)


def test_ignore_help_mentions_whisper_command(tmp_path: Path) -> None:
    async def body(handler, service, lobby, guard) -> None:  # type: ignore[no-untyped-def]
        lines = await handler.handle_ignore(ALICE.user_id, ["help"])
        assert lines[0] == "=== Chat Ignore ==="
        assert "(!w <user> <message>)" in lines[1]

    _run(tmp_path, body)


def test_complete_offers_subcommands_and_other_online_names(tmp_path: Path) -> None:
    async def body(handler, service, lobby, guard) -> None:  # type: ignore[no-untyped-def]
        assert handler.complete(ALICE.user_id, "c") == ["clear", "Carol"]
        assert handler.complete(ALICE.user_id, "a") == []
        assert "Alice" in handler.complete(BOB.user_id, "")

    _run(tmp_path, body)


def test_ignorecache_is_admin_only(tmp_path: Path) -> None:
    async def body(handler, service, lobby, guard) -> None:  # type: ignore[no-untyped-def]
        assert handler.handle_cache(ALICE.discord_id, ["stats"]) == ["You are not allowed to use this command."]

        await service.load_on_connect(ALICE.user_id)
        await service.load_on_connect(BOB.user_id)
        assert handler.handle_cache(ADMIN_ID, []) == ["Ignore cache: 2 loaded actor(s), 3 user(s) in the lobby."]
        assert handler.handle_cache(ADMIN_ID, ["flush"]) == ["Flushed 2 ignore cache entries."]
        assert service.cache_size() == 0
        assert handler.handle_cache(ADMIN_ID, ["bogus"]) == ["Usage: !ignorecache stats|flush"]

    _run(tmp_path, body)
