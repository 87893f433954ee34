from .command_mixin import CommandMixin
from .lobby_mixin import LobbyMixin
from .relay_mixin import RelayMixin
from .workers_mixin import WorkersMixin

__all__ = [
    "CommandMixin",
    "LobbyMixin",
    "RelayMixin",
    "WorkersMixin",
]
