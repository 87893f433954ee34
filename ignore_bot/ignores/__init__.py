from .cache import IgnoreCache
from .service import IgnoreService, UserDirectory
from .storage.utils import RemovalResult
from .store import IgnoreStore

__all__ = ["IgnoreCache", "IgnoreService", "IgnoreStore", "RemovalResult", "UserDirectory"]
