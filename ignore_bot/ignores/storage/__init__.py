from .relations import IgnoreRelationsMixin
from .schema import IgnoreSchemaMixin
from .users import KnownUsersMixin
from .utils import RemovalResult

__all__ = [
    "IgnoreSchemaMixin",
    "IgnoreRelationsMixin",
    "KnownUsersMixin",
    "RemovalResult",
]
