"""quotacache: a TTL cache for quota-limited storage with protected keys and LRU eviction."""

from .config import CacheConfig as CacheConfig
from .keys import KeyClassifier as KeyClassifier
from .keys import KeySpace as KeySpace
from .routes import add_routes as add_routes
from .store import CacheStore as CacheStore
from .token import TokenCache as TokenCache
from .token import TokenIssuer as TokenIssuer
from .types import KeyClass as KeyClass
from .types import WriteResult as WriteResult

__all__ = [
    "CacheConfig",
    "CacheStore",
    "KeyClass",
    "KeyClassifier",
    "KeySpace",
    "TokenCache",
    "TokenIssuer",
    "WriteResult",
    "add_routes",
]
