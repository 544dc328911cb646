"""Storage backend implementations for quotacache."""

from .base import BaseStorageBackend
from .memory import MemoryBackend
from .redis import RedisBackend

__all__ = [
    "BaseStorageBackend",
    "MemoryBackend",
    "RedisBackend",
]
