from abc import ABC
from abc import abstractmethod
from typing import Optional


class BaseStorageBackend(ABC):
    """Base class for all storage backends.

    A backend is the persistent medium the cache lives in. It stores raw
    bytes per key, offers atomic per-key reads and writes, and raises
    `QuotaExceededError` when a write does not fit.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Retrieve the raw value stored under a key."""

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """Store a raw value, replacing any previous one."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every key."""

    @abstractmethod
    def get_all_keys(self) -> list[str]:
        """Return a snapshot of every stored key."""
