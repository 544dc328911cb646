from typing import Optional

from quotacache.exceptions import QuotaExceededError

from .base import BaseStorageBackend

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


class MemoryBackend(BaseStorageBackend):
    """In-memory storage backend with a fixed byte quota.

    Usage counts the encoded key plus the value, the way browser storage
    quotas count both.
    """

    def __init__(self, quota_bytes: Optional[int] = DEFAULT_QUOTA_BYTES) -> None:
        self.storage: dict[str, bytes] = {}
        self.quota_bytes = quota_bytes
        self._used_bytes = 0

    @staticmethod
    def _item_size(key: str, value: bytes) -> int:
        return len(key.encode()) + len(value)

    @property
    def used_bytes(self) -> int:
        return self._used_bytes

    def get(self, key: str) -> Optional[bytes]:
        return self.storage.get(key)

    def set(self, key: str, value: bytes) -> None:
        previous = self.storage.get(key)
        released = self._item_size(key, previous) if previous is not None else 0
        needed = self._used_bytes - released + self._item_size(key, value)

        if self.quota_bytes is not None and needed > self.quota_bytes:
            msg = (
                f"Writing {key!r} needs {needed} bytes, "
                f"quota is {self.quota_bytes} bytes"
            )
            raise QuotaExceededError(msg)

        self.storage[key] = value
        self._used_bytes = needed

    def delete(self, key: str) -> None:
        value = self.storage.pop(key, None)
        if value is not None:
            self._used_bytes -= self._item_size(key, value)

    def clear(self) -> None:
        self.storage.clear()
        self._used_bytes = 0

    def get_all_keys(self) -> list[str]:
        return list(self.storage)
