from typing import Optional

import pytest

from quotacache.backends.memory import MemoryBackend
from quotacache.config import CacheConfig
from quotacache.exceptions import StorageError
from quotacache.store import CacheStore
from quotacache.types import CacheEntry

START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class ScriptedBackend(MemoryBackend):
    """Memory backend that raises queued errors on upcoming reads or writes."""

    def __init__(self, quota_bytes: Optional[int] = None) -> None:
        super().__init__(quota_bytes=quota_bytes)
        self.write_errors: list[StorageError] = []
        self.read_errors: list[StorageError] = []
        self.set_calls = 0
        self.deleted: list[str] = []

    def get(self, key: str) -> Optional[bytes]:
        if self.read_errors:
            raise self.read_errors.pop(0)
        return super().get(key)

    def set(self, key: str, value: bytes) -> None:
        self.set_calls += 1
        if self.write_errors:
            raise self.write_errors.pop(0)
        super().set(key, value)

    def delete(self, key: str) -> None:
        self.deleted.append(key)
        super().delete(key)

    def put_entry(self, key: str, value: object, expiry: int, last_accessed: int) -> None:
        """Store an entry directly, bypassing the cache store."""
        MemoryBackend.set(
            self,
            key,
            CacheEntry(value=value, expiry=expiry, last_accessed=last_accessed).to_bytes(),
        )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> ScriptedBackend:
    return ScriptedBackend()


@pytest.fixture
def config() -> CacheConfig:
    return CacheConfig()


@pytest.fixture
def store(backend: ScriptedBackend, config: CacheConfig, clock: FakeClock) -> CacheStore:
    return CacheStore(backend, config, clock=clock)
