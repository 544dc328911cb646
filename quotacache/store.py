"""TTL cache over a quota-limited storage backend."""

import time
from collections.abc import Awaitable
from collections.abc import Callable
from logging import getLogger
from typing import Any
from typing import Optional

from quotacache.backends import BaseStorageBackend
from quotacache.config import CacheConfig
from quotacache.eviction import EvictionPolicy
from quotacache.exceptions import CorruptEntryError
from quotacache.exceptions import QuotaExceededError
from quotacache.exceptions import StorageError
from quotacache.keys import KeyClassifier
from quotacache.types import CacheEntry
from quotacache.types import KeyClass
from quotacache.types import UsageReport
from quotacache.types import WriteResult

logger = getLogger(__name__)

Clock = Callable[[], int]

CRITICAL_FLAG_VALUE = b"true"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class CacheStore:
    """TTL cache with size admission and eviction on quota exhaustion.

    Create one store per storage backend and hand it to every collaborator
    that caches data. None of its operations raise on storage failure: a
    failed read is a miss and a failed write is reported as a `WriteResult`.

    Example:
        store = CacheStore(MemoryBackend())
        details = store.get(TMDB_SEASON.key(1399, 3))
        if details is None:
            details = fetch_season(1399, 3)
            store.set(TMDB_SEASON.key(1399, 3), details, ttl_ms=DAY_MS)
    """

    def __init__(
        self,
        backend: BaseStorageBackend,
        config: Optional[CacheConfig] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.backend = backend
        self.config = config or CacheConfig()
        self.clock = clock or now_ms
        self.classifier = KeyClassifier.from_config(self.config)
        self.eviction = EvictionPolicy(self.classifier, self.config.eviction_fraction)
        # False until this store has removed or checked for the critical flag
        self._critical_cleared = False

    def get(self, key: str) -> Any:
        """Return the cached value, or None if absent, expired or unreadable."""
        try:
            raw = self.backend.get(key)
        except StorageError:
            logger.warning("Error reading %s from storage", key, exc_info=True)
            return None

        if raw is None:
            return None

        try:
            entry = CacheEntry.from_bytes(raw)
        except CorruptEntryError as e:
            # Protected keys also hold raw user data and flags, which only their owner removes
            if self.classifier.classify(key) is KeyClass.PROTECTED:
                logger.debug("Value under protected key %s is not a cache entry", key)
                return None
            logger.warning("Removing corrupt cache entry %s: %s", key, e)
            self._discard(key)
            return None

        now = self.clock()
        if entry.is_expired(now):
            self._discard(key)
            return None

        entry.last_accessed = now
        try:
            self.backend.set(key, entry.to_bytes())
        except (StorageError, TypeError):
            logger.debug("Could not record access time for %s", key, exc_info=True)

        return entry.value

    def set(self, key: str, value: Any, ttl_ms: int) -> WriteResult:
        """Cache a value for `ttl_ms` milliseconds.

        Returns:
            OK when stored, REJECTED when the value is too large or not
            serializable, FAILED when storage refused it even after eviction
        """
        now = self.clock()
        entry = CacheEntry(value=value, expiry=now + ttl_ms, last_accessed=now)

        try:
            payload = entry.to_bytes()
        except TypeError as e:
            logger.error("Refusing to cache %s: value is not serializable (%s)", key, e)
            return WriteResult.REJECTED

        if len(payload) > self.config.max_entry_bytes:
            logger.warning(
                "Refusing to cache %s: %d bytes exceeds the %d byte limit",
                key,
                len(payload),
                self.config.max_entry_bytes,
            )
            return WriteResult.REJECTED

        try:
            self.backend.set(key, payload)
        except QuotaExceededError:
            logger.warning("Storage quota exceeded writing %s, evicting", key)
            return self._retry_after_eviction(key, payload)
        except StorageError:
            logger.exception("Unexpected storage error caching %s", key)
            return WriteResult.FAILED

        self._clear_critical()
        return WriteResult.OK

    def _retry_after_eviction(self, key: str, payload: bytes) -> WriteResult:
        self.eviction.evict(self.backend)

        try:
            self.backend.set(key, payload)
        except QuotaExceededError:
            logger.error(
                "Failed to cache %s even after eviction; storage is still full", key
            )
            self._mark_critical()
            return WriteResult.FAILED
        except StorageError:
            logger.exception("Unexpected storage error caching %s", key)
            return WriteResult.FAILED

        logger.info("Cached %s after eviction", key)
        self._clear_critical()
        return WriteResult.OK

    def remove_key(self, key: str) -> None:
        """Delete an entry the caller knows to be stale."""
        self._discard(key)

    def _discard(self, key: str) -> None:
        try:
            self.backend.delete(key)
        except StorageError:
            logger.warning("Could not delete %s", key, exc_info=True)

    def purge_secondary(self) -> int:
        """Delete every PURGEABLE entry.

        Returns:
            Number of entries removed
        """
        try:
            keys = self.backend.get_all_keys()
        except StorageError:
            logger.exception("Could not list storage keys for purge")
            return 0

        removed = 0
        for key in keys:
            if self.classifier.classify(key) is not KeyClass.PURGEABLE:
                continue
            try:
                self.backend.delete(key)
            except StorageError:
                logger.warning("Could not purge %s", key, exc_info=True)
                continue
            removed += 1

        if removed:
            logger.info("Purged %d secondary cache entries", removed)
        return removed

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        ttl_ms: int,
    ) -> Any:
        """Return the cached value, fetching and caching it on a miss.

        Errors raised by `fetch` propagate; cache failures never do.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        value = await fetch()
        self.set(key, value, ttl_ms)
        return value

    @property
    def storage_critical(self) -> bool:
        """True when a write failed even after eviction and none has succeeded since."""
        try:
            return self.backend.get(self.config.critical_flag_key) is not None
        except StorageError:
            return False

    def _mark_critical(self) -> None:
        try:
            self.backend.set(self.config.critical_flag_key, CRITICAL_FLAG_VALUE)
        except StorageError:
            logger.debug("Could not set the storage critical flag", exc_info=True)
        self._critical_cleared = False

    def _clear_critical(self) -> None:
        if self._critical_cleared:
            return
        try:
            self.backend.delete(self.config.critical_flag_key)
        except StorageError:
            logger.warning("Could not clear the storage critical flag", exc_info=True)
            return
        self._critical_cleared = True

    def usage(self) -> UsageReport:
        """Count stored keys per protection class."""
        report = UsageReport(storage_critical=self.storage_critical)
        try:
            keys = self.backend.get_all_keys()
        except StorageError:
            logger.warning("Could not list storage keys", exc_info=True)
            return report

        for key in keys:
            key_class = self.classifier.classify(key)
            if key_class is KeyClass.PROTECTED:
                report.protected += 1
            elif key_class is KeyClass.PURGEABLE:
                report.purgeable += 1
            else:
                report.ordinary += 1
        return report
