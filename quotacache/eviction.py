"""Least-recently-used eviction for storage pressure relief."""

import math
from logging import getLogger

from quotacache.backends import BaseStorageBackend
from quotacache.exceptions import CorruptEntryError
from quotacache.exceptions import StorageError
from quotacache.keys import KeyClassifier
from quotacache.types import CacheEntry
from quotacache.types import KeyClass

logger = getLogger(__name__)

DEFAULT_EVICTION_FRACTION = 0.3


class EvictionPolicy:
    """Removes the least recently read share of the ORDINARY entries.

    PROTECTED and PURGEABLE keys are never touched, and values that are not
    cache entries are skipped rather than deleted. Entries without a recorded
    access time rank as 0 and go first.
    """

    def __init__(
        self,
        classifier: KeyClassifier,
        fraction: float = DEFAULT_EVICTION_FRACTION,
    ) -> None:
        if not 0.0 < fraction <= 1.0:
            msg = f"Eviction fraction must be in (0, 1], got {fraction}"
            raise ValueError(msg)
        self.classifier = classifier
        self.fraction = fraction

    def eviction_count(self, candidates: int) -> int:
        # round() drops float noise such as 10 * 0.3 == 3.0000000000000004
        return math.ceil(round(candidates * self.fraction, 9))

    def _candidates(self, backend: BaseStorageBackend) -> list[tuple[int, str]]:
        candidates: list[tuple[int, str]] = []
        for key in backend.get_all_keys():
            if self.classifier.classify(key) is not KeyClass.ORDINARY:
                continue

            try:
                raw = backend.get(key)
            except StorageError:
                logger.debug("Skipping unreadable entry %s", key, exc_info=True)
                continue
            if raw is None:
                continue

            try:
                entry = CacheEntry.from_bytes(raw)
            except CorruptEntryError:
                logger.debug("Skipping non-cache value under %s", key)
                continue

            candidates.append((entry.last_accessed, key))
        return candidates

    def evict(self, backend: BaseStorageBackend) -> int:
        """Run one eviction pass.

        Returns:
            Number of entries removed
        """
        try:
            candidates = self._candidates(backend)
        except StorageError:
            logger.exception("Could not scan storage for eviction")
            return 0

        candidates.sort(key=lambda candidate: candidate[0])
        victims = candidates[: self.eviction_count(len(candidates))]

        removed = 0
        for _, key in victims:
            try:
                backend.delete(key)
            except StorageError:
                logger.warning("Could not evict %s", key, exc_info=True)
                continue
            removed += 1

        logger.info(
            "Evicted %d of %d evictable cache entries", removed, len(candidates)
        )
        return removed
