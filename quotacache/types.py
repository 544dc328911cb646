"""Type definitions for quotacache."""

from dataclasses import asdict
from dataclasses import dataclass
from enum import Enum
from typing import Any

import orjson

from quotacache.exceptions import CorruptEntryError


class KeyClass(Enum):
    """Protection class of a storage key."""

    PROTECTED = "protected"
    PURGEABLE = "purgeable"
    ORDINARY = "ordinary"


class WriteResult(Enum):
    """Outcome of a cache write."""

    OK = "ok"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass
class CacheEntry:
    """Cached value with its expiry and last access time.

    Args:
        value: The cached, JSON-serializable payload
        expiry: Epoch milliseconds after which the entry is treated as absent
        last_accessed: Epoch milliseconds of the last successful read (0 = never recorded)
    """

    value: Any
    expiry: int
    last_accessed: int = 0

    def is_expired(self, now: int) -> bool:
        return now > self.expiry

    def to_bytes(self) -> bytes:
        """Serialize the entry.

        Raises:
            TypeError: If the value is not JSON-serializable
        """
        try:
            return orjson.dumps(asdict(self))
        except orjson.JSONEncodeError as e:
            raise TypeError(str(e)) from e

    @classmethod
    def from_bytes(cls, raw: bytes | str) -> "CacheEntry":
        """Parse a stored entry.

        Raises:
            CorruptEntryError: If the data is not a serialized cache entry
        """
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            msg = f"Invalid JSON: {e}"
            raise CorruptEntryError(msg) from e

        if not isinstance(data, dict) or "value" not in data:
            msg = "Missing cache entry fields"
            raise CorruptEntryError(msg)

        expiry = data.get("expiry")
        last_accessed = data.get("last_accessed") or 0
        # bool is an int subclass but never a timestamp
        for stamp in (expiry, last_accessed):
            if isinstance(stamp, bool) or not isinstance(stamp, (int, float)):
                msg = "Cache entry timestamps must be numbers"
                raise CorruptEntryError(msg)

        return cls(
            value=data["value"],
            expiry=int(expiry),
            last_accessed=int(last_accessed),
        )


@dataclass
class TokenEntry:
    """Bearer credential stored in a token slot.

    `expiry` already has the issuer's safety margin subtracted.
    """

    token: str
    issued_at: int
    expiry: int

    def is_valid(self, now: int) -> bool:
        return now < self.expiry

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "TokenEntry | None":
        if not isinstance(data, dict):
            return None
        try:
            return cls(
                token=str(data["token"]),
                issued_at=int(data["issued_at"]),
                expiry=int(data["expiry"]),
            )
        except (KeyError, TypeError, ValueError):
            return None


@dataclass
class UsageReport:
    """Snapshot of what the storage medium currently holds."""

    protected: int = 0
    purgeable: int = 0
    ordinary: int = 0
    storage_critical: bool = False

    @property
    def total(self) -> int:
        return self.protected + self.purgeable + self.ordinary

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_entries": self.total,
            "protected_entries": self.protected,
            "purgeable_entries": self.purgeable,
            "ordinary_entries": self.ordinary,
            "storage_critical": self.storage_critical,
        }
