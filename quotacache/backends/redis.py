from logging import getLogger
from typing import TYPE_CHECKING
from typing import Any
from typing import Optional

from quotacache.exceptions import QuotaCacheError
from quotacache.exceptions import QuotaExceededError
from quotacache.exceptions import StorageError

from .base import BaseStorageBackend

if TYPE_CHECKING:
    from redis import Redis

logger = getLogger(__name__)

# Prefix of the error Redis returns when maxmemory is reached under noeviction
OOM_ERROR_PREFIX = "OOM"
SCAN_BATCH_SIZE = 500
GLOB_SPECIAL_CHARS = frozenset("*?[]\\")


def escape_glob(text: str) -> str:
    """Escape Redis glob metacharacters so `text` matches only itself."""
    return "".join(f"\\{char}" if char in GLOB_SPECIAL_CHARS else char for char in text)


class RedisBackend(BaseStorageBackend):
    """Redis storage backend.

    The capacity limit is the server's `maxmemory` with the `noeviction`
    policy: Redis then answers writes with an OOM error instead of dropping
    keys itself, and that error is reported as `QuotaExceededError`.
    """

    client: "Redis"

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 6379,
        password: Optional[str] = None,
        db: int = 0,
        socket_timeout: float = 1.0,
        socket_connect_timeout: float = 1.0,
        key_prefix: str = "quotacache:",
        client: Optional["Redis"] = None,
        **kwargs: Any,
    ) -> None:
        """Initialize Redis backend.

        Args:
            host: Redis host
            port: Redis port
            password: Redis password
            db: Redis database number
            socket_timeout: Socket timeout in seconds
            socket_connect_timeout: Socket connection timeout in seconds
            key_prefix: Prefix isolating this store's keys from other data in the same database
            client: Pre-built client to use instead of opening a connection
            **kwargs: Extra arguments passed to `redis.Redis`
        """
        try:
            from redis import Redis
        except ImportError:
            msg = "redis[hiredis] is not installed. Please install it with 'pip install \"redis[hiredis]\"'"
            raise QuotaCacheError(msg)

        self.key_prefix = key_prefix
        self.client = client or Redis(
            host=host,
            port=port,
            password=password,
            db=db,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_connect_timeout,
            **kwargs,
        )

    def _make_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _strip_key(self, full_key: bytes | str) -> str:
        if isinstance(full_key, bytes):
            full_key = full_key.decode()
        return full_key[len(self.key_prefix) :]

    def _scan_keys(self) -> list[bytes | str]:
        return list(
            self.client.scan_iter(
                match=f"{escape_glob(self.key_prefix)}*", count=SCAN_BATCH_SIZE
            )
        )

    @staticmethod
    def _translate(error: Exception, action: str, key: str) -> StorageError:
        from redis.exceptions import ResponseError

        if isinstance(error, ResponseError) and str(error).startswith(OOM_ERROR_PREFIX):
            return QuotaExceededError(f"Redis is out of memory while {action} {key!r}")
        return StorageError(f"Redis error while {action} {key!r}: {error}")

    def get(self, key: str) -> Optional[bytes]:
        from redis.exceptions import RedisError

        try:
            value = self.client.get(self._make_key(key))
        except RedisError as e:
            raise self._translate(e, "reading", key) from e

        if isinstance(value, str):
            return value.encode()
        return value

    def set(self, key: str, value: bytes) -> None:
        from redis.exceptions import RedisError

        try:
            self.client.set(self._make_key(key), value)
        except RedisError as e:
            raise self._translate(e, "writing", key) from e

    def delete(self, key: str) -> None:
        from redis.exceptions import RedisError

        try:
            self.client.delete(self._make_key(key))
        except RedisError as e:
            raise self._translate(e, "deleting", key) from e

    def clear(self) -> None:
        """Remove every key under this backend's prefix."""
        from redis.exceptions import RedisError

        try:
            keys = self._scan_keys()
            if keys:
                self.client.delete(*keys)
        except RedisError as e:
            raise self._translate(e, "clearing", self.key_prefix) from e
        logger.debug("Cleared %d keys with prefix %s", len(keys), self.key_prefix)

    def get_all_keys(self) -> list[str]:
        from redis.exceptions import RedisError

        try:
            return [self._strip_key(k) for k in self._scan_keys()]
        except RedisError as e:
            raise self._translate(e, "listing", self.key_prefix) from e
