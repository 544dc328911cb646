class QuotaCacheError(Exception):
    """Base class for all exceptions in quotacache."""


class CacheConfigError(QuotaCacheError):
    """Exception raised for invalid cache or token issuer settings."""


class UnknownIssuerError(QuotaCacheError):
    """Exception raised when a token is requested for an unregistered issuer."""


class CorruptEntryError(QuotaCacheError):
    """Exception raised when a stored value does not parse as a cache entry."""


class StorageError(QuotaCacheError):
    """Exception raised by a storage backend when an operation fails."""


class QuotaExceededError(StorageError):
    """Exception raised when the storage medium refuses a write for lack of space."""
