"""Cache configuration settings."""

from pydantic import BaseModel
from pydantic import Field

from quotacache.keys import STORAGE_FLAG
from quotacache.keys import prefixes_for
from quotacache.types import KeyClass

DEFAULT_MAX_ENTRY_BYTES = 2 * 1024 * 1024


class CacheConfig(BaseModel):
    """Cache configuration settings."""

    # Admission
    max_entry_bytes: int = Field(
        default=DEFAULT_MAX_ENTRY_BYTES,
        gt=0,
        description="Largest serialized entry the store accepts, in bytes (default: 2 MiB)",
    )

    # Eviction
    eviction_fraction: float = Field(
        default=0.3,
        gt=0.0,
        le=1.0,
        description=(
            "Share of evictable entries removed by one eviction pass. "
            "Tuning constant: large enough to avoid evicting on every write, "
            "small enough to keep most of the cache"
        ),
    )

    # Classification
    protected_prefixes: tuple[str, ...] = Field(
        default=prefixes_for(KeyClass.PROTECTED),
        description="Key prefixes that are never removed by eviction or purge",
    )
    purgeable_prefixes: tuple[str, ...] = Field(
        default=prefixes_for(KeyClass.PURGEABLE),
        description="Key prefixes removed only by an explicit purge",
    )

    # Storage pressure flag
    critical_flag_key: str = Field(
        default=STORAGE_FLAG.key("critical"),
        min_length=1,
        description="Key set when a write fails even after eviction; should be protected",
    )
