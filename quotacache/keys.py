"""Key spaces and key classification.

Every stored key starts with the prefix of a `KeySpace`. The prefix decides
the key's protection class:

- PROTECTED keys hold user data, core entity records and credentials and are
  never removed by the cache layer on its own.
- PURGEABLE keys hold secondary metadata that is only removed when the user
  asks for space back.
- ORDINARY keys are regular TTL entries and may be evicted under pressure.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from quotacache.types import KeyClass

if TYPE_CHECKING:
    from quotacache.config import CacheConfig

KEY_PART_SEPARATOR = "_"


@dataclass(frozen=True)
class KeySpace:
    """Builder for the keys of one data kind."""

    prefix: str
    key_class: KeyClass

    def key(self, *parts: object) -> str:
        """Build a key for the given entity parts.

        Example:
            >>> TMDB_SEASON.key(1399, 3)
            'tmdb_season_1399_3'
            >>> WATCHING_LIST.key("archived")
            'watching_list_archived'
        """
        if not parts:
            return self.prefix
        suffix = KEY_PART_SEPARATOR.join(str(part) for part in parts)
        if self.prefix.endswith(KEY_PART_SEPARATOR):
            return self.prefix + suffix
        return self.prefix + KEY_PART_SEPARATOR + suffix

    def owns(self, key: str) -> bool:
        return key.startswith(self.prefix)


# User data
WATCHING_LIST = KeySpace("watching_list", KeyClass.PROTECTED)
PLAN_TO_WATCH_LIST = KeySpace("plan_to_watch_list", KeyClass.PROTECTED)
COMPLETED_LIST = KeySpace("completed_list", KeyClass.PROTECTED)
WATCH_HISTORY = KeySpace("history", KeyClass.PROTECTED)
WATCH_PROGRESS = KeySpace("watch_progress", KeyClass.PROTECTED)
CUSTOM_LISTS = KeySpace("custom_lists", KeyClass.PROTECTED)
USER_RATINGS = KeySpace("user_ratings", KeyClass.PROTECTED)

# Core entity records
TMDB_DETAILS = KeySpace("tmdb_details_v4_", KeyClass.PROTECTED)
TVDB_DETAILS = KeySpace("tvdb_details_v1_", KeyClass.PROTECTED)

# Cache layer bookkeeping
AUTH_TOKEN = KeySpace("auth_token_", KeyClass.PROTECTED)
STORAGE_FLAG = KeySpace("storage_", KeyClass.PROTECTED)

# Secondary metadata
TMDB_CREDITS = KeySpace("tmdb_credits_", KeyClass.PURGEABLE)
TMDB_PROVIDERS = KeySpace("tmdb_providers_", KeyClass.PURGEABLE)
TMDB_TRENDING = KeySpace("tmdb_trending_", KeyClass.PURGEABLE)
TMDB_DISCOVER = KeySpace("tmdb_discover_", KeyClass.PURGEABLE)
TMDB_PERSON = KeySpace("tmdb_person_", KeyClass.PURGEABLE)
TMDB_NEW_SEASONS = KeySpace("tmdb_new_seasons_", KeyClass.PURGEABLE)
TVMAZE_SCHEDULE = KeySpace("tvmaze_schedule_", KeyClass.PURGEABLE)

# Regular entries
TMDB_FIND = KeySpace("tmdb_find_", KeyClass.ORDINARY)
TMDB_SEASON = KeySpace("tmdb_season_", KeyClass.ORDINARY)
TMDB_GENRES = KeySpace("tmdb_genres_", KeyClass.ORDINARY)
TMDB_COLLECTION = KeySpace("tmdb_collection_", KeyClass.ORDINARY)

KEY_SPACES: tuple[KeySpace, ...] = (
    WATCHING_LIST,
    PLAN_TO_WATCH_LIST,
    COMPLETED_LIST,
    WATCH_HISTORY,
    WATCH_PROGRESS,
    CUSTOM_LISTS,
    USER_RATINGS,
    TMDB_DETAILS,
    TVDB_DETAILS,
    AUTH_TOKEN,
    STORAGE_FLAG,
    TMDB_CREDITS,
    TMDB_PROVIDERS,
    TMDB_TRENDING,
    TMDB_DISCOVER,
    TMDB_PERSON,
    TMDB_NEW_SEASONS,
    TVMAZE_SCHEDULE,
    TMDB_FIND,
    TMDB_SEASON,
    TMDB_GENRES,
    TMDB_COLLECTION,
)


def prefixes_for(
    key_class: KeyClass, spaces: Iterable[KeySpace] = KEY_SPACES
) -> tuple[str, ...]:
    """Return the prefixes of every key space in the given class."""
    return tuple(space.prefix for space in spaces if space.key_class is key_class)


class KeyClassifier:
    """Maps keys to their `KeyClass` by prefix.

    Matching is case-sensitive. A key matching both prefix sets is PROTECTED,
    and a key matching neither is ORDINARY.
    """

    def __init__(
        self,
        protected_prefixes: Iterable[str] | None = None,
        purgeable_prefixes: Iterable[str] | None = None,
    ) -> None:
        if protected_prefixes is None:
            protected_prefixes = prefixes_for(KeyClass.PROTECTED)
        if purgeable_prefixes is None:
            purgeable_prefixes = prefixes_for(KeyClass.PURGEABLE)
        # str.startswith accepts a tuple of prefixes
        self.protected_prefixes = tuple(protected_prefixes)
        self.purgeable_prefixes = tuple(purgeable_prefixes)

    @classmethod
    def from_config(cls, config: "CacheConfig") -> "KeyClassifier":
        return cls(config.protected_prefixes, config.purgeable_prefixes)

    def classify(self, key: str) -> KeyClass:
        if key.startswith(self.protected_prefixes):
            return KeyClass.PROTECTED
        if key.startswith(self.purgeable_prefixes):
            return KeyClass.PURGEABLE
        return KeyClass.ORDINARY
