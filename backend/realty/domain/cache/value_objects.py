"""
Cache Value Objects

Immutable value objects for the cache domain: key construction,
invalidation patterns, time-to-live presets and lookup results.
"""

import hashlib
import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Union
from uuid import UUID

Identifier = Union[str, int, UUID]

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_KEY_LENGTH = 512

# Whitespace and glob metacharacters would let one identifier's key or
# pattern match another's.
_INVALID_SEGMENT = re.compile(r"[\s*?\[\]]")


class ResourceType(str, Enum):
    """Cached resource families and their key prefixes."""

    PROPERTY = "property"
    USER_PROFILE = "user:profile"
    PROPERTY_SEARCH = "search:properties"
    USER_PROPERTIES = "user:properties"
    USER_FAVORITES = "user:favorites"
    FAVORITE_STATUS = "favorite:status"


def _segment(value: Identifier, name: str) -> str:
    """Render one key segment, rejecting values that would corrupt the key space."""
    if value is None:
        raise ValueError(f"{name} is required (cannot be None)")
    text = str(value)
    if not text:
        raise ValueError(f"{name} cannot be empty")
    if _INVALID_SEGMENT.search(text):
        raise ValueError(f"{name} contains whitespace or glob characters: {text!r}")
    return text


def _page_segment(value: Optional[int], default: int, name: str) -> str:
    if value is None:
        value = default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 1:
        raise ValueError(f"{name} must be >= 1")
    return str(value)


def query_fingerprint(query: Mapping[str, Any]) -> str:
    """
    Canonical fingerprint of a free-form query.

    Parameter names are sorted and None-valued parameters dropped before
    the mapping is serialized to compact JSON, so the fingerprint does not
    depend on the order parameters were supplied in. The JSON text is then
    reduced to a SHA-256 hex digest, which keeps search keys a fixed length
    and free of spaces and glob characters whatever the filters contain.
    """
    canonical = {name: query[name] for name in sorted(query) if query[name] is not None}
    text = json.dumps(
        canonical, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
    )
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CacheKey:
    """
    Immutable cache key value object.

    Enforces key naming conventions and provides validation.
    """

    value: str

    def __post_init__(self) -> None:
        """Validate cache key format."""
        if not self.value:
            raise ValueError("Cache key cannot be empty")

        if len(self.value) > MAX_KEY_LENGTH:
            raise ValueError(f"Cache key too long (max {MAX_KEY_LENGTH} characters)")

        if any(char.isspace() for char in self.value):
            raise ValueError("Cache key cannot contain whitespace")

    @classmethod
    def property(cls, property_id: Identifier) -> "CacheKey":
        """Key for a single property: property:<id>."""
        return cls(f"{ResourceType.PROPERTY.value}:{_segment(property_id, 'property_id')}")

    @classmethod
    def user_profile(cls, user_id: Identifier) -> "CacheKey":
        """Key for a user's public profile: user:profile:<id>."""
        return cls(f"{ResourceType.USER_PROFILE.value}:{_segment(user_id, 'user_id')}")

    @classmethod
    def property_search(cls, query: Mapping[str, Any]) -> "CacheKey":
        """Key for one search result page: search:properties:<fingerprint>."""
        if query is None:
            raise ValueError("query is required (cannot be None)")
        return cls(f"{ResourceType.PROPERTY_SEARCH.value}:{query_fingerprint(query)}")

    @classmethod
    def user_properties(
        cls,
        user_id: Identifier,
        page: Optional[int] = DEFAULT_PAGE,
        limit: Optional[int] = DEFAULT_LIMIT,
    ) -> "CacheKey":
        """Key for a page of a user's own listings."""
        return cls(
            f"{ResourceType.USER_PROPERTIES.value}:{_segment(user_id, 'user_id')}:"
            f"{_page_segment(page, DEFAULT_PAGE, 'page')}:"
            f"{_page_segment(limit, DEFAULT_LIMIT, 'limit')}"
        )

    @classmethod
    def user_favorites(
        cls,
        user_id: Identifier,
        page: Optional[int] = DEFAULT_PAGE,
        limit: Optional[int] = DEFAULT_LIMIT,
    ) -> "CacheKey":
        """Key for a page of a user's favorites."""
        return cls(
            f"{ResourceType.USER_FAVORITES.value}:{_segment(user_id, 'user_id')}:"
            f"{_page_segment(page, DEFAULT_PAGE, 'page')}:"
            f"{_page_segment(limit, DEFAULT_LIMIT, 'limit')}"
        )

    @classmethod
    def favorite_status(
        cls, user_id: Identifier, property_id: Identifier
    ) -> "CacheKey":
        """Key for whether a user has favorited a property."""
        return cls(
            f"{ResourceType.FAVORITE_STATUS.value}:{_segment(user_id, 'user_id')}:"
            f"{_segment(property_id, 'property_id')}"
        )

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class KeyPattern:
    """
    Glob pattern naming an invalidation scope.

    Every pattern ends in ':*' after a fully delimited prefix, so the scope
    for user "u1" never reaches keys of user "u10".
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.endswith("*"):
            raise ValueError("Key pattern must be a non-empty glob ending in '*'")

    @classmethod
    def all_property_searches(cls) -> "KeyPattern":
        return cls(f"{ResourceType.PROPERTY_SEARCH.value}:*")

    @classmethod
    def user_properties(cls, user_id: Identifier) -> "KeyPattern":
        return cls(f"{ResourceType.USER_PROPERTIES.value}:{_segment(user_id, 'user_id')}:*")

    @classmethod
    def user_favorites(cls, user_id: Identifier) -> "KeyPattern":
        return cls(f"{ResourceType.USER_FAVORITES.value}:{_segment(user_id, 'user_id')}:*")

    @classmethod
    def user_favorite_statuses(cls, user_id: Identifier) -> "KeyPattern":
        return cls(f"{ResourceType.FAVORITE_STATUS.value}:{_segment(user_id, 'user_id')}:*")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TTL:
    """
    Time To Live value object for cache expiration.

    Provides type-safe TTL configuration with validation.
    """

    seconds: int

    def __post_init__(self) -> None:
        """Validate TTL value."""
        if self.seconds <= 0:
            raise ValueError("TTL must be positive")
        if self.seconds > 86400 * 30:
            raise ValueError("TTL too large (max 30 days)")

    @classmethod
    def minutes(cls, minutes: int) -> "TTL":
        """Create TTL from minutes."""
        return cls(minutes * 60)

    # Fixed per-family presets
    @classmethod
    def property(cls) -> "TTL":
        """Single property (15 minutes)."""
        return cls.minutes(15)

    @classmethod
    def user_profile(cls) -> "TTL":
        """User profile (30 minutes)."""
        return cls.minutes(30)

    @classmethod
    def property_search(cls) -> "TTL":
        """Search result page (5 minutes)."""
        return cls.minutes(5)

    @classmethod
    def property_list(cls) -> "TTL":
        """Page of a user's listings (10 minutes)."""
        return cls.minutes(10)

    @classmethod
    def favorites(cls) -> "TTL":
        """Favorites pages and favorite-status flags (10 minutes)."""
        return cls.minutes(10)

    def __str__(self) -> str:
        return f"{self.seconds}s"


class LookupStatus(str, Enum):
    """Outcome of a cache read."""

    HIT = "hit"
    MISS = "miss"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class CacheLookup:
    """
    Result of a cache read: HIT carrying a value, MISS, or UNAVAILABLE.

    Callers treat MISS and UNAVAILABLE identically (fetch from the durable
    store); the distinction exists for logging and the admin surface.
    """

    status: LookupStatus
    value: Any = None

    @classmethod
    def hit(cls, value: Any) -> "CacheLookup":
        return cls(LookupStatus.HIT, value)

    @classmethod
    def miss(cls) -> "CacheLookup":
        return _MISS

    @classmethod
    def unavailable(cls) -> "CacheLookup":
        return _UNAVAILABLE

    @property
    def is_hit(self) -> bool:
        return self.status is LookupStatus.HIT

    def __bool__(self) -> bool:
        return self.is_hit


_MISS = CacheLookup(LookupStatus.MISS)
_UNAVAILABLE = CacheLookup(LookupStatus.UNAVAILABLE)
