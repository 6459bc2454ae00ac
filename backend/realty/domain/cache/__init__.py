"""
Cache Domain Module

Key construction, invalidation patterns, TTL presets and lookup results.
"""

from .value_objects import (
    TTL,
    CacheKey,
    CacheLookup,
    KeyPattern,
    LookupStatus,
    ResourceType,
)

__all__ = ["TTL", "CacheKey", "CacheLookup", "KeyPattern", "LookupStatus", "ResourceType"]
