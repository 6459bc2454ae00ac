"""
Cache Service

Read-through and write-through primitives for every cached resource family,
plus the invalidation scopes triggered by domain mutations.

Every public operation is best-effort. Reads return a CacheLookup (HIT, MISS
or UNAVAILABLE); writes and invalidations return True when the store accepted
the command. Store and codec failures are logged here and never raised.
Malformed identifiers are programmer errors and raise ValueError.
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from opentelemetry import trace
from prometheus_client import Counter

from ...domain.cache.value_objects import (
    TTL,
    CacheKey,
    CacheLookup,
    Identifier,
    KeyPattern,
    LookupStatus,
    ResourceType,
)
from ...infrastructure.redis.store import RedisStore
from .codec import CacheCodec, CacheDecodeError, CacheEncodeError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

CACHE_LOOKUPS = Counter(
    "realty_cache_lookups_total",
    "Cache lookups by resource family and result",
    ["family", "result"],
)
CACHE_WRITES = Counter(
    "realty_cache_writes_total",
    "Cache writes by resource family and outcome",
    ["family", "success"],
)
CACHE_INVALIDATIONS = Counter(
    "realty_cache_invalidations_total",
    "Cache invalidations by resource family",
    ["family", "scope"],
)
CACHE_ERRORS = Counter(
    "realty_cache_errors_total",
    "Cache codec and store errors",
    ["family", "error_type"],
)

# Fields that never reach a cached user profile
SENSITIVE_PROFILE_FIELDS = frozenset({"password", "password_hash"})


class CacheService:
    """
    Cache operations for properties, profiles, searches, listings and favorites.

    Holds no per-request state; one instance is shared by all requests.
    """

    def __init__(self, store: RedisStore, codec: Optional[CacheCodec] = None):
        self.store = store
        self.codec = codec or CacheCodec()

    # Primitives

    async def _read(self, family: ResourceType, key: CacheKey) -> CacheLookup:
        with tracer.start_as_current_span("cache.get") as span:
            span.set_attribute("cache.family", family.value)
            span.set_attribute("cache.key", key.value)

            lookup = await self.store.get(key.value)
            if not lookup.is_hit:
                span.set_attribute("cache.result", lookup.status.value)
                CACHE_LOOKUPS.labels(family=family.value, result=lookup.status.value).inc()
                return lookup

            try:
                value = self.codec.decode(lookup.value)
            except CacheDecodeError as e:
                # Stale format or corrupted entry, refetch from the durable store
                logger.warning(
                    "Discarding undecodable cache entry",
                    extra={"key": key.value, "error": str(e)},
                )
                CACHE_ERRORS.labels(family=family.value, error_type="decode").inc()
                CACHE_LOOKUPS.labels(
                    family=family.value, result=LookupStatus.MISS.value
                ).inc()
                span.set_attribute("cache.result", LookupStatus.MISS.value)
                return CacheLookup.miss()

            span.set_attribute("cache.result", LookupStatus.HIT.value)
            CACHE_LOOKUPS.labels(family=family.value, result=LookupStatus.HIT.value).inc()
            return CacheLookup.hit(value)

    async def _write(
        self, family: ResourceType, key: CacheKey, value: Any, ttl: TTL
    ) -> bool:
        with tracer.start_as_current_span("cache.set") as span:
            span.set_attribute("cache.family", family.value)
            span.set_attribute("cache.key", key.value)
            span.set_attribute("cache.ttl_seconds", ttl.seconds)

            try:
                data = self.codec.encode(value)
            except CacheEncodeError as e:
                logger.error(
                    "Cannot encode value for cache",
                    extra={"key": key.value, "error": str(e)},
                )
                CACHE_ERRORS.labels(family=family.value, error_type="encode").inc()
                return False

            success = await self.store.set_with_expiry(key.value, data, ttl.seconds)
            CACHE_WRITES.labels(family=family.value, success=str(success).lower()).inc()
            if not success:
                CACHE_ERRORS.labels(family=family.value, error_type="store").inc()
            return success

    async def _delete(self, family: ResourceType, key: CacheKey) -> bool:
        with tracer.start_as_current_span("cache.delete") as span:
            span.set_attribute("cache.family", family.value)
            span.set_attribute("cache.key", key.value)

            success = await self.store.delete(key.value)
            CACHE_INVALIDATIONS.labels(family=family.value, scope="key").inc()
            if not success:
                CACHE_ERRORS.labels(family=family.value, error_type="store").inc()
            return success

    async def _delete_pattern(self, family: ResourceType, pattern: KeyPattern) -> bool:
        with tracer.start_as_current_span("cache.delete_pattern") as span:
            span.set_attribute("cache.family", family.value)
            span.set_attribute("cache.pattern", pattern.value)

            deleted = await self.store.delete_pattern(pattern.value)
            CACHE_INVALIDATIONS.labels(family=family.value, scope="pattern").inc()
            if deleted is None:
                CACHE_ERRORS.labels(family=family.value, error_type="store").inc()
                return False

            span.set_attribute("cache.deleted", deleted)
            return True

    # Property

    async def get_cached_property(self, property_id: Identifier) -> CacheLookup:
        return await self._read(ResourceType.PROPERTY, CacheKey.property(property_id))

    async def cache_property(
        self, listing: Mapping[str, Any], ttl: Optional[TTL] = None
    ) -> bool:
        """Write a property under property:<id>. No-op without an id."""
        property_id = listing.get("id") if listing else None
        if not property_id:
            logger.debug("Skipping cache write for property without id")
            return False
        return await self._write(
            ResourceType.PROPERTY,
            CacheKey.property(property_id),
            dict(listing),
            ttl or TTL.property(),
        )

    async def invalidate_property(self, property_id: Identifier) -> bool:
        return await self._delete(ResourceType.PROPERTY, CacheKey.property(property_id))

    async def warm_property(self, listing: Mapping[str, Any]) -> bool:
        """Write-through used when warming the cache ahead of reads."""
        return await self.cache_property(listing)

    # User profile

    async def get_cached_user_profile(self, user_id: Identifier) -> CacheLookup:
        return await self._read(
            ResourceType.USER_PROFILE, CacheKey.user_profile(user_id)
        )

    async def cache_user_profile(
        self, profile: Mapping[str, Any], ttl: Optional[TTL] = None
    ) -> bool:
        """Write a public profile. Credential fields are stripped first."""
        user_id = profile.get("id") if profile else None
        if not user_id:
            logger.debug("Skipping cache write for profile without id")
            return False
        public = {
            name: value
            for name, value in profile.items()
            if name not in SENSITIVE_PROFILE_FIELDS
        }
        return await self._write(
            ResourceType.USER_PROFILE,
            CacheKey.user_profile(user_id),
            public,
            ttl or TTL.user_profile(),
        )

    async def invalidate_user_profile(self, user_id: Identifier) -> bool:
        return await self._delete(
            ResourceType.USER_PROFILE, CacheKey.user_profile(user_id)
        )

    # Property search

    async def get_cached_property_search(self, query: Mapping[str, Any]) -> CacheLookup:
        return await self._read(
            ResourceType.PROPERTY_SEARCH, CacheKey.property_search(query)
        )

    async def cache_property_search(
        self, query: Mapping[str, Any], results: Any, ttl: Optional[TTL] = None
    ) -> bool:
        return await self._write(
            ResourceType.PROPERTY_SEARCH,
            CacheKey.property_search(query),
            results,
            ttl or TTL.property_search(),
        )

    async def invalidate_property_searches(self) -> bool:
        return await self._delete_pattern(
            ResourceType.PROPERTY_SEARCH, KeyPattern.all_property_searches()
        )

    # User's own properties

    async def get_cached_user_properties(
        self, user_id: Identifier, page: Optional[int] = 1, limit: Optional[int] = 10
    ) -> CacheLookup:
        return await self._read(
            ResourceType.USER_PROPERTIES, CacheKey.user_properties(user_id, page, limit)
        )

    async def cache_user_properties(
        self,
        user_id: Identifier,
        page: Optional[int],
        limit: Optional[int],
        results: Any,
        ttl: Optional[TTL] = None,
    ) -> bool:
        return await self._write(
            ResourceType.USER_PROPERTIES,
            CacheKey.user_properties(user_id, page, limit),
            results,
            ttl or TTL.property_list(),
        )

    async def invalidate_user_properties(self, user_id: Identifier) -> bool:
        return await self._delete_pattern(
            ResourceType.USER_PROPERTIES, KeyPattern.user_properties(user_id)
        )

    # Favorites

    async def get_cached_user_favorites(
        self, user_id: Identifier, page: Optional[int] = 1, limit: Optional[int] = 10
    ) -> CacheLookup:
        return await self._read(
            ResourceType.USER_FAVORITES, CacheKey.user_favorites(user_id, page, limit)
        )

    async def cache_user_favorites(
        self,
        user_id: Identifier,
        page: Optional[int],
        limit: Optional[int],
        results: Any,
        ttl: Optional[TTL] = None,
    ) -> bool:
        return await self._write(
            ResourceType.USER_FAVORITES,
            CacheKey.user_favorites(user_id, page, limit),
            results,
            ttl or TTL.favorites(),
        )

    async def invalidate_user_favorites(self, user_id: Identifier) -> bool:
        return await self._delete_pattern(
            ResourceType.USER_FAVORITES, KeyPattern.user_favorites(user_id)
        )

    async def get_cached_favorite_status(
        self, user_id: Identifier, property_id: Identifier
    ) -> CacheLookup:
        return await self._read(
            ResourceType.FAVORITE_STATUS, CacheKey.favorite_status(user_id, property_id)
        )

    async def cache_favorite_status(
        self,
        user_id: Identifier,
        property_id: Identifier,
        status: Mapping[str, Any],
        ttl: Optional[TTL] = None,
    ) -> bool:
        return await self._write(
            ResourceType.FAVORITE_STATUS,
            CacheKey.favorite_status(user_id, property_id),
            dict(status),
            ttl or TTL.favorites(),
        )

    async def invalidate_favorite_status(
        self, user_id: Identifier, property_id: Identifier
    ) -> bool:
        return await self._delete(
            ResourceType.FAVORITE_STATUS, CacheKey.favorite_status(user_id, property_id)
        )

    async def invalidate_favorites(self, user_id: Identifier) -> bool:
        """Drop every favorites page and favorite-status flag of a user."""
        pages = await self.invalidate_user_favorites(user_id)
        statuses = await self._delete_pattern(
            ResourceType.FAVORITE_STATUS, KeyPattern.user_favorite_statuses(user_id)
        )
        return pages and statuses

    # Mutation scopes

    async def on_property_saved(
        self, listing: Mapping[str, Any], owner_id: Identifier
    ) -> bool:
        """After create or update: write-through, drop searches and owner pages."""
        with tracer.start_as_current_span("cache.on_property_saved"):
            written = await self.cache_property(listing)
            searches = await self.invalidate_property_searches()
            pages = await self.invalidate_user_properties(owner_id)
            return written and searches and pages

    async def on_property_deleted(
        self,
        property_id: Identifier,
        owner_id: Identifier,
        favorited_by: Iterable[Identifier] = (),
    ) -> bool:
        """
        After delete: drop the property, all searches and owner pages.

        Favorites of the property are deleted with it, so every user in
        favorited_by gets an un-favorited status flag and loses their
        cached favorites pages.
        """
        with tracer.start_as_current_span("cache.on_property_deleted") as span:
            removed = await self.invalidate_property(property_id)
            searches = await self.invalidate_property_searches()
            pages = await self.invalidate_user_properties(owner_id)
            ok = removed and searches and pages

            fans = list(favorited_by)
            span.set_attribute("cache.favorited_by", len(fans))
            for user_id in fans:
                status = await self.cache_favorite_status(
                    user_id, property_id, {"is_favorited": False}
                )
                favorites = await self.invalidate_user_favorites(user_id)
                ok = ok and status and favorites
            return ok

    async def on_favorite_added(
        self, user_id: Identifier, property_id: Identifier, favorite_id: Identifier
    ) -> bool:
        with tracer.start_as_current_span("cache.on_favorite_added"):
            status = await self.cache_favorite_status(
                user_id,
                property_id,
                {"is_favorited": True, "favorite_id": str(favorite_id)},
            )
            pages = await self.invalidate_user_favorites(user_id)
            return status and pages

    async def on_favorite_removed(
        self, user_id: Identifier, property_id: Identifier
    ) -> bool:
        with tracer.start_as_current_span("cache.on_favorite_removed"):
            status = await self.cache_favorite_status(
                user_id, property_id, {"is_favorited": False}
            )
            pages = await self.invalidate_user_favorites(user_id)
            return status and pages

    async def on_favorite_updated(self, user_id: Identifier) -> bool:
        """Notes or tags changed; favorite status is unaffected."""
        return await self.invalidate_user_favorites(user_id)

    async def on_password_changed(self, user_id: Identifier) -> bool:
        """Force the next profile read to go to the durable store."""
        return await self.invalidate_user_profile(user_id)

    async def on_profile_updated(self, profile: Mapping[str, Any]) -> bool:
        return await self.cache_user_profile(profile)

    # Administration

    def is_available(self) -> bool:
        return self.store.is_available()

    async def ping(self) -> bool:
        return await self.store.ping()

    async def get_stats(self) -> Optional[Dict[str, Any]]:
        """
        Aggregate store statistics.

        Returns:
            Memory and keyspace info with connectivity flag, or None when the
            store cannot be reached
        """
        with tracer.start_as_current_span("cache.get_stats"):
            if not self.store.is_available():
                return None

            memory = await self.store.info("memory")
            keyspace = await self.store.info("keyspace")
            if memory is None or keyspace is None:
                return None

            return {
                "connected": self.store.is_available(),
                "keys": await self.store.db_size(),
                "memory": {
                    "used_memory": memory.get("used_memory"),
                    "used_memory_human": memory.get("used_memory_human"),
                    "used_memory_peak_human": memory.get("used_memory_peak_human"),
                    "maxmemory": memory.get("maxmemory"),
                },
                "keyspace": keyspace,
                "store": self.store.get_status(),
            }

    async def clear_all(self) -> bool:
        """Flush the whole cache database."""
        with tracer.start_as_current_span("cache.clear_all"):
            success = await self.store.flush()
            if success:
                logger.info("All cache entries cleared")
            return success

    async def clear_user(self, user_id: Identifier) -> bool:
        """Drop the profile, listing pages, favorites pages and statuses of a user."""
        with tracer.start_as_current_span("cache.clear_user"):
            profile = await self.invalidate_user_profile(user_id)
            properties = await self.invalidate_user_properties(user_id)
            favorites = await self.invalidate_favorites(user_id)
            return profile and properties and favorites

    async def clear_property(self, property_id: Identifier) -> bool:
        """Drop one property and every search that may contain it."""
        with tracer.start_as_current_span("cache.clear_property"):
            removed = await self.invalidate_property(property_id)
            searches = await self.invalidate_property_searches()
            return removed and searches

    async def clear_searches(self) -> bool:
        return await self.invalidate_property_searches()
