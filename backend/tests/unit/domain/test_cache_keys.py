"""
Unit tests for cache key construction.

Covers key formats, canonical search fingerprints, identifier validation
and isolation of invalidation patterns between users.
"""

import fnmatch
from uuid import uuid4

import pytest

from realty.domain.cache import TTL, CacheKey, CacheLookup, KeyPattern, LookupStatus
from realty.domain.cache.value_objects import query_fingerprint


class TestCacheKeyFormats:
    """Key layout per resource family."""

    def test_property_key(self):
        property_id = uuid4()
        assert CacheKey.property(property_id).value == f"property:{property_id}"

    def test_user_profile_key(self):
        assert CacheKey.user_profile("u1").value == "user:profile:u1"

    def test_user_properties_key_defaults(self):
        assert CacheKey.user_properties("u1").value == "user:properties:u1:1:10"

    def test_user_properties_none_page_uses_defaults(self):
        key = CacheKey.user_properties("u1", page=None, limit=None)
        assert key.value == "user:properties:u1:1:10"

    def test_user_favorites_key(self):
        assert CacheKey.user_favorites("u1", 2, 20).value == "user:favorites:u1:2:20"

    def test_favorite_status_key(self):
        assert CacheKey.favorite_status("u1", "p9").value == "favorite:status:u1:p9"

    def test_search_key_prefix(self):
        key = CacheKey.property_search({"city": "Pune"})
        assert key.value.startswith("search:properties:")

    def test_str_returns_value(self):
        assert str(CacheKey.property(42)) == "property:42"


class TestSearchFingerprint:
    """Search keys depend on query content, not parameter order."""

    def test_parameter_order_does_not_matter(self):
        first = CacheKey.property_search({"city": "Pune", "bedrooms": 2, "page": 1})
        second = CacheKey.property_search({"page": 1, "bedrooms": 2, "city": "Pune"})
        assert first == second

    def test_none_values_are_ignored(self):
        assert CacheKey.property_search(
            {"city": "Pune", "state": None}
        ) == CacheKey.property_search({"city": "Pune"})

    def test_different_values_give_different_keys(self):
        assert CacheKey.property_search({"city": "Pune"}) != CacheKey.property_search(
            {"city": "Mumbai"}
        )

    def test_different_pages_give_different_keys(self):
        assert CacheKey.property_search(
            {"city": "Pune", "page": 1}
        ) != CacheKey.property_search({"city": "Pune", "page": 2})

    def test_empty_query_is_valid(self):
        assert CacheKey.property_search({}).value.startswith("search:properties:")

    def test_fingerprint_has_no_glob_or_space_characters(self):
        fingerprint = query_fingerprint({"search": "sea view * [2BHK]?"})
        assert not any(c in fingerprint for c in " *?[]")

    def test_long_query_gives_fixed_length_key(self):
        short = CacheKey.property_search({"search": "a"})
        long = CacheKey.property_search({"search": "a" * 5000, "city": "Pune"})
        assert len(long.value) == len(short.value)

    def test_long_queries_stay_distinct(self):
        assert CacheKey.property_search({"search": "a" * 5000}) != CacheKey.property_search(
            {"search": "a" * 5001}
        )

    def test_none_query_rejected(self):
        with pytest.raises(ValueError):
            CacheKey.property_search(None)


class TestKeyDistinctness:
    """Distinct identifiers or pages never share a key."""

    def test_pages_are_distinct(self):
        keys = {
            CacheKey.user_properties("u1", 1, 10),
            CacheKey.user_properties("u1", 2, 10),
            CacheKey.user_properties("u1", 1, 20),
        }
        assert len(keys) == 3

    def test_families_are_distinct(self):
        assert CacheKey.user_properties("u1").value != CacheKey.user_favorites("u1").value

    def test_users_are_distinct(self):
        assert CacheKey.user_profile("u1") != CacheKey.user_profile("u10")


class TestIdentifierValidation:
    """Malformed identifiers raise ValueError instead of corrupting the key space."""

    @pytest.mark.parametrize("bad", [None, "", "a b", "u*", "u?", "u[1]"])
    def test_invalid_property_id(self, bad):
        with pytest.raises(ValueError):
            CacheKey.property(bad)

    @pytest.mark.parametrize("page", [0, -1, "2", 1.5, True])
    def test_invalid_page(self, page):
        with pytest.raises(ValueError):
            CacheKey.user_properties("u1", page=page)

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            CacheKey.user_favorites("u1", limit=0)

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError, match="Cache key cannot be empty"):
            CacheKey("")

    def test_whitespace_key_rejected(self):
        with pytest.raises(ValueError, match="Cache key cannot contain whitespace"):
            CacheKey("property: 1")

    def test_long_key_rejected(self):
        with pytest.raises(ValueError, match="Cache key too long"):
            CacheKey("a" * 513)


class TestKeyPattern:
    """Invalidation scopes match exactly their own keys."""

    def test_user_properties_pattern_matches_own_pages(self):
        pattern = KeyPattern.user_properties("u1").value
        assert fnmatch.fnmatchcase(CacheKey.user_properties("u1", 3, 10).value, pattern)

    def test_user_pattern_does_not_reach_prefix_sharing_user(self):
        pattern = KeyPattern.user_properties("u1").value
        assert not fnmatch.fnmatchcase(CacheKey.user_properties("u10").value, pattern)

    def test_favorites_pattern_isolated(self):
        pattern = KeyPattern.user_favorites("u1").value
        assert fnmatch.fnmatchcase(CacheKey.user_favorites("u1").value, pattern)
        assert not fnmatch.fnmatchcase(CacheKey.user_favorites("u10").value, pattern)

    def test_favorite_status_pattern(self):
        pattern = KeyPattern.user_favorite_statuses("u1").value
        assert fnmatch.fnmatchcase(CacheKey.favorite_status("u1", "p1").value, pattern)
        assert not fnmatch.fnmatchcase(
            CacheKey.favorite_status("u10", "p1").value, pattern
        )

    def test_search_pattern(self):
        pattern = KeyPattern.all_property_searches().value
        assert fnmatch.fnmatchcase(CacheKey.property_search({"x": 1}).value, pattern)
        assert not fnmatch.fnmatchcase(CacheKey.property("1").value, pattern)

    def test_pattern_must_end_with_wildcard(self):
        with pytest.raises(ValueError):
            KeyPattern("user:properties:u1")


class TestTTL:
    """TTL presets and validation."""

    def test_presets(self):
        assert TTL.property().seconds == 900
        assert TTL.user_profile().seconds == 1800
        assert TTL.property_search().seconds == 300
        assert TTL.property_list().seconds == 600
        assert TTL.favorites().seconds == 600

    def test_from_minutes(self):
        assert TTL.minutes(2).seconds == 120

    def test_non_positive_rejected(self):
        with pytest.raises(ValueError, match="TTL must be positive"):
            TTL(0)

    def test_too_large_rejected(self):
        with pytest.raises(ValueError, match="TTL too large"):
            TTL(86400 * 31)


class TestCacheLookup:
    def test_hit_is_truthy(self):
        lookup = CacheLookup.hit({"id": "1"})
        assert lookup.is_hit
        assert lookup
        assert lookup.value == {"id": "1"}

    def test_miss_and_unavailable_are_falsy(self):
        assert not CacheLookup.miss()
        assert not CacheLookup.unavailable()
        assert CacheLookup.miss().status is LookupStatus.MISS
        assert CacheLookup.unavailable().status is LookupStatus.UNAVAILABLE

    def test_hit_with_falsy_value_is_still_a_hit(self):
        assert CacheLookup.hit([]).is_hit
