"""
Unit tests for PropertyService.

Repositories are AsyncMocks; the cache is a real CacheService over
fakeredis so read-through and invalidation are observed end to end.
"""

from datetime import date
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from realty.models import Property
from realty.repositories import PropertySearchCriteria
from realty.services.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from realty.services.properties import PropertyService


def make_property(owner_id, **overrides) -> Property:
    values = dict(
        id=uuid4(),
        listing_id="PROP1001",
        title="Sea view flat",
        type="Apartment",
        price=1250000.0,
        state="Maharashtra",
        city="Pune",
        area_sq_ft=950,
        bedrooms=2,
        bathrooms=2,
        amenities="gym|pool",
        furnished="Furnished",
        available_from=date(2026, 11, 1),
        listed_by="Owner",
        tags="sea-view",
        color_theme="#1a2b3c",
        rating=4.5,
        is_verified=True,
        listing_type="sale",
        created_by=owner_id,
    )
    values.update(overrides)
    return Property(**values)


async def _return_same(entity):
    return entity


@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def property_repo():
    repo = AsyncMock()
    repo.update.side_effect = _return_same
    repo.create.side_effect = _return_same
    repo.delete.return_value = True
    return repo


@pytest.fixture
def session():
    return AsyncMock()


@pytest.fixture
def favorite_repo():
    repo = AsyncMock()
    repo.list_user_ids_for_property.return_value = []
    return repo


@pytest.fixture
def service(session, cache_service, property_repo, favorite_repo):
    return PropertyService(
        session=session,
        cache=cache_service,
        properties=property_repo,
        favorites=favorite_repo,
    )


class TestReadThrough:
    @pytest.mark.asyncio
    async def test_second_read_is_served_from_cache(self, service, property_repo, owner_id):
        prop = make_property(owner_id)
        property_repo.get.return_value = prop

        first = await service.get_property(prop.id)
        second = await service.get_property(prop.id)

        assert first == second
        assert first["listing_id"] == "PROP1001"
        property_repo.get.assert_awaited_once_with(prop.id)

    @pytest.mark.asyncio
    async def test_missing_property(self, service, property_repo):
        property_repo.get.return_value = None
        with pytest.raises(NotFoundError):
            await service.get_property(uuid4())

    @pytest.mark.asyncio
    async def test_unavailable_cache_falls_back_to_database(
        self, unavailable_cache_service, property_repo, favorite_repo, owner_id
    ):
        service = PropertyService(
            AsyncMock(),
            unavailable_cache_service,
            properties=property_repo,
            favorites=favorite_repo,
        )
        prop = make_property(owner_id)
        property_repo.get.return_value = prop

        await service.get_property(prop.id)
        result = await service.get_property(prop.id)

        assert result["id"] == str(prop.id)
        assert property_repo.get.await_count == 2

    @pytest.mark.asyncio
    async def test_search_is_cached_and_warms_properties(
        self, service, property_repo, cache_service, owner_id
    ):
        prop = make_property(owner_id)
        property_repo.search.return_value = ([prop], 1)
        criteria = PropertySearchCriteria(city="Pune", bedrooms=2)

        first = await service.search_properties(criteria, page=1, limit=10)
        second = await service.search_properties(
            PropertySearchCriteria(bedrooms=2, city="Pune"), page=1, limit=10
        )

        assert first == second
        assert first["total"] == 1
        assert first["total_pages"] == 1
        property_repo.search.assert_awaited_once()
        assert (await cache_service.get_cached_property(prop.id)).is_hit

    @pytest.mark.asyncio
    async def test_search_pages_are_cached_separately(self, service, property_repo):
        property_repo.search.return_value = ([], 0)
        criteria = PropertySearchCriteria(city="Pune")

        await service.search_properties(criteria, page=1, limit=10)
        await service.search_properties(criteria, page=2, limit=10)

        assert property_repo.search.await_count == 2

    @pytest.mark.asyncio
    async def test_long_search_text_is_cached(self, service, property_repo):
        property_repo.search.return_value = ([], 0)
        criteria = PropertySearchCriteria(search="sea view " * 200, city="Pune")

        first = await service.search_properties(criteria)
        second = await service.search_properties(criteria)

        assert first == second
        assert first["total"] == 0
        property_repo.search.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_owner_listing_read_through(self, service, property_repo, owner_id):
        property_repo.list_by_owner.return_value = ([make_property(owner_id)], 1)

        await service.list_user_properties(owner_id, page=1, limit=10)
        result = await service.list_user_properties(owner_id, page=1, limit=10)

        assert result["total"] == 1
        property_repo.list_by_owner.assert_awaited_once_with(owner_id, skip=0, limit=10)


class TestMutations:
    @pytest.mark.asyncio
    async def test_update_refreshes_cached_property(
        self, service, property_repo, cache_service, owner_id
    ):
        prop = make_property(owner_id)
        property_repo.get.return_value = prop
        property_repo.search.return_value = ([prop], 1)
        property_repo.list_by_owner.return_value = ([prop], 1)

        await service.get_property(prop.id)
        await service.search_properties(PropertySearchCriteria(city="Pune"))
        await service.list_user_properties(owner_id)

        await service.update_property(prop.id, owner_id, {"price": 990000.0})

        cached = await cache_service.get_cached_property(prop.id)
        assert cached.value["price"] == 990000.0
        assert not (
            await cache_service.get_cached_property_search(
                {"city": "Pune", "page": 1, "limit": 10}
            )
        ).is_hit
        assert not (await cache_service.get_cached_user_properties(owner_id)).is_hit

    @pytest.mark.asyncio
    async def test_update_ignores_immutable_fields(self, service, property_repo, owner_id):
        prop = make_property(owner_id)
        property_repo.get.return_value = prop

        result = await service.update_property(
            prop.id, owner_id, {"listing_id": "HIJACK", "created_by": uuid4(), "title": "New"}
        )

        assert result["listing_id"] == "PROP1001"
        assert result["created_by"] == str(owner_id)
        assert result["title"] == "New"

    @pytest.mark.asyncio
    async def test_update_by_non_owner_is_denied(
        self, service, property_repo, cache_service, owner_id
    ):
        prop = make_property(owner_id)
        property_repo.get.return_value = prop
        await service.get_property(prop.id)

        with pytest.raises(PermissionDeniedError):
            await service.update_property(prop.id, uuid4(), {"price": 1.0})

        property_repo.update.assert_not_awaited()
        cached = await cache_service.get_cached_property(prop.id)
        assert cached.value["price"] == 1250000.0

    @pytest.mark.asyncio
    async def test_delete_invalidates_property(
        self, service, property_repo, cache_service, owner_id
    ):
        prop = make_property(owner_id)
        property_repo.get.return_value = prop
        await service.get_property(prop.id)

        await service.delete_property(prop.id, owner_id)

        property_repo.delete.assert_awaited_once_with(prop)
        assert not (await cache_service.get_cached_property(prop.id)).is_hit

    @pytest.mark.asyncio
    async def test_create_rejects_duplicate_listing_id(self, service, property_repo, owner_id):
        property_repo.get_by_listing_id.return_value = make_property(owner_id)

        with pytest.raises(ConflictError):
            await service.create_property(owner_id, {"listing_id": "PROP1001"})

        property_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_writes_through(
        self, service, property_repo, cache_service, owner_id
    ):
        property_repo.get_by_listing_id.return_value = None
        template = make_property(owner_id)
        data = {
            column: getattr(template, column)
            for column in (
                "listing_id", "title", "type", "price", "state", "city", "area_sq_ft",
                "bedrooms", "bathrooms", "amenities", "furnished", "available_from",
                "listed_by", "tags", "color_theme", "rating", "is_verified", "listing_type",
            )
        }

        async def assign_id(entity):
            entity.id = uuid4()
            return entity

        property_repo.create.side_effect = assign_id
        await cache_service.cache_user_properties(owner_id, 1, 10, {"total": 0})

        created = await service.create_property(owner_id, data)

        assert created["created_by"] == str(owner_id)
        assert (await cache_service.get_cached_property(created["id"])).is_hit
        assert not (await cache_service.get_cached_user_properties(owner_id)).is_hit

    @pytest.mark.asyncio
    async def test_warm_property(self, service, property_repo, cache_service, owner_id):
        prop = make_property(owner_id)
        property_repo.get.return_value = prop

        assert await service.warm_property(prop.id) is True
        assert (await cache_service.get_cached_property(prop.id)).is_hit


class TestCommitOrdering:
    @pytest.mark.asyncio
    async def test_update_commits_before_refreshing_cache(
        self, service, session, property_repo, cache_service, owner_id
    ):
        prop = make_property(owner_id)
        property_repo.get.return_value = prop
        await service.get_property(prop.id)
        cached_at_commit = []

        async def commit():
            cached = await cache_service.get_cached_property(prop.id)
            cached_at_commit.append(cached.value["price"])

        session.commit.side_effect = commit

        await service.update_property(prop.id, owner_id, {"price": 990000.0})

        assert cached_at_commit == [1250000.0]
        assert (await cache_service.get_cached_property(prop.id)).value["price"] == 990000.0

    @pytest.mark.asyncio
    async def test_failed_commit_leaves_cache_untouched(
        self, service, session, property_repo, cache_service, owner_id
    ):
        prop = make_property(owner_id)
        property_repo.get.return_value = prop
        property_repo.search.return_value = ([prop], 1)
        await service.search_properties(PropertySearchCriteria(city="Pune"))
        session.commit.side_effect = RuntimeError("commit failed")

        with pytest.raises(RuntimeError):
            await service.update_property(prop.id, owner_id, {"price": 1.0})

        assert (await cache_service.get_cached_property(prop.id)).value["price"] == 1250000.0
        assert (
            await cache_service.get_cached_property_search(
                {"city": "Pune", "page": 1, "limit": 10}
            )
        ).is_hit

    @pytest.mark.asyncio
    async def test_delete_commits_before_invalidating(
        self, service, session, property_repo, cache_service, owner_id
    ):
        prop = make_property(owner_id)
        property_repo.get.return_value = prop
        await service.get_property(prop.id)
        hit_at_commit = []

        async def commit():
            hit_at_commit.append((await cache_service.get_cached_property(prop.id)).is_hit)

        session.commit.side_effect = commit

        await service.delete_property(prop.id, owner_id)

        assert hit_at_commit == [True]
        assert not (await cache_service.get_cached_property(prop.id)).is_hit


class TestDeleteCascade:
    @pytest.mark.asyncio
    async def test_delete_clears_favorites_of_other_users(
        self, service, property_repo, favorite_repo, cache_service, owner_id
    ):
        prop = make_property(owner_id)
        property_repo.get.return_value = prop
        fan = uuid4()
        favorite_repo.list_user_ids_for_property.return_value = [fan]
        await cache_service.on_favorite_added(fan, prop.id, uuid4())
        await cache_service.cache_user_favorites(fan, 1, 10, {"favorites": [], "total": 1})

        await service.delete_property(prop.id, owner_id)

        favorite_repo.list_user_ids_for_property.assert_awaited_once_with(prop.id)
        status = await cache_service.get_cached_favorite_status(fan, prop.id)
        assert status.value == {"is_favorited": False}
        assert not (await cache_service.get_cached_user_favorites(fan)).is_hit

    @pytest.mark.asyncio
    async def test_delete_without_favorites_touches_no_user_entries(
        self, service, property_repo, cache_service, owner_id
    ):
        prop = make_property(owner_id)
        property_repo.get.return_value = prop
        other = uuid4()
        await cache_service.cache_user_favorites(other, 1, 10, {"favorites": [], "total": 0})

        await service.delete_property(prop.id, owner_id)

        assert (await cache_service.get_cached_user_favorites(other)).is_hit
