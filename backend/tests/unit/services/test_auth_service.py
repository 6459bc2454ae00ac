"""
Unit tests for AuthService: signup, login and profile caching.
"""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from realty.core.security import decode_access_token, hash_password
from realty.models import User
from realty.services.auth import AuthService
from realty.services.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationFailedError,
)


def make_user(password: str = "old-password") -> User:
    return User(
        id=uuid4(),
        username="asha",
        email="asha@example.com",
        password_hash=hash_password(password, rounds=4),
    )


async def _return_same(entity):
    return entity


@pytest.fixture
def user_repo():
    repo = AsyncMock()
    repo.find_conflicting.return_value = False
    repo.update.side_effect = _return_same
    return repo


@pytest.fixture
def session():
    return AsyncMock()


@pytest.fixture
def service(session, cache_service, user_repo):
    return AuthService(session, cache_service, users=user_repo)


class TestSignupAndLogin:
    @pytest.mark.asyncio
    async def test_signup_issues_token_and_caches_profile(
        self, service, user_repo, cache_service
    ):
        async def create(user):
            user.id = uuid4()
            return user

        user_repo.create.side_effect = create

        result = await service.signup("asha", "Asha@Example.com", "password1")

        assert result.user["email"] == "asha@example.com"
        assert "password_hash" not in result.user
        assert decode_access_token(result.token)["sub"] == result.user["id"]
        cached = await cache_service.get_cached_user_profile(result.user["id"])
        assert cached.value == result.user

    @pytest.mark.asyncio
    async def test_signup_conflict(self, service, user_repo):
        user_repo.find_conflicting.return_value = True
        with pytest.raises(ConflictError):
            await service.signup("asha", "asha@example.com", "password1")
        user_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_login(self, service, user_repo):
        user = make_user()
        user_repo.get_by_email.return_value = user

        result = await service.login("asha@example.com", "old-password")

        assert result.user["id"] == str(user.id)

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, service, user_repo):
        user_repo.get_by_email.return_value = make_user()
        with pytest.raises(AuthenticationError):
            await service.login("asha@example.com", "nope")

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, service, user_repo):
        user_repo.get_by_email.return_value = None
        with pytest.raises(AuthenticationError):
            await service.login("ghost@example.com", "whatever")


class TestProfile:
    @pytest.mark.asyncio
    async def test_profile_read_through(self, service, user_repo):
        user = make_user()
        user_repo.get.return_value = user

        first = await service.get_profile(user.id)
        second = await service.get_profile(user.id)

        assert first == second
        user_repo.get.assert_awaited_once_with(user.id)

    @pytest.mark.asyncio
    async def test_profile_not_found(self, service, user_repo):
        user_repo.get.return_value = None
        with pytest.raises(NotFoundError):
            await service.get_profile(uuid4())

    @pytest.mark.asyncio
    async def test_update_profile_overwrites_cache(self, service, user_repo, cache_service):
        user = make_user()
        user_repo.get.return_value = user
        await service.get_profile(user.id)

        await service.update_profile(user.id, username="asha_k")

        cached = await cache_service.get_cached_user_profile(user.id)
        assert cached.value["username"] == "asha_k"

    @pytest.mark.asyncio
    async def test_update_profile_requires_a_field(self, service):
        with pytest.raises(ValidationFailedError):
            await service.update_profile(uuid4())

    @pytest.mark.asyncio
    async def test_update_profile_conflict(self, service, user_repo):
        user_repo.find_conflicting.return_value = True
        with pytest.raises(ConflictError):
            await service.update_profile(uuid4(), email="taken@example.com")

    @pytest.mark.asyncio
    async def test_password_change_drops_cached_profile(
        self, service, user_repo, cache_service
    ):
        user = make_user()
        user_repo.get.return_value = user
        await service.get_profile(user.id)

        await service.change_password(user.id, "old-password", "new-password")

        assert not (await cache_service.get_cached_user_profile(user.id)).is_hit
        user_repo.update.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_password_change_wrong_current_password(
        self, service, user_repo, cache_service
    ):
        user = make_user()
        user_repo.get.return_value = user
        await service.get_profile(user.id)

        with pytest.raises(AuthenticationError):
            await service.change_password(user.id, "bad", "new-password")

        assert (await cache_service.get_cached_user_profile(user.id)).is_hit

    @pytest.mark.asyncio
    async def test_password_change_commits_before_dropping_profile(
        self, service, session, user_repo, cache_service
    ):
        user = make_user()
        user_repo.get.return_value = user
        await service.get_profile(user.id)
        cached_at_commit = []

        async def commit():
            cached = await cache_service.get_cached_user_profile(user.id)
            cached_at_commit.append(cached.is_hit)

        session.commit.side_effect = commit

        await service.change_password(user.id, "old-password", "new-password")

        assert cached_at_commit == [True]
        assert not (await cache_service.get_cached_user_profile(user.id)).is_hit
