from uuid import UUID

import pytest

from wildnet.domain.social import service as social_service
from wildnet.domain.social.exceptions import RecommendationRateLimitExceeded
from wildnet.domain.social.models import UserProfile
from wildnet.domain.social.service import RecommendationService, enforce_rate_limit, resolve_limit
from wildnet.domain.social.store import PostgresSocialStore
from wildnet.infra import postgres
from wildnet.infra.auth import AuthenticatedUser
from wildnet.infra.rate_limit import RateLimitExceeded, charge
from wildnet.settings import settings

USER_ME = "00000000-0000-0000-0000-000000000001"


@pytest.mark.asyncio
async def test_charge_allows_within_budget():
	first = await charge("recs", "u5", limit=2, window_seconds=60)
	second = await charge("recs", "u5", limit=2, window_seconds=60)

	assert first.allowed and second.allowed
	assert second.count == 2
	assert second.remaining == 0


@pytest.mark.asyncio
async def test_charge_blocks_when_budget_exhausted():
	await charge("recs", "u6", limit=1, window_seconds=60, now=1000.0)
	blocked = await charge("recs", "u6", limit=1, window_seconds=60, now=1010.0)

	assert not blocked.allowed
	assert blocked.retry_after == 10


@pytest.mark.asyncio
async def test_charge_windows_are_independent():
	assert (await charge("recs", "u7", limit=1, window_seconds=60, now=120.0)).allowed
	assert not (await charge("recs", "u7", limit=1, window_seconds=60, now=150.0)).allowed
	assert (await charge("recs", "u7", limit=1, window_seconds=60, now=180.0)).allowed


@pytest.mark.asyncio
async def test_zero_budget_rejects_without_touching_redis(fake_redis):
	window = await charge("recs", "u8", limit=0)

	assert not window.allowed
	assert await fake_redis.keys("rl:*") == []


@pytest.mark.parametrize(
	("raw", "expected"),
	[(None, 10), ("", 10), ("abc", 10), ("0", 10), ("-4", 10), ("3", 3), (3, 3), ("50", 50), ("500", 50)],
)
def test_resolve_limit_defaults_and_clamps(raw, expected):
	assert resolve_limit(raw) == expected


@pytest.mark.asyncio
async def test_enforce_rate_limit_raises_domain_error(monkeypatch):
	monkeypatch.setattr(settings, "recommendations_per_minute", 1)
	await enforce_rate_limit(USER_ME)

	with pytest.raises(RecommendationRateLimitExceeded) as exc_info:
		await enforce_rate_limit(USER_ME)
	assert isinstance(exc_info.value, RateLimitExceeded)
	assert exc_info.value.reason == "rate_limit"
	assert 1 <= exc_info.value.retry_after <= 60


@pytest.mark.asyncio
async def test_service_falls_back_to_memory_store_outside_production(fake_geocoder):
	await social_service.seed_memory_store(users=[UserProfile(id=UUID(USER_ME), handle="me")])
	service = RecommendationService(geocoder=fake_geocoder)

	response = await service.recommend(AuthenticatedUser(id=USER_ME), "5")

	assert response.message == "Friend recommendations fetched successfully"
	assert response.data.count == 0
	assert response.data.recommendations == []
	assert social_service.memory_store().calls["find_user_by_id"] == 1


class _IdlePool:
	def acquire(self):
		raise AssertionError("no query expected")


@pytest.mark.asyncio
async def test_service_uses_postgres_store_when_a_pool_is_installed(fake_geocoder):
	postgres.set_pool(_IdlePool())
	try:
		service = RecommendationService(geocoder=fake_geocoder)
		store = await service._resolve_store()
	finally:
		postgres.set_pool(None)

	assert isinstance(store, PostgresSocialStore)


@pytest.mark.asyncio
async def test_service_keeps_failing_in_production_until_the_pool_returns(monkeypatch, fake_geocoder):
	monkeypatch.setattr(settings, "environment", "production")
	await social_service.seed_memory_store(users=[UserProfile(id=UUID(USER_ME), handle="me")])
	service = RecommendationService(geocoder=fake_geocoder)

	for _ in range(2):
		with pytest.raises(AssertionError):
			await service.recommend(AuthenticatedUser(id=USER_ME))
	assert social_service.memory_store().calls["find_user_by_id"] == 0

	postgres.set_pool(_IdlePool())
	try:
		store = await service._resolve_store()
	finally:
		postgres.set_pool(None)
	assert isinstance(store, PostgresSocialStore)


@pytest.mark.asyncio
async def test_service_remembers_the_memory_fallback_in_development(fake_geocoder):
	service = RecommendationService(geocoder=fake_geocoder)

	first = await service._resolve_store()
	postgres.set_pool(_IdlePool())
	try:
		second = await service._resolve_store()
	finally:
		postgres.set_pool(None)

	assert first is social_service.memory_store()
	assert second is first
