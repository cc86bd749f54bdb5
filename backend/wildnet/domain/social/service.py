"""Service layer for friend recommendations."""

from __future__ import annotations

import logging
import time
from typing import Iterable, Optional

import asyncpg
import httpx

from wildnet.domain.location import Geocoder, GoogleGeocoder
from wildnet.domain.social import schemas
from wildnet.domain.social.exceptions import RecommendationRateLimitExceeded, UserNotFound
from wildnet.domain.social.models import Friendship, UserProfile
from wildnet.domain.social.recommendations import RecommendationEngine, coerce_limit
from wildnet.domain.social.store import MemorySocialStore, PostgresSocialStore, SocialStore
from wildnet.infra.auth import AuthenticatedUser
from wildnet.infra.postgres import get_pool
from wildnet.infra.rate_limit import charge
from wildnet.obs import metrics as obs_metrics
from wildnet.settings import settings

logger = logging.getLogger(__name__)

_MEMORY = MemorySocialStore()


async def seed_memory_store(
	*,
	users: Iterable[UserProfile] = (),
	friendships: Iterable[Friendship] = (),
) -> None:
	await _MEMORY.seed(users=users, friendships=friendships)


async def reset_memory_state() -> None:
	await _MEMORY.reset()


def memory_store() -> MemorySocialStore:
	return _MEMORY


def resolve_limit(raw: object) -> int:
	"""Parse a caller supplied limit and clamp it to the configured bounds."""

	limit = coerce_limit(raw, default=settings.recommendations_default_limit)
	return max(1, min(limit, settings.recommendations_max_limit))


async def enforce_rate_limit(user_id: str) -> None:
	window = await charge("friends:recommendations", user_id, limit=settings.recommendations_per_minute)
	if not window.allowed:
		raise RecommendationRateLimitExceeded(retry_after=window.retry_after)


class RecommendationService:
	def __init__(self, *, store: Optional[SocialStore] = None, geocoder: Optional[Geocoder] = None) -> None:
		self._store = store
		self._geocoder = geocoder
		self._http: Optional[httpx.AsyncClient] = None
		self._pool_checked = False
		self._pool: Optional[asyncpg.Pool] = None

	async def _pool_or_none(self) -> Optional[asyncpg.Pool]:
		"""Return the shared pool, or None when development falls back to the memory store.

		In production a failure is raised and the next request tries the pool again.
		"""
		if self._pool_checked:
			return self._pool
		try:
			self._pool = await get_pool()
		except (AssertionError, OSError, asyncpg.PostgresError):
			if settings.is_prod():
				raise
			logger.warning("postgres unavailable; serving recommendations from the in-memory store")
			self._pool = None
		self._pool_checked = True
		return self._pool

	async def _resolve_store(self) -> SocialStore:
		if self._store is not None:
			return self._store
		pool = await self._pool_or_none()
		if pool is None:
			return _MEMORY
		return PostgresSocialStore(pool)

	def _resolve_geocoder(self) -> Geocoder:
		if self._geocoder is None:
			self._http = httpx.AsyncClient()
			self._geocoder = GoogleGeocoder.from_settings(self._http)
		return self._geocoder

	async def aclose(self) -> None:
		if self._http is not None:
			await self._http.aclose()
			self._http = None
			self._geocoder = None

	async def recommend(
		self,
		auth_user: AuthenticatedUser,
		raw_limit: object = None,
	) -> schemas.RecommendationsResponse:
		start = time.perf_counter()
		try:
			await enforce_rate_limit(auth_user.id)
			limit = resolve_limit(raw_limit)
			engine = RecommendationEngine(await self._resolve_store(), self._resolve_geocoder())
			entries = await engine.compute_recommendations(auth_user.user_uuid, limit)
		except UserNotFound:
			obs_metrics.inc_recommendations("not_found")
			logger.info("recommendations: profile not found for user=%s", auth_user.id)
			raise
		except RecommendationRateLimitExceeded:
			obs_metrics.inc_recommendations("rate_limited")
			raise
		except Exception:
			obs_metrics.inc_recommendations("error")
			logger.exception("Failed to compute friend recommendations")
			raise
		finally:
			obs_metrics.observe_recommendation_latency(time.perf_counter() - start)

		obs_metrics.inc_recommendations("ok")
		return schemas.RecommendationsResponse(
			data=schemas.RecommendationsData(recommendations=entries, count=len(entries)),
		)
