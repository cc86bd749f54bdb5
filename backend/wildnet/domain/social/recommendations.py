"""Friend-of-friend recommendation engine.

One ``RecommendationEngine.compute_recommendations`` call walks the current
user's social graph with a fixed number of batched store queries:

1. the current profile (missing profile -> ``UserNotFound``),
2. the accepted friendships of the user (the friend set),
3. every relationship of the user in any status (the exclusion set),
4. the accepted friendships of all friends at once (friend-of-friend edges),
5. at most one lookup for candidate profiles that were not carried by the edges.

Candidates are then scored on mutual friends, shared favorite species, region
match and geocoded distance, and returned in a deterministic order.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional, Sequence
from uuid import UUID

from wildnet.domain.location import GeocodeCache, Geocoder, build_address, haversine_km
from wildnet.domain.location.distance import Coordinates
from wildnet.domain.social import ranking, schemas
from wildnet.domain.social.exceptions import UserNotFound
from wildnet.domain.social.models import (
	CANDIDATE_PROJECTION,
	CandidateAggregate,
	Friendship,
	FriendshipStatus,
	UserFilter,
	UserProfile,
)
from wildnet.domain.social.store import SocialStore
from wildnet.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
PREVIEW_SIZE = 5


def coerce_limit(value: object, default: int = DEFAULT_LIMIT) -> int:
	"""Return a positive limit, falling back to ``default`` for missing or non-numeric input."""

	if value is None or isinstance(value, bool):
		return default
	try:
		parsed = int(value)  # type: ignore[call-overload]
	except (TypeError, ValueError):
		return default
	return parsed if parsed > 0 else default


def _normalize_region(value: Optional[str]) -> Optional[str]:
	if not isinstance(value, str):
		return None
	normalized = value.strip().casefold()
	return normalized or None


def _species_key(name: object) -> Optional[str]:
	if not isinstance(name, str):
		return None
	key = name.strip().casefold()
	return key or None


def _species_keys(names: Iterable[str]) -> set[str]:
	return {key for key in (_species_key(name) for name in names) if key}


def shared_species(user_keys: set[str], candidate_species: Sequence[str]) -> list[str]:
	"""Species from the candidate's favorites that the user also favors, deduplicated."""

	shared: list[str] = []
	seen: set[str] = set()
	for name in candidate_species:
		key = _species_key(name)
		if key is None or key in seen or key not in user_keys:
			continue
		seen.add(key)
		shared.append(name.strip())
	return shared


def regions_match(a: Optional[str], b: Optional[str]) -> bool:
	left = _normalize_region(a)
	return left is not None and left == _normalize_region(b)


def _visible_species(profile: UserProfile) -> list[str]:
	return [name.strip() for name in profile.favorite_species if _species_key(name)][:PREVIEW_SIZE]


class RecommendationEngine:
	"""Scores friend-of-friend candidates for a single user.

	The engine holds no per-request state between calls: the candidate map and
	the geocode cache are created inside ``compute_recommendations``.
	"""

	def __init__(self, store: SocialStore, geocoder: Geocoder) -> None:
		self._store = store
		self._geocoder = geocoder

	async def compute_recommendations(
		self,
		current_user_id: UUID,
		limit: object = None,
	) -> list[schemas.RecommendationEntry]:
		limit_value = coerce_limit(limit)
		current_user = await self._store.find_user_by_id(current_user_id)
		if current_user is None:
			raise UserNotFound()

		friendships = await self._store.get_accepted_friendships_for_user(current_user_id)
		friends = self._collect_friends(current_user_id, friendships)
		relationships = await self._store.get_all_relationships_for_user(current_user_id)
		excluded = self._exclusion_set(current_user_id, relationships, friends)

		if not friends:
			logger.info("recommendations.computed user=%s friends=0 candidates=0 returned=0", current_user_id)
			obs_metrics.observe_recommendation_candidates(0)
			return []

		network = await self._store.get_accepted_friendships_for_users(sorted(friends, key=str))
		candidates = self._aggregate_candidates(current_user_id, friends, excluded, network)
		await self._resolve_profiles(candidates)
		obs_metrics.observe_recommendation_candidates(len(candidates))

		cache = GeocodeCache(self._geocoder)
		ranked = await self._score_candidates(current_user, candidates, friends, cache)
		ranked.sort(key=lambda item: item[0])
		result = [entry for _, entry in ranked[:limit_value]]
		logger.info(
			"recommendations.computed user=%s friends=%d candidates=%d returned=%d geocode_lookups=%d",
			current_user_id,
			len(friends),
			len(candidates),
			len(result),
			cache.lookups,
		)
		return result

	@staticmethod
	def _collect_friends(
		current_user_id: UUID,
		friendships: Iterable[Friendship],
	) -> dict[UUID, Optional[UserProfile]]:
		friends: dict[UUID, Optional[UserProfile]] = {}
		for friendship in friendships:
			if friendship.status is not FriendshipStatus.ACCEPTED or not friendship.involves(current_user_id):
				continue
			friend_id = friendship.other_party(current_user_id)
			if friend_id == current_user_id:
				continue
			profile = friendship.profile_of(friend_id)
			if profile is None:
				logger.debug("friendship %s has no populated friend profile", friendship.id)
			if friends.get(friend_id) is None:
				friends[friend_id] = profile
		return friends

	@staticmethod
	def _exclusion_set(
		current_user_id: UUID,
		relationships: Iterable[Friendship],
		friends: Iterable[UUID],
	) -> set[UUID]:
		excluded = {current_user_id}
		for relationship in relationships:
			if relationship.involves(current_user_id):
				excluded.add(relationship.other_party(current_user_id))
		excluded.update(friends)
		return excluded

	@staticmethod
	def _aggregate_candidates(
		current_user_id: UUID,
		friends: dict[UUID, Optional[UserProfile]],
		excluded: set[UUID],
		network: Iterable[Friendship],
	) -> dict[UUID, CandidateAggregate]:
		candidates: dict[UUID, CandidateAggregate] = {}
		for edge in network:
			if edge.status is not FriendshipStatus.ACCEPTED:
				continue
			for friend_id, candidate_id in (
				(edge.requester_id, edge.addressee_id),
				(edge.addressee_id, edge.requester_id),
			):
				if friend_id == current_user_id or friend_id not in friends:
					continue
				if candidate_id == current_user_id or candidate_id in excluded:
					continue
				carried = edge.profile_of(candidate_id)
				aggregate = candidates.get(candidate_id)
				if aggregate is None:
					candidates[candidate_id] = CandidateAggregate(
						user_id=candidate_id,
						mutual_friend_ids={friend_id},
						profile=carried,
					)
					continue
				aggregate.mutual_friend_ids.add(friend_id)
				if aggregate.profile is None:
					aggregate.profile = carried
		return candidates

	async def _resolve_profiles(self, candidates: dict[UUID, CandidateAggregate]) -> None:
		"""Fill missing candidate profiles with one batched lookup; drop private or unknown users."""

		missing = sorted((user_id for user_id, data in candidates.items() if data.profile is None), key=str)
		if missing:
			profiles = await self._store.find_users_by_filter(
				UserFilter(ids=tuple(missing), public_only=True),
				CANDIDATE_PROJECTION,
			)
			for profile in profiles:
				aggregate = candidates.get(profile.id)
				if aggregate is not None and aggregate.profile is None:
					aggregate.profile = profile

		for user_id in list(candidates):
			profile = candidates[user_id].profile
			if profile is None or not profile.is_public_profile:
				del candidates[user_id]

	async def _score_candidates(
		self,
		current_user: UserProfile,
		candidates: dict[UUID, CandidateAggregate],
		friends: dict[UUID, Optional[UserProfile]],
		cache: GeocodeCache,
	) -> list[tuple[tuple, schemas.RecommendationEntry]]:
		if not candidates:
			return []
		user_species = _species_keys(current_user.favorite_species)
		user_coordinates = await cache.resolve(build_address(current_user.location, current_user.region))

		ranked: list[tuple[tuple, schemas.RecommendationEntry]] = []
		for user_id in sorted(candidates, key=str):
			data = candidates[user_id]
			profile = data.profile
			if profile is None:
				continue
			data.shared_species = shared_species(user_species, profile.favorite_species)
			data.location_match = regions_match(current_user.region, profile.region)
			data.distance_km = await self._distance_km(user_coordinates, profile, cache)

			score = ranking.recommendation_score(
				data.mutual_count,
				len(data.shared_species),
				data.location_match,
				data.distance_km,
			)
			if score <= 0:
				continue
			key = ranking.sort_key(score, data.mutual_count, len(data.shared_species), profile.handle, user_id)
			ranked.append((key, self._to_entry(data, profile, friends, score)))
		return ranked

	@staticmethod
	async def _distance_km(
		origin: Optional[Coordinates],
		profile: UserProfile,
		cache: GeocodeCache,
	) -> Optional[float]:
		if origin is None:
			return None
		target = await cache.resolve(build_address(profile.location, profile.region))
		if target is None:
			return None
		distance = haversine_km(origin, target)
		if not math.isfinite(distance):
			return None
		return round(distance, 1)

	@staticmethod
	def _to_entry(
		data: CandidateAggregate,
		profile: UserProfile,
		friends: dict[UUID, Optional[UserProfile]],
		score: float,
	) -> schemas.RecommendationEntry:
		mutual_profiles = [(friend_id, friends.get(friend_id)) for friend_id in data.mutual_friend_ids]
		mutual_profiles.sort(key=lambda item: ((item[1].handle if item[1] else None) or "", str(item[0])))
		mutual_friends = [
			schemas.MutualFriend(
				user_id=friend_id,
				display_name=friend.display_name if friend else None,
				handle=friend.handle if friend else None,
				avatar_url=friend.avatar_url if friend else None,
			)
			for friend_id, friend in mutual_profiles[:PREVIEW_SIZE]
		]
		return schemas.RecommendationEntry(
			user=schemas.RecommendedUser(
				user_id=profile.id,
				display_name=profile.display_name,
				handle=profile.handle,
				avatar_url=profile.avatar_url,
				location=profile.location,
				region=profile.region,
				favorite_species=_visible_species(profile),
			),
			mutual_friends=mutual_friends,
			mutual_friend_count=data.mutual_count,
			shared_species=data.shared_species[:PREVIEW_SIZE],
			location_match=data.location_match,
			distance_km=data.distance_km,
			score=score,
		)
