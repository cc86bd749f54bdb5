"""Ranking helpers for friend recommendations."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

MUTUAL_FRIEND_WEIGHT = 3.0
SHARED_SPECIES_WEIGHT = 2.0
LOCATION_MATCH_WEIGHT = 1.0
PROXIMITY_WEIGHT = 1.0
# Distance at which the proximity term has halved.
PROXIMITY_SCALE_KM = 30.0


def proximity_bonus(distance_km: Optional[float]) -> float:
	"""Map a distance to a 0..PROXIMITY_WEIGHT bonus; unknown distance earns nothing."""

	if distance_km is None:
		return 0.0
	return PROXIMITY_WEIGHT / (1.0 + max(distance_km, 0.0) / PROXIMITY_SCALE_KM)


def recommendation_score(
	mutual_count: int,
	shared_species_count: int,
	location_match: bool,
	distance_km: Optional[float],
) -> float:
	"""Blend the candidate signals into a single score."""

	s_mutual = MUTUAL_FRIEND_WEIGHT * max(mutual_count, 0)
	s_species = SHARED_SPECIES_WEIGHT * max(shared_species_count, 0)
	s_location = LOCATION_MATCH_WEIGHT if location_match else 0.0
	return round(s_mutual + s_species + s_location + proximity_bonus(distance_km), 4)


def sort_key(
	score: float,
	mutual_count: int,
	shared_species_count: int,
	handle: Optional[str],
	user_id: UUID,
) -> tuple[float, int, int, str, str]:
	"""Order by score, then mutual friends, then shared species, then handle."""

	return (-score, -mutual_count, -shared_species_count, handle or "", str(user_id))
