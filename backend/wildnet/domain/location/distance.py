"""Great-circle distance between two coordinate pairs."""

from __future__ import annotations

import math
from dataclasses import dataclass

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True, slots=True)
class Coordinates:
	latitude: float
	longitude: float


def haversine_km(a: Coordinates, b: Coordinates) -> float:
	"""Return the haversine distance between ``a`` and ``b`` in kilometers."""

	phi1, phi2 = math.radians(a.latitude), math.radians(b.latitude)
	dphi = math.radians(b.latitude - a.latitude)
	dlambda = math.radians(b.longitude - a.longitude)
	h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
	c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
	return EARTH_RADIUS_KM * c
