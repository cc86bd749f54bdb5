"""Location helpers: forward geocoding and great-circle distance."""

from .distance import EARTH_RADIUS_KM, Coordinates, haversine_km  # noqa: F401
from .geocoding import (  # noqa: F401
	GeocodeCache,
	Geocoder,
	GoogleGeocoder,
	LookupState,
	build_address,
	normalize_address,
)
