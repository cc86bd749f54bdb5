"""Forward geocoding client and the request-scoped lookup cache."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol, Union

import httpx

from wildnet.domain.location.distance import Coordinates
from wildnet.obs import metrics as obs_metrics
from wildnet.settings import settings

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\s,]+")


class Geocoder(Protocol):
	"""Interface for address to coordinate lookups.

	Implementations return None on any failure; they may be slow or rate-limited.
	"""

	async def forward_geocode(self, address: str) -> Optional[Coordinates]:
		...


def build_address(location: Optional[str], region: Optional[str]) -> Optional[str]:
	"""Join the non-blank profile location parts into a geocoder query."""

	parts = [value.strip() for value in (location, region) if isinstance(value, str)]
	parts = [value for value in parts if value]
	if not parts:
		return None
	return ", ".join(parts)


def normalize_address(address: str) -> str:
	return _SEPARATORS.sub(" ", address).strip().casefold()


@dataclass
class GoogleGeocoder(Geocoder):
	"""Thin wrapper around the Google Geocoding API.

	Failures and missing credentials are logged and reported as None so the
	calling flow can continue without the location signal.
	"""

	http: httpx.AsyncClient
	api_key: Optional[str] = None
	endpoint: str = settings.geocoding_endpoint
	timeout: float = settings.geocoding_timeout_seconds

	def __post_init__(self) -> None:
		if not self.api_key:
			logger.warning("GoogleGeocoder initialised without an API key; distance signal disabled")

	@classmethod
	def from_settings(cls, http: httpx.AsyncClient) -> "GoogleGeocoder":
		return cls(
			http=http,
			api_key=settings.google_geocoding_api_key,
			endpoint=settings.geocoding_endpoint,
			timeout=settings.geocoding_timeout_seconds,
		)

	async def forward_geocode(self, address: str) -> Optional[Coordinates]:
		if not self.api_key:
			return None
		try:
			response = await self.http.get(
				self.endpoint,
				params={"address": address, "key": self.api_key},
				timeout=self.timeout,
			)
			response.raise_for_status()
			data = response.json()
		except httpx.HTTPError as exc:
			logger.error("geocoding request failed", extra={"error": str(exc)})
			return None
		except ValueError:
			logger.error("geocoding response was not valid JSON")
			return None

		status = data.get("status") if isinstance(data, dict) else None
		if status != "OK":
			logger.warning(
				"geocoding returned non-OK status",
				extra={"status": status, "error_message": data.get("error_message") if isinstance(data, dict) else None},
			)
			return None
		try:
			point = data["results"][0]["geometry"]["location"]
			return Coordinates(latitude=float(point["lat"]), longitude=float(point["lng"]))
		except (KeyError, IndexError, TypeError, ValueError):
			logger.warning("geocoding result missing geometry")
			return None


class LookupState(str, Enum):
	UNRESOLVABLE = "unresolvable"


CacheEntry = Union[Coordinates, LookupState]


@dataclass
class GeocodeCache:
	"""Memoizes geocoder answers for the lifetime of one recommendation computation.

	Keys are normalized address strings; failed lookups are remembered as
	``LookupState.UNRESOLVABLE`` so they are not retried within the same
	computation. Build a new instance per computation; never share one across
	requests or users.
	"""

	geocoder: Geocoder
	_entries: dict[str, CacheEntry] = field(default_factory=dict)
	lookups: int = 0
	hits: int = 0

	async def resolve(self, address: Optional[str]) -> Optional[Coordinates]:
		if not address:
			return None
		key = normalize_address(address)
		if not key:
			return None
		cached = self._entries.get(key)
		if cached is not None:
			self.hits += 1
			obs_metrics.inc_geocode_lookup("hit")
			return cached if isinstance(cached, Coordinates) else None

		self.lookups += 1
		result = await self.geocoder.forward_geocode(address.strip())
		if result is None:
			self._entries[key] = LookupState.UNRESOLVABLE
			obs_metrics.inc_geocode_lookup("unresolvable")
			return None
		self._entries[key] = result
		obs_metrics.inc_geocode_lookup("resolved")
		return result

	def __len__(self) -> int:
		return len(self._entries)
