import sys
from pathlib import Path
from typing import Optional

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from wildnet.domain.location import Coordinates
from wildnet.domain.social import service as social_service
from wildnet.infra import postgres
from wildnet.main import app
from wildnet.settings import settings


class FakeGeocoder:
	"""Geocoder double answering from a fixed address table and recording every call."""

	def __init__(self, known: Optional[dict[str, Coordinates]] = None) -> None:
		self.known: dict[str, Coordinates] = dict(known or {})
		self.calls: list[str] = []

	async def forward_geocode(self, address: str) -> Optional[Coordinates]:
		self.calls.append(address)
		return self.known.get(address)


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from wildnet.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Run every test as a development deployment without an external geocoder."""
	original_env = settings.environment
	original_key = settings.google_geocoding_api_key
	original_metrics_public = settings.obs_metrics_public
	settings.environment = "dev"
	settings.google_geocoding_api_key = None
	settings.obs_metrics_public = True
	try:
		yield
	finally:
		settings.environment = original_env
		settings.google_geocoding_api_key = original_key
		settings.obs_metrics_public = original_metrics_public


@pytest_asyncio.fixture(autouse=True)
async def clear_memory_store():
	await social_service.reset_memory_state()
	yield
	await social_service.reset_memory_state()


@pytest.fixture
def fake_geocoder():
	return FakeGeocoder()


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
