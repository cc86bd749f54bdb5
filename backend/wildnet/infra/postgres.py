"""Lazily created asyncpg pool shared by the Postgres-backed stores."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import asyncpg

from wildnet.settings import settings

logger = logging.getLogger(__name__)

_pool: Optional[asyncpg.pool.Pool] = None
_init_lock = asyncio.Lock()


async def init_pool() -> asyncpg.pool.Pool:
	global _pool
	async with _init_lock:
		if _pool is None:
			_pool = await asyncpg.create_pool(
				dsn=settings.postgres_url,
				min_size=settings.postgres_min_pool_size,
				max_size=settings.postgres_max_pool_size,
				command_timeout=settings.postgres_command_timeout_seconds,
				server_settings={"application_name": settings.service_name},
			)
			logger.info(
				"postgres pool ready min=%d max=%d",
				settings.postgres_min_pool_size,
				settings.postgres_max_pool_size,
			)
	return _pool


def set_pool(pool: Optional[asyncpg.pool.Pool]) -> None:
	"""Install an externally managed pool (or clear it with None)."""

	global _pool
	_pool = pool


async def get_pool() -> asyncpg.pool.Pool:
	if _pool is None:
		await init_pool()
	assert _pool is not None, "postgres pool unavailable"
	return _pool


async def close_pool() -> None:
	global _pool
	pool, _pool = _pool, None
	if pool is not None:
		await pool.close()
