"""Fixed-window request budgets kept in redis."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Optional

from wildnet.infra.redis import redis_client


@dataclass(frozen=True, slots=True)
class RateWindow:
	"""Outcome of charging one request against a caller's budget."""

	allowed: bool
	count: int
	limit: int
	retry_after: int

	@property
	def remaining(self) -> int:
		return max(0, self.limit - self.count)


def _window_key(kind: str, actor_id: str, slot: int, window: int) -> str:
	return f"rl:{kind}:{actor_id}:{slot}:{window}"


async def charge(
	kind: str,
	actor_id: str,
	*,
	limit: int,
	window_seconds: int = 60,
	now: Optional[float] = None,
) -> RateWindow:
	"""Count one request for ``actor_id`` in the current window and report the budget."""

	now = time.time() if now is None else now
	window = max(1, int(window_seconds))
	slot = int(math.floor(now / window))
	retry_after = max(1, int(math.ceil((slot + 1) * window - now)))
	if limit <= 0:
		return RateWindow(allowed=False, count=0, limit=0, retry_after=retry_after)

	key = _window_key(kind, actor_id, slot, window)
	async with redis_client.pipeline(transaction=True) as pipe:
		pipe.incr(key)
		pipe.expire(key, window)
		count, _ = await pipe.execute()
	count = int(count)
	return RateWindow(allowed=count <= limit, count=count, limit=limit, retry_after=retry_after)


class RateLimitExceeded(Exception):
	"""Raised when a caller has spent its budget for the current window."""

	def __init__(self, message: str = "rate_limit", *, retry_after: Optional[int] = None) -> None:
		super().__init__(message)
		self.retry_after = retry_after
