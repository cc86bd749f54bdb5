"""Profile and friendship lookups used by the social features."""

from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import replace
from typing import Iterable, Optional, Protocol, Sequence
from uuid import UUID

import asyncpg

from wildnet.domain.social.models import (
	CANDIDATE_PROJECTION,
	Friendship,
	FriendshipStatus,
	UserFilter,
	UserProfile,
)


class SocialStore(Protocol):
	"""Read-only contract the recommendation engine relies on."""

	async def find_user_by_id(self, user_id: UUID) -> Optional[UserProfile]:
		...

	async def find_users_by_filter(
		self,
		user_filter: UserFilter,
		projection: Optional[Sequence[str]] = None,
		*,
		limit: Optional[int] = None,
	) -> list[UserProfile]:
		...

	async def get_accepted_friendships_for_user(self, user_id: UUID) -> list[Friendship]:
		...

	async def get_all_relationships_for_user(self, user_id: UUID) -> list[Friendship]:
		...

	async def get_accepted_friendships_for_users(self, user_ids: Sequence[UUID]) -> list[Friendship]:
		...


_USER_COLUMNS = frozenset(CANDIDATE_PROJECTION)
# requester_id and addressee_id come from the friendship row itself.
_PROFILE_COLUMNS = ("handle", "display_name", "avatar_url")

_FRIENDSHIP_COLUMNS = "f.id, f.requester_id, f.addressee_id, f.status, f.created_at, f.responded_at"


def _user_columns(projection: Optional[Sequence[str]]) -> str:
	if not projection:
		columns = list(CANDIDATE_PROJECTION)
	else:
		unknown = [name for name in projection if name not in _USER_COLUMNS]
		if unknown:
			raise ValueError(f"unknown user columns: {', '.join(unknown)}")
		columns = ["id"] + [name for name in projection if name != "id"]
	return ", ".join(f"u.{name}" for name in columns)


def _prefixed(alias: str, prefix: str) -> str:
	return ", ".join(f"{alias}.{name} AS {prefix}{name}" for name in _PROFILE_COLUMNS)


_ACCEPTED_FOR_USER_SQL = f"""
SELECT {_FRIENDSHIP_COLUMNS},
	{_prefixed("r", "requester_")},
	{_prefixed("a", "addressee_")}
FROM friendships f
JOIN users r ON r.id = f.requester_id
JOIN users a ON a.id = f.addressee_id
WHERE f.status = 'accepted'
	AND (f.requester_id = $1 OR f.addressee_id = $1)
"""

_RELATIONSHIPS_FOR_USER_SQL = f"""
SELECT {_FRIENDSHIP_COLUMNS}
FROM friendships f
WHERE f.requester_id = $1 OR f.addressee_id = $1
"""

_ACCEPTED_FOR_USERS_SQL = f"""
SELECT {_FRIENDSHIP_COLUMNS}
FROM friendships f
WHERE f.status = 'accepted'
	AND (f.requester_id = ANY($1::uuid[]) OR f.addressee_id = ANY($1::uuid[]))
"""


class PostgresSocialStore(SocialStore):
	"""asyncpg-backed store; one statement per operation."""

	def __init__(self, pool: asyncpg.Pool) -> None:
		self._pool = pool

	async def find_user_by_id(self, user_id: UUID) -> Optional[UserProfile]:
		sql = f"SELECT {_user_columns(None)} FROM users u WHERE u.id = $1"
		async with self._pool.acquire() as conn:
			record = await conn.fetchrow(sql, user_id)
		return UserProfile.from_record(record) if record else None

	async def find_users_by_filter(
		self,
		user_filter: UserFilter,
		projection: Optional[Sequence[str]] = None,
		*,
		limit: Optional[int] = None,
	) -> list[UserProfile]:
		if user_filter.ids is not None and not user_filter.ids:
			return []
		clauses: list[str] = []
		args: list[object] = []
		if user_filter.ids is not None:
			args.append(list(user_filter.ids))
			clauses.append(f"u.id = ANY(${len(args)}::uuid[])")
		if user_filter.public_only:
			clauses.append("u.is_public_profile")
		sql = f"SELECT {_user_columns(projection)} FROM users u"
		if clauses:
			sql += " WHERE " + " AND ".join(clauses)
		sql += " ORDER BY u.id"
		if limit is not None:
			args.append(int(limit))
			sql += f" LIMIT ${len(args)}"
		async with self._pool.acquire() as conn:
			rows = await conn.fetch(sql, *args)
		return [UserProfile.from_record(row) for row in rows]

	async def get_accepted_friendships_for_user(self, user_id: UUID) -> list[Friendship]:
		async with self._pool.acquire() as conn:
			rows = await conn.fetch(_ACCEPTED_FOR_USER_SQL, user_id)
		friendships: list[Friendship] = []
		for row in rows:
			friendship = Friendship.from_record(row)
			friendship.requester = UserProfile.from_record(row, prefix="requester_")
			friendship.addressee = UserProfile.from_record(row, prefix="addressee_")
			friendships.append(friendship)
		return friendships

	async def get_all_relationships_for_user(self, user_id: UUID) -> list[Friendship]:
		async with self._pool.acquire() as conn:
			rows = await conn.fetch(_RELATIONSHIPS_FOR_USER_SQL, user_id)
		return [Friendship.from_record(row) for row in rows]

	async def get_accepted_friendships_for_users(self, user_ids: Sequence[UUID]) -> list[Friendship]:
		if not user_ids:
			return []
		async with self._pool.acquire() as conn:
			rows = await conn.fetch(_ACCEPTED_FOR_USERS_SQL, list(user_ids))
		return [Friendship.from_record(row) for row in rows]


class MemorySocialStore(SocialStore):
	"""In-process store with the same contract, used without a database and in tests.

	``calls`` counts the lookups that actually ran, per operation name.
	"""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self.users: dict[UUID, UserProfile] = {}
		self.friendships: list[Friendship] = []
		self.calls: Counter[str] = Counter()

	async def seed(
		self,
		*,
		users: Iterable[UserProfile] = (),
		friendships: Iterable[Friendship] = (),
	) -> None:
		async with self._lock:
			for user in users:
				self.users[user.id] = user
			self.friendships.extend(friendships)

	async def reset(self) -> None:
		async with self._lock:
			self.users.clear()
			self.friendships.clear()
			self.calls.clear()

	async def find_user_by_id(self, user_id: UUID) -> Optional[UserProfile]:
		async with self._lock:
			self.calls["find_user_by_id"] += 1
			return self.users.get(user_id)

	async def find_users_by_filter(
		self,
		user_filter: UserFilter,
		projection: Optional[Sequence[str]] = None,
		*,
		limit: Optional[int] = None,
	) -> list[UserProfile]:
		if user_filter.ids is not None and not user_filter.ids:
			return []
		async with self._lock:
			self.calls["find_users_by_filter"] += 1
			wanted = set(user_filter.ids) if user_filter.ids is not None else None
			matches = [
				user
				for user_id, user in sorted(self.users.items(), key=lambda item: str(item[0]))
				if (wanted is None or user_id in wanted) and (user.is_public_profile or not user_filter.public_only)
			]
		return matches[:limit] if limit is not None else matches

	async def get_accepted_friendships_for_user(self, user_id: UUID) -> list[Friendship]:
		async with self._lock:
			self.calls["get_accepted_friendships_for_user"] += 1
			return [
				replace(
					friendship,
					requester=self.users.get(friendship.requester_id),
					addressee=self.users.get(friendship.addressee_id),
				)
				for friendship in self.friendships
				if friendship.status is FriendshipStatus.ACCEPTED and friendship.involves(user_id)
			]

	async def get_all_relationships_for_user(self, user_id: UUID) -> list[Friendship]:
		async with self._lock:
			self.calls["get_all_relationships_for_user"] += 1
			return [replace(friendship) for friendship in self.friendships if friendship.involves(user_id)]

	async def get_accepted_friendships_for_users(self, user_ids: Sequence[UUID]) -> list[Friendship]:
		if not user_ids:
			return []
		wanted = set(user_ids)
		async with self._lock:
			self.calls["get_accepted_friendships_for_users"] += 1
			return [
				replace(friendship)
				for friendship in self.friendships
				if friendship.status is FriendshipStatus.ACCEPTED
				and (friendship.requester_id in wanted or friendship.addressee_id in wanted)
			]
