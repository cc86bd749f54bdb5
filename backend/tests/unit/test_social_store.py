from uuid import UUID

import pytest

from wildnet.domain.social.models import (
	CANDIDATE_PROJECTION,
	Friendship,
	FriendshipStatus,
	UserFilter,
	UserProfile,
)
from wildnet.domain.social.store import MemorySocialStore, PostgresSocialStore

ME = UUID("00000000-0000-0000-0000-000000000001")
ALICE = UUID("00000000-0000-0000-0000-000000000002")
CAROL = UUID("00000000-0000-0000-0000-000000000004")


class _FakeConnection:
	def __init__(self, rows):
		self._rows = rows
		self.queries = []

	async def fetch(self, sql, *args):
		self.queries.append((sql, args))
		return self._rows

	async def fetchrow(self, sql, *args):
		self.queries.append((sql, args))
		return self._rows[0] if self._rows else None


class _Acquire:
	def __init__(self, conn):
		self._conn = conn

	async def __aenter__(self):
		return self._conn

	async def __aexit__(self, exc_type, exc, tb):
		return False


class _FakePool:
	def __init__(self, rows=()):
		self.conn = _FakeConnection(list(rows))
		self.acquired = 0

	def acquire(self):
		self.acquired += 1
		return _Acquire(self.conn)


async def _seeded_store() -> MemorySocialStore:
	store = MemorySocialStore()
	await store.seed(
		users=[
			UserProfile(id=ME, handle="me"),
			UserProfile(id=ALICE, handle="alice"),
			UserProfile(id=CAROL, handle="carol", is_public_profile=False),
		],
		friendships=[
			Friendship(requester_id=ME, addressee_id=ALICE, status=FriendshipStatus.ACCEPTED),
			Friendship(requester_id=CAROL, addressee_id=ME, status=FriendshipStatus.PENDING),
			Friendship(requester_id=ALICE, addressee_id=CAROL, status=FriendshipStatus.ACCEPTED),
		],
	)
	return store


@pytest.mark.asyncio
async def test_memory_store_populates_profiles_on_direct_friendships():
	store = await _seeded_store()

	[friendship] = await store.get_accepted_friendships_for_user(ME)

	assert friendship.other_party(ME) == ALICE
	assert friendship.profile_of(ALICE).handle == "alice"
	assert store.friendships[0].addressee is None


@pytest.mark.asyncio
async def test_memory_store_relationships_include_every_status():
	store = await _seeded_store()

	relationships = await store.get_all_relationships_for_user(ME)

	assert {item.status for item in relationships} == {FriendshipStatus.ACCEPTED, FriendshipStatus.PENDING}


@pytest.mark.asyncio
async def test_memory_store_batched_friendships_and_filters():
	store = await _seeded_store()

	edges = await store.get_accepted_friendships_for_users([ALICE])
	assert len(edges) == 2
	assert await store.get_accepted_friendships_for_users([]) == []

	public = await store.find_users_by_filter(UserFilter(ids=(CAROL, ALICE), public_only=True))
	assert [user.id for user in public] == [ALICE]
	everyone = await store.find_users_by_filter(UserFilter(), limit=2)
	assert [user.id for user in everyone] == [ME, ALICE]
	assert await store.find_users_by_filter(UserFilter(ids=())) == []
	assert store.calls["find_users_by_filter"] == 2
	assert store.calls["get_accepted_friendships_for_users"] == 1


def test_friendship_other_party_rejects_outsiders():
	friendship = Friendship(requester_id=ME, addressee_id=ALICE, status=FriendshipStatus.ACCEPTED)
	with pytest.raises(ValueError):
		friendship.other_party(CAROL)


def test_user_profile_from_record_tolerates_missing_fields():
	profile = UserProfile.from_record(
		{"id": str(ALICE), "handle": "alice", "favorite_species": ["owl", None, 3], "is_public_profile": None}
	)
	assert profile.id == ALICE
	assert profile.favorite_species == ("owl",)
	assert profile.is_public_profile is True
	assert profile.location is None


@pytest.mark.asyncio
async def test_postgres_store_reads_profile_and_prefixed_friend_columns():
	rows = [
		{
			"id": None,
			"requester_id": ME,
			"addressee_id": ALICE,
			"status": "accepted",
			"created_at": None,
			"responded_at": None,
			"requester_handle": "me",
			"requester_display_name": "Me",
			"requester_avatar_url": None,
			"addressee_handle": "alice",
			"addressee_display_name": "Alice",
			"addressee_avatar_url": None,
		}
	]
	pool = _FakePool(rows)
	store = PostgresSocialStore(pool)

	[friendship] = await store.get_accepted_friendships_for_user(ME)

	sql, args = pool.conn.queries[0]
	assert "f.status = 'accepted'" in sql
	assert args == (ME,)
	assert friendship.status is FriendshipStatus.ACCEPTED
	assert friendship.addressee.handle == "alice"
	assert friendship.requester.display_name == "Me"


@pytest.mark.asyncio
async def test_postgres_store_filter_query_uses_projection_and_visibility():
	pool = _FakePool([{"id": ALICE, "handle": "alice", "is_public_profile": True}])
	store = PostgresSocialStore(pool)

	users = await store.find_users_by_filter(
		UserFilter(ids=(ALICE, CAROL), public_only=True),
		CANDIDATE_PROJECTION,
		limit=5,
	)

	sql, args = pool.conn.queries[0]
	assert "u.id = ANY($1::uuid[])" in sql
	assert "u.is_public_profile" in sql
	assert "LIMIT $2" in sql
	assert args == ([ALICE, CAROL], 5)
	assert [user.handle for user in users] == ["alice"]


@pytest.mark.asyncio
async def test_postgres_store_skips_queries_for_empty_batches():
	pool = _FakePool()
	store = PostgresSocialStore(pool)

	assert await store.get_accepted_friendships_for_users([]) == []
	assert await store.find_users_by_filter(UserFilter(ids=())) == []
	assert pool.acquired == 0


@pytest.mark.asyncio
async def test_postgres_store_rejects_unknown_projection_columns():
	store = PostgresSocialStore(_FakePool())

	with pytest.raises(ValueError):
		await store.find_users_by_filter(UserFilter(), ["id", "password_hash"])
