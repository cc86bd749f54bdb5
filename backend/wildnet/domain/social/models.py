"""Domain models for profiles, friendships and recommendation candidates."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional
from uuid import UUID


class FriendshipStatus(str, Enum):
	"""Friendship states tracked in the database."""

	PENDING = "pending"
	ACCEPTED = "accepted"
	DECLINED = "declined"
	BLOCKED = "blocked"


def _as_uuid(value: Any) -> UUID:
	return value if isinstance(value, UUID) else UUID(str(value))


def _as_text(value: Any) -> Optional[str]:
	return value if isinstance(value, str) else None


@dataclass(frozen=True, slots=True)
class UserProfile:
	"""Read-only view of a user profile as seen by the social features."""

	id: UUID
	handle: Optional[str] = None
	display_name: Optional[str] = None
	avatar_url: Optional[str] = None
	location: Optional[str] = None
	region: Optional[str] = None
	favorite_species: tuple[str, ...] = ()
	is_public_profile: bool = True

	@classmethod
	def from_record(cls, record: Mapping[str, Any], *, prefix: str = "") -> "UserProfile":
		species = record.get(f"{prefix}favorite_species") or ()
		public = record.get(f"{prefix}is_public_profile")
		return cls(
			id=_as_uuid(record[f"{prefix}id"]),
			handle=_as_text(record.get(f"{prefix}handle")),
			display_name=_as_text(record.get(f"{prefix}display_name")),
			avatar_url=_as_text(record.get(f"{prefix}avatar_url")),
			location=_as_text(record.get(f"{prefix}location")),
			region=_as_text(record.get(f"{prefix}region")),
			favorite_species=tuple(item for item in species if isinstance(item, str)),
			is_public_profile=True if public is None else bool(public),
		)


@dataclass(slots=True)
class Friendship:
	"""Directional friendship row; callers treat both participants symmetrically."""

	requester_id: UUID
	addressee_id: UUID
	status: FriendshipStatus
	id: Optional[UUID] = None
	created_at: Optional[datetime] = None
	responded_at: Optional[datetime] = None
	requester: Optional[UserProfile] = None
	addressee: Optional[UserProfile] = None

	def involves(self, user_id: UUID) -> bool:
		return user_id == self.requester_id or user_id == self.addressee_id

	def other_party(self, user_id: UUID) -> UUID:
		if user_id == self.requester_id:
			return self.addressee_id
		if user_id == self.addressee_id:
			return self.requester_id
		raise ValueError(f"user {user_id} is not part of friendship {self.id}")

	def profile_of(self, user_id: UUID) -> Optional[UserProfile]:
		if user_id == self.requester_id:
			return self.requester
		if user_id == self.addressee_id:
			return self.addressee
		return None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Friendship":
		raw_id = record.get("id")
		return cls(
			id=_as_uuid(raw_id) if raw_id is not None else None,
			requester_id=_as_uuid(record["requester_id"]),
			addressee_id=_as_uuid(record["addressee_id"]),
			status=FriendshipStatus(record["status"]),
			created_at=record.get("created_at"),
			responded_at=record.get("responded_at"),
		)


@dataclass(frozen=True, slots=True)
class UserFilter:
	"""Selection for batched profile lookups.

	``ids=None`` means no id restriction; an empty tuple matches nobody.
	"""

	ids: Optional[tuple[UUID, ...]] = None
	public_only: bool = False


# Profile fields the recommendation engine reads from each candidate.
CANDIDATE_PROJECTION: tuple[str, ...] = (
	"id",
	"handle",
	"display_name",
	"avatar_url",
	"location",
	"region",
	"favorite_species",
	"is_public_profile",
)


@dataclass(slots=True)
class CandidateAggregate:
	"""Signals gathered for one friend-of-friend candidate during a single computation."""

	user_id: UUID
	mutual_friend_ids: set[UUID]
	shared_species: list[str] = field(default_factory=list)
	location_match: bool = False
	distance_km: Optional[float] = None
	profile: Optional[UserProfile] = None

	def __post_init__(self) -> None:
		if not self.mutual_friend_ids:
			raise ValueError("a candidate needs at least one connecting friend")

	@property
	def mutual_count(self) -> int:
		return len(self.mutual_friend_ids)
