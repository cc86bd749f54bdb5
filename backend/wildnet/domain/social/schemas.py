"""Pydantic schemas for friend recommendations."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class MutualFriend(BaseModel):
	user_id: UUID
	display_name: Optional[str] = None
	handle: Optional[str] = None
	avatar_url: Optional[str] = None


class RecommendedUser(BaseModel):
	user_id: UUID
	display_name: Optional[str] = None
	handle: Optional[str] = None
	avatar_url: Optional[str] = None
	location: Optional[str] = None
	region: Optional[str] = None
	favorite_species: list[str] = Field(default_factory=list)


class RecommendationEntry(BaseModel):
	user: RecommendedUser
	mutual_friends: list[MutualFriend] = Field(default_factory=list, description="Preview of connecting friends")
	mutual_friend_count: int = Field(..., ge=1)
	shared_species: list[str] = Field(default_factory=list)
	location_match: bool = False
	distance_km: Optional[float] = Field(default=None, ge=0.0)
	score: float = Field(..., gt=0.0)


class RecommendationsData(BaseModel):
	recommendations: list[RecommendationEntry]
	count: int


class RecommendationsResponse(BaseModel):
	message: str = "Friend recommendations fetched successfully"
	data: RecommendationsData
