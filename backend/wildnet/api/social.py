"""REST API surface for friend recommendations."""

from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, status

from wildnet.domain.social.exceptions import RecommendationRateLimitExceeded, UserNotFound
from wildnet.domain.social.schemas import RecommendationsResponse
from wildnet.domain.social.service import RecommendationService
from wildnet.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["friends"])

_service = RecommendationService()


def get_recommendation_service() -> RecommendationService:
	return _service


async def shutdown() -> None:
	await _service.aclose()


def _map_error(exc: Union[UserNotFound, RecommendationRateLimitExceeded]) -> HTTPException:
	if isinstance(exc, RecommendationRateLimitExceeded):
		headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
		return HTTPException(status.HTTP_429_TOO_MANY_REQUESTS, detail=exc.reason, headers=headers)
	return HTTPException(status.HTTP_404_NOT_FOUND, detail=exc.reason)


@router.get("/friends/recommendations", response_model=RecommendationsResponse)
async def friend_recommendations(
	limit: Optional[str] = Query(default=None, description="Maximum number of recommendations (1-50)"),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: RecommendationService = Depends(get_recommendation_service),
) -> RecommendationsResponse:
	try:
		return await service.recommend(auth_user, limit)
	except (UserNotFound, RecommendationRateLimitExceeded) as exc:
		raise _map_error(exc) from None
