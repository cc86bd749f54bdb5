"""Social domain exports."""

from .exceptions import RecommendationRateLimitExceeded, SocialError, UserNotFound  # noqa: F401
from .models import (  # noqa: F401
	CandidateAggregate,
	Friendship,
	FriendshipStatus,
	UserFilter,
	UserProfile,
)
from .recommendations import RecommendationEngine  # noqa: F401
from .schemas import MutualFriend, RecommendationEntry, RecommendationsResponse  # noqa: F401
from .store import MemorySocialStore, PostgresSocialStore, SocialStore  # noqa: F401
