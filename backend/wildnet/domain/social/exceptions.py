"""Domain-level exceptions for social features."""

from __future__ import annotations

from typing import Optional

from wildnet.infra.rate_limit import RateLimitExceeded


class SocialError(Exception):
    """Base class for social feature errors."""

    reason: str = "unknown"

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or self.reason)
        if reason:
            self.reason = reason


class UserNotFound(SocialError):
    reason = "user_not_found"


class RecommendationRateLimitExceeded(RateLimitExceeded):
    """Raised when a caller requests recommendations too often."""

    reason = "rate_limit"

    def __init__(self, *, retry_after: Optional[int] = None) -> None:
        super().__init__(self.reason, retry_after=retry_after)
