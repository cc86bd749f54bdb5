"""HS256 access tokens for the wildnet app.

Tokens carry the user id in ``sub`` plus optional ``handle`` and ``name``
claims; issuer, audience and expiry are always checked.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt
from jwt import InvalidTokenError

from wildnet.settings import settings


ISSUER = "wildnet-api"
AUDIENCE = "wildnet-app"
ALGORITHM = "HS256"


@dataclass(frozen=True, slots=True)
class AccessClaims:
    subject: str
    expires_at: int
    handle: Optional[str] = None
    display_name: Optional[str] = None


def _optional_text(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def issue_access_token(
    subject: str,
    *,
    handle: Optional[str] = None,
    display_name: Optional[str] = None,
    ttl_seconds: Optional[int] = None,
) -> str:
    now = int(time.time())
    ttl = settings.access_token_ttl_seconds if ttl_seconds is None else ttl_seconds
    body: Dict[str, Any] = {"iss": ISSUER, "aud": AUDIENCE, "iat": now, "exp": now + ttl, "sub": subject}
    if handle is not None:
        body["handle"] = handle
    if display_name is not None:
        body["name"] = display_name
    return jwt.encode(body, settings.secret_key, algorithm=ALGORITHM)


def decode_access(token: str) -> AccessClaims:
    """Decode and validate an access token.

    Raises jwt.InvalidTokenError subclasses on failure.
    """
    payload = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[ALGORITHM],
        audience=AUDIENCE,
        issuer=ISSUER,
        leeway=5,
        options={"require": ["exp", "iat", "iss", "aud", "sub"]},
    )
    subject = str(payload.get("sub") or "").strip()
    if not subject:
        raise InvalidTokenError("missing_claim:sub")
    return AccessClaims(
        subject=subject,
        expires_at=int(payload["exp"]),
        handle=_optional_text(payload.get("handle")),
        display_name=_optional_text(payload.get("name") or payload.get("display_name")),
    )
