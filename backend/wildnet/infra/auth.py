"""Authentication helpers for FastAPI endpoints.

Bearer JWTs (HS256, signed with settings.secret_key) are accepted everywhere;
the X-User-Id header is only honoured in development.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from wildnet.infra import jwt as jwt_helper
from wildnet.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	handle: Optional[str] = None
	display_name: Optional[str] = None

	@property
	def user_uuid(self) -> UUID:
		return UUID(self.id)


_bearer_scheme = HTTPBearer(auto_error=False)


def _invalid_token() -> HTTPException:
	return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")


def _ensure_uuid(value: str) -> str:
	try:
		return str(UUID(value))
	except (TypeError, ValueError):
		raise _invalid_token() from None


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return an AuthenticatedUser."""
	try:
		claims = jwt_helper.decode_access(token)
	except jwt_helper.InvalidTokenError:
		raise _invalid_token() from None

	return AuthenticatedUser(
		id=_ensure_uuid(claims.subject),
		handle=claims.handle,
		display_name=claims.display_name,
	)


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user.

	In development we allow a simple header. In all other environments a valid
	Bearer JWT is required.
	"""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)

	if settings.is_dev() and x_user_id:
		return AuthenticatedUser(id=_ensure_uuid(x_user_id.strip()))

	raise _invalid_token()
