"""Authentication helpers for FastAPI endpoints.

Bearer HS256 JWTs are the only accepted credential outside development. In dev,
simple X-User-* headers are honoured so local tools can play and submit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from cinetrivia.infra import jwt as jwt_helper
from cinetrivia.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	handle: Optional[str] = None
	display_name: Optional[str] = None
	avatar_url: Optional[str] = None


_bearer_scheme = HTTPBearer(auto_error=False)


def _optional_str(value: object) -> Optional[str]:
	if value is None:
		return None
	text = str(value).strip()
	return text or None


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return an AuthenticatedUser."""
	try:
		payload = jwt_helper.decode_access(token)
	except jwt_helper.InvalidTokenError:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")

	sub = str(payload.get("sub") or "").strip()
	if not sub:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")

	return AuthenticatedUser(
		id=sub,
		handle=_optional_str(payload.get("username") or payload.get("handle")),
		display_name=_optional_str(payload.get("name") or payload.get("display_name")),
		avatar_url=_optional_str(payload.get("avatar")),
	)


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_handle: Optional[str] = Header(default=None, alias="X-User-Handle"),
	x_user_name: Optional[str] = Header(default=None, alias="X-User-Name"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user.

	In development we allow simple headers. In all other environments, headers are
	ignored and a valid Bearer JWT is required.
	"""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)

	if settings.is_dev() and x_user_id:
		return AuthenticatedUser(
			id=x_user_id,
			handle=_optional_str(x_user_handle),
			display_name=_optional_str(x_user_name),
		)

	raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
