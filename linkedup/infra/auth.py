"""Authentication helpers for FastAPI endpoints.

Every operation acts on behalf of exactly one signed-in user. The identity
provider issues bearer JWTs; in development the ``X-User-Id`` header is accepted
so local tools can act as any user.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidTokenError

from linkedup.infra import jwt as jwt_helper
from linkedup.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	display_name: Optional[str] = None


_bearer_scheme = HTTPBearer(auto_error=False)


def verify_access_jwt(token: str) -> AuthenticatedUser:
	try:
		payload = jwt_helper.decode_access(token)
	except InvalidTokenError:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token") from None
	display_name = payload.get("name")
	return AuthenticatedUser(
		id=str(payload["sub"]).strip(),
		display_name=str(display_name) if display_name is not None else None,
	)


def resolve_user(token: Optional[str], header_user_id: Optional[str]) -> Optional[AuthenticatedUser]:
	"""Shared by HTTP dependencies and socket handshakes."""
	if token:
		return verify_access_jwt(token)
	if settings.is_dev() and header_user_id and header_user_id.strip():
		return AuthenticatedUser(id=header_user_id.strip())
	return None


async def get_optional_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[AuthenticatedUser]:
	token = credentials.credentials if credentials and credentials.scheme.lower() == "bearer" else None
	return resolve_user(token, x_user_id)


async def get_current_user(
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> AuthenticatedUser:
	"""Resolve the signed-in user or fail with 401 not_authenticated."""
	if user is None:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="not_authenticated")
	return user


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


def socket_user(environ: dict, auth: Optional[dict] = None) -> AuthenticatedUser:
	"""Resolve the user behind a socket.io handshake or refuse the connection."""
	scope = environ.get("asgi.scope", environ)
	auth_payload = auth or environ.get("auth") or scope.get("auth") or {}
	token = auth_payload.get("token")
	if not token:
		header = _header(scope, "authorization") or ""
		if header.lower().startswith("bearer "):
			token = header[7:].strip()
	user_id = auth_payload.get("userId") or _header(scope, "x-user-id")
	try:
		user = resolve_user(token, user_id)
	except HTTPException:
		raise ConnectionRefusedError("invalid_token") from None
	if user is None:
		raise ConnectionRefusedError("missing user id")
	return user
