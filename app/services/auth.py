from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings
from app.core.errors import ForbiddenError, UnauthorizedError


bearer = HTTPBearer(auto_error=False)

ROLES = {"student", "teacher", "admin"}


@dataclass(slots=True)
class AuthUser:
    user_id: int
    email: str
    name: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _decode_token(token: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            leeway=settings.jwt_exp_leeway_seconds,
            options={"verify_aud": False, "require": ["sub", "exp"]},
        )
    except jwt.PyJWTError as exc:
        raise UnauthorizedError("Invalid token") from exc

    return payload


def _parse_payload(payload: dict[str, Any]) -> AuthUser:
    raw_id = payload.get("sub") or payload.get("user_id")
    try:
        user_id = int(raw_id)
    except (TypeError, ValueError) as exc:
        raise UnauthorizedError("Invalid sub claim") from exc

    role = str(payload.get("role") or "").strip().lower()
    if role not in ROLES:
        raise UnauthorizedError("Invalid role claim")

    email = str(payload.get("email") or "").strip().lower()
    return AuthUser(
        user_id=user_id,
        email=email,
        name=str(payload.get("name") or email or user_id),
        role=role,
    )


def _token_from_request(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    cookie = (request.cookies.get(settings.auth_cookie_name) or "").strip()
    return cookie or None


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> AuthUser:
    # Identity comes from the signed token only, so rejected requests never reach the database.
    token = _token_from_request(request, credentials)
    if not token:
        raise UnauthorizedError("Missing bearer token or session cookie")
    return _parse_payload(_decode_token(token))


async def get_current_admin(current_user: AuthUser = Depends(get_current_user)) -> AuthUser:
    require_role(current_user, {"admin"})
    return current_user


def require_role(user: AuthUser, allowed: set[str]) -> None:
    if user.role not in allowed:
        raise ForbiddenError("Forbidden")
