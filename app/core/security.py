from __future__ import annotations

from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from app.core.config import settings

# bcrypt only looks at the first 72 bytes of a secret.
_BCRYPT_MAX_BYTES = 72


def _password_bytes(plain_password: str) -> bytes:
    return (plain_password or "").encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain_password: str) -> str:
    return bcrypt.hashpw(_password_bytes(plain_password), bcrypt.gensalt(rounds=10)).decode("ascii")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("ascii"))
    except ValueError:
        return False


def create_access_token(
    *,
    user_id: int,
    email: str,
    role: str,
    name: str = "",
    expires_in: timedelta | None = None,
) -> str:
    """Sign a session token carrying the identity the auth guard needs."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "name": name,
        "iat": now,
        "exp": now + (expires_in or timedelta(days=settings.jwt_expires_days)),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
