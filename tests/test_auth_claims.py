from datetime import timedelta

import jwt
import pytest
from fastapi import HTTPException

from app.core.security import create_access_token
from app.services.auth import AuthUser, _decode_token, _parse_payload, require_role


def test_parse_payload_success() -> None:
    user = _parse_payload(
        {
            "sub": "123",
            "email": "U@example.com",
            "name": "User",
            "role": "teacher",
        }
    )
    assert user.user_id == 123
    assert user.email == "u@example.com"
    assert user.role == "teacher"
    assert not user.is_admin


def test_parse_payload_requires_sub() -> None:
    with pytest.raises(HTTPException) as exc:
        _parse_payload({"email": "u@example.com", "role": "student"})
    assert exc.value.status_code == 401


def test_parse_payload_rejects_unknown_role() -> None:
    with pytest.raises(HTTPException) as exc:
        _parse_payload({"sub": "1", "role": "superuser"})
    assert exc.value.status_code == 401


def test_decode_token_roundtrip() -> None:
    token = create_access_token(user_id=7, email="a@b.co", role="admin", name="Ada")
    user = _parse_payload(_decode_token(token))
    assert user.user_id == 7
    assert user.is_admin


def test_decode_token_rejects_expired() -> None:
    token = create_access_token(user_id=7, email="a@b.co", role="admin", expires_in=timedelta(hours=-1))
    with pytest.raises(HTTPException) as exc:
        _decode_token(token)
    assert exc.value.status_code == 401


def test_decode_token_rejects_foreign_signature() -> None:
    token = jwt.encode({"sub": "1", "role": "admin", "exp": 9999999999}, "other-secret", algorithm="HS256")
    with pytest.raises(HTTPException) as exc:
        _decode_token(token)
    assert exc.value.status_code == 401


def test_require_role_forbids_other_roles() -> None:
    user = AuthUser(user_id=1, email="s@x.io", name="S", role="student")
    require_role(user, {"student", "admin"})
    with pytest.raises(HTTPException) as exc:
        require_role(user, {"admin"})
    assert exc.value.status_code == 403
