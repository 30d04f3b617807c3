from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_user_by_id, to_user_out
from app.core.config import settings
from app.core.errors import ConflictError, ForbiddenError, UnauthorizedError, ValidationError
from app.core.security import create_access_token, hash_password, verify_password
from app.db.session import get_db
from app.models.user import User, join_languages
from app.schemas.auth import LoginIn, SignupIn, TokenOut, UserOut
from app.services.auth import AuthUser, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

_SIGNUP_ROLES = {"student", "teacher"}


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
        max_age=settings.jwt_expires_days * 24 * 3600,
        path="/",
    )


def _issue_token(user: User) -> str:
    return create_access_token(user_id=user.id, email=user.email, role=user.role, name=user.full_name)


async def _user_by_email(db: AsyncSession, email: str) -> User | None:
    return (await db.execute(select(User).where(func.lower(User.email) == email))).scalar_one_or_none()


@router.post("/signup", response_model=TokenOut, status_code=201)
async def signup(payload: SignupIn, response: Response, db: AsyncSession = Depends(get_db)) -> TokenOut:
    email = payload.email.strip().lower()
    role = payload.role.strip().lower()
    if role == "admin":
        raise ForbiddenError("Admin accounts cannot be created through signup")
    if role not in _SIGNUP_ROLES:
        raise ValidationError("role must be student or teacher")
    if await _user_by_email(db, email) is not None:
        raise ConflictError("User with this email already exists")

    user = User(
        email=email,
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        password_hash=hash_password(payload.password),
        role=role,
        # Teachers wait for admin approval before they are listed.
        status="pending" if role == "teacher" else "active",
    )
    if role == "teacher":
        user.language = join_languages(payload.languages)
        user.hourly_rate = payload.hourly_rate
        user.bio = (payload.bio or "").strip() or None
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("User %s signed up as %s", user.id, role)

    token = _issue_token(user)
    _set_auth_cookie(response, token)
    return TokenOut(access_token=token, user=to_user_out(user))


@router.post("/login", response_model=TokenOut)
async def login(payload: LoginIn, response: Response, db: AsyncSession = Depends(get_db)) -> TokenOut:
    user = await _user_by_email(db, payload.email.strip().lower())
    if user is None or not verify_password(payload.password, user.password_hash):
        logger.warning("Failed login for %s", payload.email.strip().lower())
        raise UnauthorizedError("Invalid email or password")
    if user.status != "active":
        raise UnauthorizedError(f"Account is {user.status}")

    token = _issue_token(user)
    _set_auth_cookie(response, token)
    return TokenOut(access_token=token, user=to_user_out(user))


@router.post("/logout")
async def logout(response: Response) -> dict[str, bool]:
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return {"success": True}


@router.get("/me", response_model=UserOut)
async def me(
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> UserOut:
    return to_user_out(await get_user_by_id(db, current_user.user_id))
