from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.models.user import User
from app.schemas.auth import UserOut
from app.services.payments import cents_to_amount


async def get_user_by_id(db: AsyncSession, user_id: int) -> User:
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found")
    return user


async def user_name_map(db: AsyncSession, user_ids: set[int | None]) -> dict[int, str]:
    ids = {x for x in user_ids if x is not None}
    if not ids:
        return {}
    rows = (await db.execute(select(User).where(User.id.in_(ids)))).scalars().all()
    return {row.id: row.full_name or row.email for row in rows}


def to_user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        name=user.full_name,
        role=user.role,
        status=user.status,
        languages=user.languages,
        hourly_rate=user.hourly_rate,
        balance=cents_to_amount(user.balance_cents),
        bio=user.bio,
        default_meeting_link=user.default_meeting_link,
        created_at=user.created_at,
    )
