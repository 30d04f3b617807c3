from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_user_by_id, to_user_out
from app.api.v1.teachers import rating_map, to_teacher_out
from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.db.session import get_db
from app.models.user import USER_ROLES, USER_STATUSES, User, join_languages
from app.schemas.auth import AdminUserUpdateIn, UserOut
from app.schemas.teacher import AdminTeacherUpdateIn, TeacherOut
from app.services.auth import AuthUser, get_current_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _validate_status(raw: str) -> str:
    value = raw.strip().lower()
    if value not in USER_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(USER_STATUSES)}")
    return value


@router.get("/users", response_model=list[UserOut])
async def list_users(
    role: str | None = Query(default=None, max_length=20),
    status: str | None = Query(default=None, max_length=20),
    search: str | None = Query(default=None, max_length=120),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    _admin: AuthUser = Depends(get_current_admin),
) -> list[UserOut]:
    stmt = select(User)
    if role:
        stmt = stmt.where(User.role == role.strip().lower())
    if status:
        stmt = stmt.where(User.status == status.strip().lower())
    if search:
        term = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(User.email).like(term),
                func.lower(User.first_name).like(term),
                func.lower(User.last_name).like(term),
            )
        )
    rows = (await db.execute(stmt.order_by(User.created_at.desc(), User.id.desc()).offset(offset).limit(limit))).scalars().all()
    return [to_user_out(row) for row in rows]


@router.get("/users/{user_id}", response_model=UserOut)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: AuthUser = Depends(get_current_admin),
) -> UserOut:
    return to_user_out(await get_user_by_id(db, user_id))


@router.patch("/users/{user_id}", response_model=UserOut)
async def update_user(
    user_id: int,
    payload: AdminUserUpdateIn,
    db: AsyncSession = Depends(get_db),
    admin: AuthUser = Depends(get_current_admin),
) -> UserOut:
    user = await get_user_by_id(db, user_id)

    new_role = payload.role.strip().lower() if payload.role is not None else None
    if new_role is not None and new_role not in USER_ROLES:
        raise ValidationError(f"role must be one of {', '.join(USER_ROLES)}")
    new_status = _validate_status(payload.status) if payload.status is not None else None
    if payload.hourly_rate is not None and payload.hourly_rate < 0:
        raise ValidationError("hourly_rate must not be negative")

    if user.id == admin.user_id:
        if new_role is not None and new_role != "admin":
            raise ForbiddenError("You cannot change your own admin role")
        if new_status is not None and new_status != "active":
            raise ForbiddenError("You cannot deactivate your own account")

    if payload.first_name is not None:
        user.first_name = payload.first_name.strip()
    if payload.last_name is not None:
        user.last_name = payload.last_name.strip()
    if new_role is not None:
        user.role = new_role
    if new_status is not None:
        user.status = new_status
    if payload.hourly_rate is not None:
        user.hourly_rate = payload.hourly_rate
    if payload.languages is not None:
        user.language = join_languages(payload.languages)
    if payload.bio is not None:
        user.bio = payload.bio.strip() or None

    await db.commit()
    await db.refresh(user)
    logger.info("Admin %s updated user %s", admin.user_id, user.id)
    return to_user_out(user)


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: AuthUser = Depends(get_current_admin),
) -> dict[str, bool]:
    if user_id == admin.user_id:
        raise ForbiddenError("You cannot delete your own account")
    result = await db.execute(delete(User).where(User.id == user_id))
    if not result.rowcount:
        raise NotFoundError("User not found")
    await db.commit()
    logger.info("Admin %s deleted user %s", admin.user_id, user_id)
    return {"success": True}


@router.get("/teachers", response_model=list[TeacherOut])
async def list_all_teachers(
    status: str | None = Query(default=None, max_length=20),
    db: AsyncSession = Depends(get_db),
    _admin: AuthUser = Depends(get_current_admin),
) -> list[TeacherOut]:
    stmt = select(User).where(User.role == "teacher")
    if status:
        stmt = stmt.where(User.status == status.strip().lower())
    teachers = (await db.execute(stmt.order_by(User.created_at.desc(), User.id.desc()))).scalars().all()
    ratings = await rating_map(db, [t.id for t in teachers])
    return [to_teacher_out(t, ratings.get(t.id)) for t in teachers]


@router.patch("/teachers/{teacher_id}", response_model=TeacherOut)
async def update_teacher(
    teacher_id: int,
    payload: AdminTeacherUpdateIn,
    db: AsyncSession = Depends(get_db),
    admin: AuthUser = Depends(get_current_admin),
) -> TeacherOut:
    teacher = (
        await db.execute(select(User).where(and_(User.id == teacher_id, User.role == "teacher")))
    ).scalar_one_or_none()
    if teacher is None:
        raise NotFoundError("Teacher not found")
    if payload.status is not None:
        teacher.status = _validate_status(payload.status)
    if payload.hourly_rate is not None:
        teacher.hourly_rate = payload.hourly_rate
    await db.commit()
    await db.refresh(teacher)
    logger.info("Admin %s set teacher %s to %s", admin.user_id, teacher.id, teacher.status)
    ratings = await rating_map(db, [teacher.id])
    return to_teacher_out(teacher, ratings.get(teacher.id))
