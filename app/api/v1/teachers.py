from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_user_by_id, user_name_map
from app.core.errors import NotFoundError, ValidationError
from app.db.session import get_db
from app.models.review import Review
from app.models.user import User, join_languages
from app.schemas.review import ReviewListOut
from app.schemas.teacher import TeacherOut, TeacherProfileUpdateIn
from app.services.auth import AuthUser, get_current_user, require_role
from app.services.payments import cents_to_amount
from app.services.reviews import to_review_list

router = APIRouter(prefix="/teachers", tags=["teachers"])


async def rating_map(db: AsyncSession, teacher_ids: list[int]) -> dict[int, tuple[float, int]]:
    if not teacher_ids:
        return {}
    rows = (
        await db.execute(
            select(Review.teacher_id, func.avg(Review.rating), func.count(Review.id))
            .where(Review.teacher_id.in_(teacher_ids))
            .group_by(Review.teacher_id)
        )
    ).all()
    return {int(tid): (round(float(avg), 1), int(count)) for tid, avg, count in rows}


def to_teacher_out(user: User, rating: tuple[float, int] | None = None) -> TeacherOut:
    return TeacherOut(
        id=user.id,
        name=user.full_name or user.email,
        email=user.email,
        status=user.status,
        languages=user.languages,
        hourly_rate=user.hourly_rate,
        bio=user.bio,
        average_rating=rating[0] if rating else None,
        review_count=rating[1] if rating else 0,
        free_demo_available=user.free_demo_available,
        trial_class_price=(
            cents_to_amount(user.trial_class_price_cents) if user.trial_class_price_cents is not None else None
        ),
    )


@router.get("", response_model=list[TeacherOut])
async def list_teachers(
    language: str | None = Query(default=None, max_length=80),
    min_price: int | None = Query(default=None, ge=0),
    max_price: int | None = Query(default=None, ge=0),
    db: AsyncSession = Depends(get_db),
) -> list[TeacherOut]:
    stmt = select(User).where(and_(User.role == "teacher", User.status == "active"))
    if min_price is not None:
        stmt = stmt.where(User.hourly_rate >= min_price)
    if max_price is not None:
        stmt = stmt.where(User.hourly_rate <= max_price)
    teachers = (await db.execute(stmt.order_by(User.first_name.asc(), User.id.asc()))).scalars().all()

    if language:
        wanted = language.strip().lower()
        teachers = [t for t in teachers if wanted in {x.lower() for x in t.languages}]

    ratings = await rating_map(db, [t.id for t in teachers])
    return [to_teacher_out(t, ratings.get(t.id)) for t in teachers]


@router.get("/me", response_model=TeacherOut)
async def get_my_teacher_profile(
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> TeacherOut:
    require_role(current_user, {"teacher"})
    me = await get_user_by_id(db, current_user.user_id)
    ratings = await rating_map(db, [me.id])
    return to_teacher_out(me, ratings.get(me.id))


@router.patch("/me", response_model=TeacherOut)
async def update_my_teacher_profile(
    payload: TeacherProfileUpdateIn,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> TeacherOut:
    require_role(current_user, {"teacher"})
    me = await get_user_by_id(db, current_user.user_id)

    if payload.bio is not None:
        me.bio = payload.bio.strip() or None
    if payload.languages is not None:
        me.language = join_languages(payload.languages)
    if payload.hourly_rate is not None:
        me.hourly_rate = payload.hourly_rate
    if payload.default_meeting_link is not None:
        link = payload.default_meeting_link.strip()
        if link and not link.lower().startswith(("http://", "https://")):
            raise ValidationError("default_meeting_link must be an http(s) URL")
        me.default_meeting_link = link or None
    if payload.free_demo_available is not None:
        me.free_demo_available = payload.free_demo_available
    if payload.trial_class_price_cents is not None:
        me.trial_class_price_cents = payload.trial_class_price_cents

    await db.commit()
    await db.refresh(me)
    ratings = await rating_map(db, [me.id])
    return to_teacher_out(me, ratings.get(me.id))


async def _public_teacher(db: AsyncSession, teacher_id: int) -> User:
    teacher = (
        await db.execute(select(User).where(and_(User.id == teacher_id, User.role == "teacher")))
    ).scalar_one_or_none()
    if teacher is None:
        raise NotFoundError("Teacher not found")
    return teacher


@router.get("/{teacher_id}", response_model=TeacherOut)
async def get_teacher(teacher_id: int, db: AsyncSession = Depends(get_db)) -> TeacherOut:
    teacher = await _public_teacher(db, teacher_id)
    ratings = await rating_map(db, [teacher.id])
    return to_teacher_out(teacher, ratings.get(teacher.id))


@router.get("/{teacher_id}/reviews", response_model=ReviewListOut)
async def get_teacher_reviews(teacher_id: int, db: AsyncSession = Depends(get_db)) -> ReviewListOut:
    teacher = await _public_teacher(db, teacher_id)
    rows = (
        await db.execute(
            select(Review).where(Review.teacher_id == teacher.id).order_by(Review.created_at.desc(), Review.id.desc())
        )
    ).scalars().all()
    names = await user_name_map(db, {r.student_id for r in rows} | {teacher.id})
    return to_review_list(list(rows), names)
