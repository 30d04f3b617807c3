from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import user_name_map
from app.db.session import get_db
from app.models.review import Review
from app.schemas.review import ReviewCreateIn, ReviewListOut, ReviewOut
from app.services.auth import AuthUser, get_current_user, require_role
from app.services.reviews import create_review, to_review_list, to_review_out

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post("", response_model=ReviewOut, status_code=201)
async def submit_review(
    payload: ReviewCreateIn,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> ReviewOut:
    require_role(current_user, {"student"})
    row = await create_review(
        db,
        student_id=current_user.user_id,
        lesson_id=payload.lesson_id,
        rating=payload.rating,
        comment=payload.comment,
    )
    names = await user_name_map(db, {row.teacher_id, row.student_id})
    return to_review_out(row, names)


@router.get("/my-reviews", response_model=ReviewListOut)
async def my_reviews(
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> ReviewListOut:
    require_role(current_user, {"student", "teacher"})
    column = Review.teacher_id if current_user.role == "teacher" else Review.student_id
    rows = (
        await db.execute(
            select(Review).where(column == current_user.user_id).order_by(Review.created_at.desc(), Review.id.desc())
        )
    ).scalars().all()
    names = await user_name_map(db, {r.teacher_id for r in rows} | {r.student_id for r in rows})
    return to_review_list(list(rows), names)
