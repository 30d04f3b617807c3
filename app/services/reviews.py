from __future__ import annotations

import logging

from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models.booking import Booking
from app.models.review import Review
from app.schemas.review import ReviewListOut, ReviewOut

logger = logging.getLogger(__name__)

DUPLICATE_REVIEW = "You have already reviewed this lesson"


async def create_review(
    db: AsyncSession,
    *,
    student_id: int,
    lesson_id: int,
    rating: int,
    comment: str | None,
) -> Review:
    if not 1 <= rating <= 5:
        raise ValidationError("rating must be between 1 and 5")
    lesson = (
        await db.execute(select(Booking).where(and_(Booking.id == lesson_id, Booking.student_id == student_id)))
    ).scalar_one_or_none()
    if lesson is None:
        raise NotFoundError("Lesson not found or not yours")
    if lesson.status == "canceled":
        raise ValidationError("Canceled lessons cannot be reviewed")

    existing = (await db.execute(select(Review.id).where(Review.lesson_id == lesson_id))).scalar_one_or_none()
    if existing is not None:
        raise ConflictError(DUPLICATE_REVIEW)

    row = Review(
        lesson_id=lesson.id,
        teacher_id=lesson.teacher_id,
        student_id=student_id,
        rating=rating,
        comment=(comment or "").strip() or None,
    )
    db.add(row)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError(DUPLICATE_REVIEW) from exc
    await db.refresh(row)
    logger.info("Review %s stored for lesson %s", row.id, lesson_id)
    return row


def to_review_out(row: Review, names: dict[int, str]) -> ReviewOut:
    return ReviewOut(
        id=row.id,
        lesson_id=row.lesson_id,
        teacher_id=row.teacher_id,
        teacher_name=names.get(row.teacher_id, ""),
        student_id=row.student_id,
        student_name=names.get(row.student_id, ""),
        rating=row.rating,
        comment=row.comment,
        created_at=row.created_at,
    )


def to_review_list(rows: list[Review], names: dict[int, str]) -> ReviewListOut:
    average = round(sum(r.rating for r in rows) / len(rows), 1) if rows else 0.0
    return ReviewListOut(
        reviews=[to_review_out(r, names) for r in rows],
        average_rating=average,
        total=len(rows),
    )
