from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.models.booking import Booking
from app.models.common import as_utc, utcnow
from app.models.user import User
from app.services.auth import AuthUser

logger = logging.getLogger(__name__)

STATUS_CREATED = "confirmed"
STATUS_DUPLICATE = "already_exists"

# Allowed moves out of each non-final state.
_TRANSITIONS: dict[str, set[str]] = {
    "confirmed": {"completed", "canceled"},
}


async def _find_slot(
    db: AsyncSession,
    *,
    student_id: int,
    teacher_id: int,
    lesson_type: str,
    lesson_date: datetime,
) -> Booking | None:
    return (
        await db.execute(
            select(Booking).where(
                and_(
                    Booking.student_id == student_id,
                    Booking.teacher_id == teacher_id,
                    Booking.lesson_type == lesson_type,
                    Booking.lesson_date == lesson_date,
                )
            )
        )
    ).scalar_one_or_none()


async def create_booking(
    db: AsyncSession,
    *,
    student_id: int,
    teacher_id: int,
    lesson_type: str,
    lesson_date: datetime,
    duration_minutes: int,
    amount_cents: int,
    currency: str,
    notes: str | None = None,
    payment_ref: str | None = None,
) -> tuple[Booking, bool]:
    """Insert a confirmed booking unless the same slot is already booked.

    Returns ``(booking, created)``. When the slot exists, either found up front
    or revealed by the ``uq_booking_slot`` index on insert, the stored row is
    returned with ``created=False``. The caller owns the commit.
    """
    clean_type = (lesson_type or "").strip()
    if not clean_type:
        raise ValidationError("lesson_type is required")
    if amount_cents < 0:
        raise ValidationError("amount must not be negative")
    when = as_utc(lesson_date)
    slot = {
        "student_id": student_id,
        "teacher_id": teacher_id,
        "lesson_type": clean_type,
        "lesson_date": when,
    }

    existing = await _find_slot(db, **slot)
    if existing is not None:
        logger.warning("Duplicate booking request for slot %s, returning booking %s", slot, existing.id)
        return existing, False

    teacher = (
        await db.execute(select(User).where(and_(User.id == teacher_id, User.role == "teacher")))
    ).scalar_one_or_none()
    if teacher is None:
        raise NotFoundError("Teacher not found")

    booking = Booking(
        **slot,
        lesson_duration_minutes=duration_minutes,
        amount_cents=amount_cents,
        currency=(currency or "USD").upper(),
        status=STATUS_CREATED,
        notes=(notes or "").strip() or None,
        meeting_link=teacher.default_meeting_link,
        payment_ref=payment_ref,
    )
    try:
        async with db.begin_nested():
            db.add(booking)
    except IntegrityError as exc:
        existing = await _find_slot(db, **slot)
        if existing is None:
            raise ConflictError("Booking conflicts with an existing record") from exc
        logger.warning("Concurrent booking for slot %s resolved to booking %s", slot, existing.id)
        return existing, False

    return booking, True


async def list_bookings_for(db: AsyncSession, *, user_id: int, as_role: str) -> list[tuple[Booking, User]]:
    """Bookings of one participant, paired with the counterpart user."""
    if as_role == "teacher":
        own_col, other_col = Booking.teacher_id, Booking.student_id
    else:
        own_col, other_col = Booking.student_id, Booking.teacher_id
    rows = (
        await db.execute(
            select(Booking, User)
            .join(User, User.id == other_col)
            .where(own_col == user_id)
            .order_by(Booking.lesson_date.desc(), Booking.id.desc())
        )
    ).all()
    return [(row[0], row[1]) for row in rows]


def check_transition(current: str, target: str) -> bool:
    """Return True when the status changes, False for a repeat of the current status."""
    if current == target:
        return False
    if target not in _TRANSITIONS.get(current, set()):
        raise ConflictError(f"Cannot move a {current} booking to {target}")
    return True


async def change_booking_status(db: AsyncSession, *, booking_id: int, actor: AuthUser, target: str) -> Booking:
    booking = (await db.execute(select(Booking).where(Booking.id == booking_id))).scalar_one_or_none()
    if booking is None:
        raise NotFoundError("Lesson not found")
    if not actor.is_admin and booking.teacher_id != actor.user_id:
        raise ForbiddenError("Only the lesson's teacher can change its status")

    if check_transition(booking.status, target):
        booking.status = target
        await db.commit()
        await db.refresh(booking)
        logger.info("Booking %s moved to %s by user %s", booking.id, target, actor.user_id)
    return booking


def lesson_end(booking: Booking) -> datetime:
    return as_utc(booking.lesson_date) + timedelta(minutes=max(int(booking.lesson_duration_minutes or 0), 1))


async def complete_elapsed_bookings(
    db: AsyncSession,
    *,
    now: datetime | None = None,
    grace_minutes: int = 0,
) -> int:
    """Mark confirmed bookings whose lesson has ended as completed. Does not commit."""
    current = as_utc(now or utcnow())
    cutoff = current - timedelta(minutes=max(grace_minutes, 0))
    rows = (
        await db.execute(
            select(Booking).where(and_(Booking.status == "confirmed", Booking.lesson_date <= cutoff))
        )
    ).scalars().all()
    changed = 0
    for row in rows:
        if lesson_end(row) + timedelta(minutes=max(grace_minutes, 0)) <= current:
            row.status = "completed"
            changed += 1
    return changed
