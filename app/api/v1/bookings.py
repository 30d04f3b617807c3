from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import UnauthorizedError
from app.db.session import get_db
from app.models.booking import Booking
from app.models.user import User
from app.schemas.booking import BookingCreateIn, BookingCreateOut, BookingOut
from app.services.auth import AuthUser, get_current_user, require_role
from app.services.bookings import (
    STATUS_CREATED,
    STATUS_DUPLICATE,
    change_booking_status,
    create_booking,
    list_bookings_for,
)
from app.services.payments import amount_to_cents, cents_to_amount

router = APIRouter(tags=["bookings"])


def _to_booking_out(row: Booking, counterpart: User, *, counterpart_is_teacher: bool) -> BookingOut:
    name = counterpart.full_name or counterpart.email
    return BookingOut(
        id=row.id,
        student_id=row.student_id,
        student_name="" if counterpart_is_teacher else name,
        teacher_id=row.teacher_id,
        teacher_name=name if counterpart_is_teacher else "",
        lesson_type=row.lesson_type,
        lesson_date=row.lesson_date,
        lesson_duration_minutes=row.lesson_duration_minutes,
        amount=cents_to_amount(row.amount_cents),
        currency=row.currency,
        status=row.status,
        notes=row.notes,
        meeting_link=row.meeting_link,
        created_at=row.created_at,
    )


@router.post("/bookings/create", response_model=BookingCreateOut)
async def create_booking_endpoint(
    payload: BookingCreateIn,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> BookingCreateOut:
    if current_user.role != "student":
        raise UnauthorizedError("Only students can book lessons")

    booking, created = await create_booking(
        db,
        student_id=current_user.user_id,
        teacher_id=payload.teacher_id,
        lesson_type=payload.lesson_type,
        lesson_date=payload.lesson_date,
        duration_minutes=payload.lesson_duration,
        amount_cents=amount_to_cents(payload.amount),
        currency=payload.currency or settings.default_currency,
        notes=payload.notes,
    )
    if created:
        await db.commit()
        await db.refresh(booking)

    return BookingCreateOut(
        message="Booking created successfully" if created else "Booking already exists",
        booking_id=booking.id,
        status=STATUS_CREATED if created else STATUS_DUPLICATE,
        lesson_date=booking.lesson_date,
        teacher_id=booking.teacher_id,
        student_id=booking.student_id,
        meeting_link=booking.meeting_link,
    )


@router.get("/students/me/bookings", response_model=list[BookingOut])
async def my_student_bookings(
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> list[BookingOut]:
    require_role(current_user, {"student"})
    rows = await list_bookings_for(db, user_id=current_user.user_id, as_role="student")
    return [_to_booking_out(b, teacher, counterpart_is_teacher=True) for b, teacher in rows]


@router.get("/teachers/me/bookings", response_model=list[BookingOut])
async def my_teacher_bookings(
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> list[BookingOut]:
    require_role(current_user, {"teacher"})
    rows = await list_bookings_for(db, user_id=current_user.user_id, as_role="teacher")
    return [_to_booking_out(b, student, counterpart_is_teacher=False) for b, student in rows]


async def _transition(db: AsyncSession, lesson_id: int, actor: AuthUser, target: str) -> dict:
    require_role(actor, {"teacher", "admin"})
    booking = await change_booking_status(db, booking_id=lesson_id, actor=actor, target=target)
    return {"success": True, "lesson_id": booking.id, "status": booking.status}


@router.post("/lessons/{lesson_id}/accept")
async def accept_lesson(
    lesson_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> dict:
    return await _transition(db, lesson_id, current_user, "confirmed")


@router.post("/lessons/{lesson_id}/decline")
async def decline_lesson(
    lesson_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> dict:
    return await _transition(db, lesson_id, current_user, "canceled")


@router.post("/lessons/{lesson_id}/complete")
async def complete_lesson(
    lesson_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> dict:
    return await _transition(db, lesson_id, current_user, "completed")
