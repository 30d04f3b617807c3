from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.common import TimestampMixin

BOOKING_STATUSES = ("confirmed", "completed", "canceled")


class Booking(TimestampMixin, Base):
    __tablename__ = "bookings"
    __table_args__ = (
        UniqueConstraint("student_id", "teacher_id", "lesson_type", "lesson_date", name="uq_booking_slot"),
        CheckConstraint("status in ('confirmed','completed','canceled')", name="ck_bookings_status"),
        CheckConstraint("lesson_duration_minutes > 0", name="ck_bookings_duration_positive"),
        CheckConstraint("amount_cents >= 0", name="ck_bookings_amount_non_negative"),
        Index("ix_bookings_teacher_date", "teacher_id", "lesson_date"),
        Index("ix_bookings_status_date", "status", "lesson_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    lesson_type: Mapped[str] = mapped_column(String(80), nullable=False)
    lesson_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    lesson_duration_minutes: Mapped[int] = mapped_column(Integer, default=60, nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="confirmed", nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    meeting_link: Mapped[str | None] = mapped_column(String(1200), nullable=True)
    payment_ref: Mapped[str | None] = mapped_column(String(255), nullable=True)
