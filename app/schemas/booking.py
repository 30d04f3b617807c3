from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class BookingCreateIn(BaseModel):
    teacher_id: int = Field(gt=0)
    lesson_type: str = Field(min_length=1, max_length=80)
    lesson_date: datetime
    lesson_duration: int = Field(default=60, ge=15, le=600)
    amount: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    notes: str | None = Field(default=None, max_length=4000)
    currency: str | None = Field(default=None, min_length=3, max_length=3)


class BookingCreateOut(BaseModel):
    message: str
    booking_id: int
    status: str
    lesson_date: datetime
    teacher_id: int
    student_id: int
    meeting_link: str | None = None


class BookingOut(BaseModel):
    id: int
    student_id: int
    student_name: str = ""
    teacher_id: int
    teacher_name: str = ""
    lesson_type: str
    lesson_date: datetime
    lesson_duration_minutes: int
    amount: float
    currency: str
    status: str
    notes: str | None = None
    meeting_link: str | None = None
    created_at: datetime
