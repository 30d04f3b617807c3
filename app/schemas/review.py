from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ReviewCreateIn(BaseModel):
    lesson_id: int = Field(gt=0)
    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=4000)


class ReviewOut(BaseModel):
    id: int
    lesson_id: int
    teacher_id: int
    teacher_name: str = ""
    student_id: int
    student_name: str = ""
    rating: int
    comment: str | None = None
    created_at: datetime


class ReviewListOut(BaseModel):
    reviews: list[ReviewOut]
    average_rating: float
    total: int
