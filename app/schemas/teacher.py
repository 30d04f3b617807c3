from __future__ import annotations

from pydantic import BaseModel, Field


class TeacherOut(BaseModel):
    id: int
    name: str
    email: str
    status: str
    languages: list[str] = Field(default_factory=list)
    hourly_rate: int | None = None
    bio: str | None = None
    average_rating: float | None = None
    review_count: int = 0
    free_demo_available: bool = False
    trial_class_price: float | None = None


class TeacherProfileUpdateIn(BaseModel):
    bio: str | None = Field(default=None, max_length=6000)
    languages: list[str] | None = None
    hourly_rate: int | None = Field(default=None, ge=0, le=10000)
    default_meeting_link: str | None = Field(default=None, max_length=1200)
    free_demo_available: bool | None = None
    trial_class_price_cents: int | None = Field(default=None, ge=0)


class AdminTeacherUpdateIn(BaseModel):
    status: str | None = Field(default=None, max_length=20)
    hourly_rate: int | None = Field(default=None, ge=0, le=10000)
