from __future__ import annotations

from pydantic import BaseModel


class UserStatsOut(BaseModel):
    total_users: int
    active_users: int
    teachers: int
    students: int
    new_users_last_30_days: int
    growth_rate: int


class TeacherStatsOut(BaseModel):
    total_teachers: int
    pending_teachers: int
    growth_rate: int


class LessonStatsOut(BaseModel):
    total_lessons: int
    growth_rate: int


class FinanceStatsOut(BaseModel):
    total_revenue: float
    revenue_last_month: float
    platform_fees: float
    teacher_earnings: float
    growth_rate: int


class SupportStatsOut(BaseModel):
    open_tickets: int


class LanguageStatsOut(BaseModel):
    most_popular: str
    fastest_growing: str


class PersonalStatsOut(BaseModel):
    user_id: int
    role: str
    lessons_upcoming: int
    lessons_completed: int
    active_students: int = 0
    total_hours: float
    average_rating: float | None = None
