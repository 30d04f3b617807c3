from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ForbiddenError
from app.db.session import get_db
from app.schemas.stats import (
    FinanceStatsOut,
    LanguageStatsOut,
    LessonStatsOut,
    PersonalStatsOut,
    SupportStatsOut,
    TeacherStatsOut,
    UserStatsOut,
)
from app.services import stats as stats_service
from app.services.auth import AuthUser, get_current_admin, get_current_user
from app.services.payments import cents_to_amount

router = APIRouter(tags=["stats"])


@router.get("/admin/stats/users", response_model=UserStatsOut)
async def users_stats(
    db: AsyncSession = Depends(get_db),
    _admin: AuthUser = Depends(get_current_admin),
) -> UserStatsOut:
    return UserStatsOut(**await stats_service.user_stats(db))


@router.get("/admin/stats/teachers", response_model=TeacherStatsOut)
async def teachers_stats(
    db: AsyncSession = Depends(get_db),
    _admin: AuthUser = Depends(get_current_admin),
) -> TeacherStatsOut:
    return TeacherStatsOut(**await stats_service.teacher_stats(db))


@router.get("/admin/stats/lessons", response_model=LessonStatsOut)
async def lessons_stats(
    db: AsyncSession = Depends(get_db),
    _admin: AuthUser = Depends(get_current_admin),
) -> LessonStatsOut:
    return LessonStatsOut(**await stats_service.lesson_stats(db))


@router.get("/admin/stats/finances", response_model=FinanceStatsOut)
async def finances_stats(
    db: AsyncSession = Depends(get_db),
    _admin: AuthUser = Depends(get_current_admin),
) -> FinanceStatsOut:
    data = await stats_service.finance_stats(db)
    return FinanceStatsOut(
        total_revenue=cents_to_amount(data["total_revenue_cents"]),
        revenue_last_month=cents_to_amount(data["revenue_last_month_cents"]),
        platform_fees=cents_to_amount(data["platform_fees_cents"]),
        teacher_earnings=cents_to_amount(data["teacher_earnings_cents"]),
        growth_rate=data["growth_rate"],
    )


@router.get("/admin/stats/support", response_model=SupportStatsOut)
async def support_stats(
    db: AsyncSession = Depends(get_db),
    _admin: AuthUser = Depends(get_current_admin),
) -> SupportStatsOut:
    return SupportStatsOut(**await stats_service.support_stats(db))


@router.get("/admin/stats/languages", response_model=LanguageStatsOut)
async def languages_stats(
    db: AsyncSession = Depends(get_db),
    _admin: AuthUser = Depends(get_current_admin),
) -> LanguageStatsOut:
    return LanguageStatsOut(**await stats_service.language_stats(db))


@router.get("/users/{user_id}/stats", response_model=PersonalStatsOut)
async def user_personal_stats(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> PersonalStatsOut:
    if current_user.user_id != user_id and not current_user.is_admin:
        raise ForbiddenError("You can only view your own stats")
    return PersonalStatsOut(**await stats_service.personal_stats(db, user_id=user_id))
