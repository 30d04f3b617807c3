from __future__ import annotations

import calendar
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.models.booking import Booking
from app.models.common import as_utc, utcnow
from app.models.finance import Transaction
from app.models.help import SupportTicket
from app.models.review import Review
from app.models.user import User, split_languages

REVENUE_STATUS = "completed"
NO_DATA = "N/A"


def growth_rate(current: int | float, previous: int | float) -> int:
    """Percentage change between two periods, rounded half-up to an integer.

    A period growing from nothing counts as 100%; two empty periods as 0%.
    """
    if previous == 0:
        return 100 if current > 0 else 0
    change = (Decimal(str(current)) - Decimal(str(previous))) / Decimal(str(previous)) * 100
    return int(change.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def shift_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


@dataclass(slots=True, frozen=True)
class MonthWindows:
    now: datetime
    last_start: datetime
    previous_start: datetime


def month_windows(now: datetime | None = None) -> MonthWindows:
    """Rolling windows: last month is [now-1m, now), previous is [now-2m, now-1m)."""
    current = as_utc(now or utcnow())
    return MonthWindows(
        now=current,
        last_start=shift_months(current, -1),
        previous_start=shift_months(current, -2),
    )


async def _count(db: AsyncSession, column, *criteria) -> int:
    stmt = select(func.count(column))
    if criteria:
        stmt = stmt.where(and_(*criteria))
    return int((await db.execute(stmt)).scalar_one() or 0)


async def _sum(db: AsyncSession, column, *criteria) -> int:
    stmt = select(func.coalesce(func.sum(column), 0))
    if criteria:
        stmt = stmt.where(and_(*criteria))
    return int((await db.execute(stmt)).scalar_one() or 0)


async def user_stats(db: AsyncSession, *, now: datetime | None = None) -> dict:
    w = month_windows(now)
    last_30 = w.now - timedelta(days=30)
    current = await _count(db, User.id, User.created_at >= w.last_start, User.created_at < w.now)
    previous = await _count(db, User.id, User.created_at >= w.previous_start, User.created_at < w.last_start)
    return {
        "total_users": await _count(db, User.id),
        "active_users": await _count(db, User.id, User.status == "active"),
        "teachers": await _count(db, User.id, User.role == "teacher"),
        "students": await _count(db, User.id, User.role == "student"),
        "new_users_last_30_days": await _count(db, User.id, User.created_at >= last_30),
        "growth_rate": growth_rate(current, previous),
    }


async def teacher_stats(db: AsyncSession, *, now: datetime | None = None) -> dict:
    w = month_windows(now)
    is_teacher = User.role == "teacher"
    current = await _count(db, User.id, is_teacher, User.created_at >= w.last_start, User.created_at < w.now)
    previous = await _count(
        db, User.id, is_teacher, User.created_at >= w.previous_start, User.created_at < w.last_start
    )
    return {
        "total_teachers": await _count(db, User.id, is_teacher),
        "pending_teachers": await _count(db, User.id, is_teacher, User.status == "pending"),
        "growth_rate": growth_rate(current, previous),
    }


async def lesson_stats(db: AsyncSession, *, now: datetime | None = None) -> dict:
    w = month_windows(now)
    current = await _count(db, Booking.id, Booking.created_at >= w.last_start, Booking.created_at < w.now)
    previous = await _count(
        db, Booking.id, Booking.created_at >= w.previous_start, Booking.created_at < w.last_start
    )
    return {
        "total_lessons": await _count(db, Booking.id),
        "growth_rate": growth_rate(current, previous),
    }


async def finance_stats(db: AsyncSession, *, now: datetime | None = None) -> dict:
    """Revenue figures in cents, over transactions that settled."""
    w = month_windows(now)
    settled = Transaction.status == REVENUE_STATUS
    current = await _sum(
        db, Transaction.amount_cents, settled, Transaction.created_at >= w.last_start, Transaction.created_at < w.now
    )
    previous = await _sum(
        db,
        Transaction.amount_cents,
        settled,
        Transaction.created_at >= w.previous_start,
        Transaction.created_at < w.last_start,
    )
    return {
        "total_revenue_cents": await _sum(db, Transaction.amount_cents, settled),
        "revenue_last_month_cents": current,
        "platform_fees_cents": await _sum(db, Transaction.platform_fee_cents, settled),
        "teacher_earnings_cents": await _sum(db, Transaction.teacher_earnings_cents, settled),
        "growth_rate": growth_rate(current, previous),
    }


async def support_stats(db: AsyncSession) -> dict:
    return {"open_tickets": await _count(db, SupportTicket.id, SupportTicket.status == "open")}


async def language_stats(db: AsyncSession, *, now: datetime | None = None) -> dict:
    w = month_windows(now)
    rows = (
        await db.execute(
            select(User.language, User.created_at).where(and_(User.role == "teacher", User.language.is_not(None)))
        )
    ).all()

    popularity: Counter[str] = Counter()
    recent: Counter[str] = Counter()
    earlier: Counter[str] = Counter()
    for raw, created_at in rows:
        names = split_languages(raw)
        popularity.update(names)
        created = as_utc(created_at)
        if w.last_start <= created < w.now:
            recent.update(names)
        elif w.previous_start <= created < w.last_start:
            earlier.update(names)

    most_popular = popularity.most_common(1)[0][0] if popularity else NO_DATA
    fastest = NO_DATA
    if recent:
        # Ties go to the language with more new teachers, then alphabetical.
        fastest = max(sorted(recent), key=lambda name: (growth_rate(recent[name], earlier[name]), recent[name]))
    return {"most_popular": most_popular, "fastest_growing": fastest}


async def personal_stats(db: AsyncSession, *, user_id: int, now: datetime | None = None) -> dict:
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found")

    current = as_utc(now or utcnow())
    own = Booking.teacher_id == user_id if user.role == "teacher" else Booking.student_id == user_id
    upcoming = await _count(db, Booking.id, own, Booking.status == "confirmed", Booking.lesson_date >= current)
    completed = await _count(db, Booking.id, own, Booking.status == "completed")
    minutes = await _sum(db, Booking.lesson_duration_minutes, own, Booking.status == "completed")

    result = {
        "user_id": user.id,
        "role": user.role,
        "lessons_upcoming": upcoming,
        "lessons_completed": completed,
        "active_students": 0,
        "total_hours": round(minutes / 60, 1),
        "average_rating": None,
    }
    if user.role == "teacher":
        result["active_students"] = int(
            (
                await db.execute(
                    select(func.count(func.distinct(Booking.student_id))).where(
                        and_(Booking.teacher_id == user_id, Booking.status.in_(["confirmed", "completed"]))
                    )
                )
            ).scalar_one()
            or 0
        )
        result["average_rating"] = await average_rating(db, teacher_id=user_id)
    return result


async def average_rating(db: AsyncSession, *, teacher_id: int) -> float | None:
    value = (await db.execute(select(func.avg(Review.rating)).where(Review.teacher_id == teacher_id))).scalar_one()
    if value is None:
        return None
    return round(float(value), 1)
