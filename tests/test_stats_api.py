from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.core.config import settings
from app.models import SupportTicket, Transaction
from app.services import stats as stats_service
from conftest import auth_headers, make_booking, make_user

API = settings.api_prefix
NOW = datetime(2030, 6, 15, 12, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_user_stats_windows(db, session_factory) -> None:
    await make_user(session_factory, email="a@toki.io", created_at=NOW - timedelta(days=5))
    await make_user(session_factory, email="b@toki.io", created_at=NOW - timedelta(days=10), status="suspended")
    await make_user(session_factory, email="c@toki.io", role="teacher", created_at=NOW - timedelta(days=45))
    await make_user(session_factory, email="d@toki.io", role="teacher", created_at=NOW - timedelta(days=200))

    data = await stats_service.user_stats(db, now=NOW)

    assert data["total_users"] == 4
    assert data["active_users"] == 3
    assert data["teachers"] == 2
    assert data["students"] == 2
    assert data["new_users_last_30_days"] == 2
    # Two joined in the last month against one the month before.
    assert data["growth_rate"] == 100


@pytest.mark.asyncio
async def test_teacher_and_lesson_stats(db, session_factory) -> None:
    t1 = await make_user(
        session_factory, email="t1@toki.io", role="teacher", status="pending", created_at=NOW - timedelta(days=3)
    )
    student = await make_user(session_factory, email="s@toki.io", created_at=NOW - timedelta(days=90))
    await make_booking(
        session_factory,
        student_id=student.id,
        teacher_id=t1.id,
        lesson_date=NOW + timedelta(days=2),
        created_at=NOW - timedelta(days=40),
    )

    teachers = await stats_service.teacher_stats(db, now=NOW)
    lessons = await stats_service.lesson_stats(db, now=NOW)

    assert teachers == {"total_teachers": 1, "pending_teachers": 1, "growth_rate": 100}
    assert lessons == {"total_lessons": 1, "growth_rate": -100}


@pytest.mark.asyncio
async def test_finance_stats_sum_only_completed_transactions(db, session_factory) -> None:
    async with session_factory() as session:
        session.add_all(
            [
                Transaction(
                    amount_cents=5000,
                    platform_fee_cents=600,
                    teacher_earnings_cents=4400,
                    status="completed",
                    created_at=NOW - timedelta(days=3),
                ),
                Transaction(
                    amount_cents=2000,
                    platform_fee_cents=240,
                    teacher_earnings_cents=1760,
                    status="completed",
                    created_at=NOW - timedelta(days=40),
                ),
                Transaction(amount_cents=9900, status="pending", created_at=NOW - timedelta(days=1)),
            ]
        )
        await session.commit()

    data = await stats_service.finance_stats(db, now=NOW)

    assert data["total_revenue_cents"] == 7000
    assert data["revenue_last_month_cents"] == 5000
    assert data["platform_fees_cents"] == 840
    assert data["teacher_earnings_cents"] == 6160
    assert data["growth_rate"] == 150


@pytest.mark.asyncio
async def test_language_stats(db, session_factory) -> None:
    await make_user(
        session_factory, email="a@toki.io", role="teacher", language="Spanish, French", created_at=NOW - timedelta(days=90)
    )
    await make_user(
        session_factory, email="b@toki.io", role="teacher", language="Spanish", created_at=NOW - timedelta(days=45)
    )
    await make_user(
        session_factory, email="c@toki.io", role="teacher", language="Japanese", created_at=NOW - timedelta(days=4)
    )

    data = await stats_service.language_stats(db, now=NOW)

    assert data == {"most_popular": "Spanish", "fastest_growing": "Japanese"}


@pytest.mark.asyncio
async def test_language_stats_without_teachers(db) -> None:
    assert await stats_service.language_stats(db, now=NOW) == {"most_popular": "N/A", "fastest_growing": "N/A"}


@pytest.mark.asyncio
async def test_admin_stats_endpoints(client, session_factory) -> None:
    admin = await make_user(session_factory, email="admin@toki.io", role="admin")
    async with session_factory() as session:
        session.add(SupportTicket(user_id=admin.id, subject="Help me", message="Something is broken here"))
        await session.commit()

    users = await client.get(f"{API}/admin/stats/users", headers=auth_headers(admin))
    support = await client.get(f"{API}/admin/stats/support", headers=auth_headers(admin))
    finances = await client.get(f"{API}/admin/stats/finances", headers=auth_headers(admin))

    assert users.status_code == 200
    assert users.json()["total_users"] == 1
    assert support.json() == {"open_tickets": 1}
    assert finances.json()["total_revenue"] == 0.0


@pytest.mark.asyncio
async def test_personal_stats_for_teacher(client, session_factory) -> None:
    teacher = await make_user(session_factory, email="t@toki.io", role="teacher")
    s1 = await make_user(session_factory, email="s1@toki.io")
    s2 = await make_user(session_factory, email="s2@toki.io")
    future = datetime.now(timezone.utc) + timedelta(days=3)
    await make_booking(session_factory, student_id=s1.id, teacher_id=teacher.id, lesson_date=future)
    await make_booking(
        session_factory,
        student_id=s2.id,
        teacher_id=teacher.id,
        lesson_date=datetime(2025, 1, 1, tzinfo=timezone.utc),
        lesson_duration_minutes=90,
        status="completed",
    )

    res = await client.get(f"{API}/users/{teacher.id}/stats", headers=auth_headers(teacher))

    assert res.status_code == 200
    body = res.json()
    assert body["lessons_upcoming"] == 1
    assert body["lessons_completed"] == 1
    assert body["active_students"] == 2
    assert body["total_hours"] == 1.5
    assert body["average_rating"] is None

    other = await client.get(f"{API}/users/{teacher.id}/stats", headers=auth_headers(s1))
    assert other.status_code == 403
