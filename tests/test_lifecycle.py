from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from app.core.config import settings
from app.core.errors import ConflictError
from app.models import Booking
from app.services.bookings import check_transition, complete_elapsed_bookings
from conftest import auth_headers, make_booking, make_user

API = settings.api_prefix


def test_transition_rules() -> None:
    assert check_transition("confirmed", "completed") is True
    assert check_transition("confirmed", "canceled") is True
    assert check_transition("completed", "completed") is False
    with pytest.raises(ConflictError):
        check_transition("completed", "canceled")
    with pytest.raises(ConflictError):
        check_transition("canceled", "confirmed")


@pytest.mark.asyncio
async def test_teacher_completes_then_cannot_decline(client, session_factory) -> None:
    teacher = await make_user(session_factory, email="t@toki.io", role="teacher")
    student = await make_user(session_factory, email="s@toki.io")
    booking = await make_booking(
        session_factory,
        student_id=student.id,
        teacher_id=teacher.id,
        lesson_date=datetime(2030, 1, 1, 9, tzinfo=timezone.utc),
    )

    res = await client.post(f"{API}/lessons/{booking.id}/accept", headers=auth_headers(teacher))
    assert res.status_code == 200
    assert res.json()["status"] == "confirmed"

    res = await client.post(f"{API}/lessons/{booking.id}/complete", headers=auth_headers(teacher))
    assert res.json()["status"] == "completed"

    res = await client.post(f"{API}/lessons/{booking.id}/decline", headers=auth_headers(teacher))
    assert res.status_code == 409


@pytest.mark.asyncio
async def test_only_the_lessons_teacher_may_change_it(client, session_factory) -> None:
    teacher = await make_user(session_factory, email="t@toki.io", role="teacher")
    stranger = await make_user(session_factory, email="x@toki.io", role="teacher")
    student = await make_user(session_factory, email="s@toki.io")
    admin = await make_user(session_factory, email="a@toki.io", role="admin")
    booking = await make_booking(
        session_factory,
        student_id=student.id,
        teacher_id=teacher.id,
        lesson_date=datetime(2030, 1, 1, 9, tzinfo=timezone.utc),
    )

    assert (await client.post(f"{API}/lessons/{booking.id}/decline", headers=auth_headers(stranger))).status_code == 403
    assert (await client.post(f"{API}/lessons/{booking.id}/decline", headers=auth_headers(student))).status_code == 403
    assert (await client.post(f"{API}/lessons/999/decline", headers=auth_headers(admin))).status_code == 404

    res = await client.post(f"{API}/lessons/{booking.id}/decline", headers=auth_headers(admin))
    assert res.status_code == 200
    assert res.json()["status"] == "canceled"


@pytest.mark.asyncio
async def test_elapsed_confirmed_bookings_are_completed(db, session_factory) -> None:
    teacher = await make_user(session_factory, email="t@toki.io", role="teacher")
    student = await make_user(session_factory, email="s@toki.io")
    now = datetime(2030, 6, 1, 12, tzinfo=timezone.utc)
    past = await make_booking(
        session_factory, student_id=student.id, teacher_id=teacher.id, lesson_date=now - timedelta(hours=3)
    )
    running = await make_booking(
        session_factory,
        student_id=student.id,
        teacher_id=teacher.id,
        lesson_type="trial",
        lesson_date=now - timedelta(minutes=30),
    )
    canceled = await make_booking(
        session_factory,
        student_id=student.id,
        teacher_id=teacher.id,
        lesson_type="group",
        lesson_date=now - timedelta(days=1),
        status="canceled",
    )

    changed = await complete_elapsed_bookings(db, now=now)
    await db.commit()

    assert changed == 1
    async with session_factory() as session:
        statuses = dict((await session.execute(select(Booking.id, Booking.status))).all())
    assert statuses[past.id] == "completed"
    assert statuses[running.id] == "confirmed"
    assert statuses[canceled.id] == "canceled"
