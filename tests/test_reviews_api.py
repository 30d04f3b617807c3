from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.core.config import settings
from conftest import auth_headers, make_booking, make_user

API = settings.api_prefix


async def _lesson(factory, student, teacher, **fields):
    values = {"lesson_date": datetime(2030, 1, 1, 9, tzinfo=timezone.utc), "status": "completed"}
    values.update(fields)
    return await make_booking(factory, student_id=student.id, teacher_id=teacher.id, **values)


@pytest.mark.asyncio
async def test_student_reviews_a_lesson_once(client, session_factory) -> None:
    teacher = await make_user(session_factory, email="t@toki.io", role="teacher", first_name="Mia")
    student = await make_user(session_factory, email="s@toki.io")
    lesson = await _lesson(session_factory, student, teacher)

    res = await client.post(
        f"{API}/reviews",
        json={"lesson_id": lesson.id, "rating": 5, "comment": "Great"},
        headers=auth_headers(student),
    )
    assert res.status_code == 201
    assert res.json()["teacher_id"] == teacher.id

    again = await client.post(
        f"{API}/reviews",
        json={"lesson_id": lesson.id, "rating": 3},
        headers=auth_headers(student),
    )
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_review_of_someone_elses_lesson_is_not_found(client, session_factory) -> None:
    teacher = await make_user(session_factory, email="t@toki.io", role="teacher")
    owner = await make_user(session_factory, email="s@toki.io")
    intruder = await make_user(session_factory, email="i@toki.io")
    lesson = await _lesson(session_factory, owner, teacher)

    res = await client.post(
        f"{API}/reviews",
        json={"lesson_id": lesson.id, "rating": 4},
        headers=auth_headers(intruder),
    )
    assert res.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("rating", [0, 6])
async def test_rating_out_of_range_is_rejected(client, session_factory, rating) -> None:
    teacher = await make_user(session_factory, email="t@toki.io", role="teacher")
    student = await make_user(session_factory, email="s@toki.io")
    lesson = await _lesson(session_factory, student, teacher)

    res = await client.post(
        f"{API}/reviews",
        json={"lesson_id": lesson.id, "rating": rating},
        headers=auth_headers(student),
    )
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_teacher_sees_reviews_about_them_with_average(client, session_factory) -> None:
    teacher = await make_user(session_factory, email="t@toki.io", role="teacher")
    s1 = await make_user(session_factory, email="s1@toki.io")
    s2 = await make_user(session_factory, email="s2@toki.io")
    l1 = await _lesson(session_factory, s1, teacher)
    l2 = await _lesson(session_factory, s2, teacher)
    await client.post(f"{API}/reviews", json={"lesson_id": l1.id, "rating": 5}, headers=auth_headers(s1))
    await client.post(f"{API}/reviews", json={"lesson_id": l2.id, "rating": 4}, headers=auth_headers(s2))

    res = await client.get(f"{API}/reviews/my-reviews", headers=auth_headers(teacher))

    assert res.status_code == 200
    assert res.json()["total"] == 2
    assert res.json()["average_rating"] == 4.5

    public = await client.get(f"{API}/teachers/{teacher.id}/reviews")
    assert public.json()["total"] == 2

    mine = await client.get(f"{API}/reviews/my-reviews", headers=auth_headers(s1))
    assert [r["rating"] for r in mine.json()["reviews"]] == [5]
