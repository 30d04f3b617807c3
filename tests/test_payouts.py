from __future__ import annotations

import pytest
from sqlalchemy import func, select

from app.core.config import settings
from app.models import Payout, User
from app.services import payouts as payouts_service
from conftest import auth_headers, make_user

API = settings.api_prefix


async def _balances(factory) -> dict[int, int]:
    async with factory() as session:
        rows = (await session.execute(select(User.id, User.balance_cents))).all()
    return {uid: bal for uid, bal in rows}


async def _payout_count(factory) -> int:
    async with factory() as session:
        return int((await session.execute(select(func.count(Payout.id)))).scalar_one())


@pytest.mark.asyncio
async def test_payout_batch_settles_every_teacher(client, session_factory) -> None:
    admin = await make_user(session_factory, email="admin@toki.io", role="admin")
    t1 = await make_user(session_factory, email="t1@toki.io", role="teacher", balance_cents=12000)
    t2 = await make_user(session_factory, email="t2@toki.io", role="teacher", balance_cents=550)
    t3 = await make_user(session_factory, email="t3@toki.io", role="teacher", balance_cents=0)

    res = await client.post(f"{API}/admin/payouts", headers=auth_headers(admin))

    assert res.status_code == 200
    body = res.json()
    assert body["processed_count"] == 2
    by_teacher = {p["teacher_id"]: p for p in body["payouts"]}
    assert by_teacher[t1.id]["amount"] == 120.0
    assert by_teacher[t2.id]["amount"] == 5.5
    assert all(p["method"] == "Bank Transfer" and p["status"] == "Processed" for p in body["payouts"])
    assert t3.id not in by_teacher

    balances = await _balances(session_factory)
    assert balances[t1.id] == 0
    assert balances[t2.id] == 0
    assert await _payout_count(session_factory) == 2


@pytest.mark.asyncio
async def test_payout_batch_with_no_eligible_teacher(client, session_factory) -> None:
    admin = await make_user(session_factory, email="admin@toki.io", role="admin")
    # Students never get paid out, whatever their balance.
    await make_user(session_factory, email="s@toki.io", role="student", balance_cents=900)

    res = await client.post(f"{API}/admin/payouts", headers=auth_headers(admin))

    assert res.status_code == 200
    assert res.json()["processed_count"] == 0
    assert res.json()["payouts"] == []
    assert await _payout_count(session_factory) == 0


@pytest.mark.asyncio
async def test_payout_batch_rolls_back_on_failure(session_factory, monkeypatch) -> None:
    teachers = [
        await make_user(session_factory, email=f"t{i}@toki.io", role="teacher", balance_cents=1000 * (i + 1))
        for i in range(3)
    ]
    before = await _balances(session_factory)
    real_settle = payouts_service._settle_teacher
    settled: list[int] = []

    async def flaky_settle(db, teacher, **kwargs):
        if len(settled) == 2:
            raise RuntimeError("ledger unavailable")
        payout = await real_settle(db, teacher, **kwargs)
        settled.append(teacher.id)
        return payout

    monkeypatch.setattr(payouts_service, "_settle_teacher", flaky_settle)

    with pytest.raises(RuntimeError):
        await payouts_service.process_payouts(session_factory)

    assert len(settled) == 2
    assert await _balances(session_factory) == before
    assert all(before[t.id] > 0 for t in teachers)
    assert await _payout_count(session_factory) == 0


@pytest.mark.asyncio
async def test_payout_listing_filters_by_teacher(client, session_factory) -> None:
    admin = await make_user(session_factory, email="admin@toki.io", role="admin")
    t1 = await make_user(session_factory, email="t1@toki.io", role="teacher", balance_cents=100)
    await make_user(session_factory, email="t2@toki.io", role="teacher", balance_cents=200)
    await client.post(f"{API}/admin/payouts", headers=auth_headers(admin))

    res = await client.get(f"{API}/admin/payouts", params={"teacherId": t1.id}, headers=auth_headers(admin))

    assert res.status_code == 200
    assert [p["teacher_id"] for p in res.json()] == [t1.id]

    res = await client.get(f"{API}/admin/payouts", params={"status": "Processed"}, headers=auth_headers(admin))
    assert len(res.json()) == 2


@pytest.mark.asyncio
async def test_payout_history_outlives_deleted_teacher(client, session_factory) -> None:
    admin = await make_user(session_factory, email="admin@toki.io", role="admin")
    teacher = await make_user(session_factory, email="t@toki.io", role="teacher", balance_cents=5000)
    await client.post(f"{API}/admin/payouts", headers=auth_headers(admin))

    res = await client.delete(f"{API}/admin/users/{teacher.id}", headers=auth_headers(admin))
    assert res.status_code == 200

    assert await _payout_count(session_factory) == 1
    res = await client.get(f"{API}/admin/payouts", headers=auth_headers(admin))
    assert res.status_code == 200
    [payout] = res.json()
    assert payout["teacher_id"] is None
    assert payout["teacher_name"] == ""
    assert payout["amount"] == 50.0


@pytest.mark.asyncio
async def test_payout_batch_is_admin_only(client, session_factory) -> None:
    teacher = await make_user(session_factory, email="t@toki.io", role="teacher", balance_cents=100)
    res = await client.post(f"{API}/admin/payouts", headers=auth_headers(teacher))
    assert res.status_code == 403
    assert (await _balances(session_factory))[teacher.id] == 100


@pytest.mark.asyncio
async def test_worker_payout_job(session_factory, monkeypatch) -> None:
    from app.workers import arq_worker

    monkeypatch.setattr(arq_worker, "SessionLocal", session_factory)
    teacher = await make_user(session_factory, email="t@toki.io", role="teacher", balance_cents=300)

    result = await arq_worker.process_payouts_job({})

    assert result["processed_count"] == 1
    assert len(result["payout_ids"]) == 1
    assert (await _balances(session_factory))[teacher.id] == 0
