from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.db.session import unit_of_work
from app.models.finance import Payout
from app.models.user import User

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PayoutBatch:
    processed_count: int = 0
    payouts: list[tuple[Payout, User]] = field(default_factory=list)


async def _eligible_teachers(db: AsyncSession) -> list[User]:
    return list(
        (
            await db.execute(
                select(User)
                .where(and_(User.role == "teacher", User.balance_cents > 0))
                .order_by(User.id.asc())
                .with_for_update()
            )
        ).scalars().all()
    )


async def _settle_teacher(db: AsyncSession, teacher: User, *, method: str, status: str) -> Payout:
    payout = Payout(
        teacher_id=teacher.id,
        amount_cents=teacher.balance_cents,
        method=method,
        status=status,
    )
    db.add(payout)
    teacher.balance_cents = 0
    await db.flush()
    return payout


async def process_payouts(
    factory: async_sessionmaker[AsyncSession] | None = None,
    *,
    method: str | None = None,
    status: str | None = None,
) -> PayoutBatch:
    """Pay out every teacher's full balance in a single transaction.

    Each eligible teacher gets one payout row and a zeroed balance. Any failure
    rolls the whole batch back, so a balance never changes without its payout.
    """
    batch = PayoutBatch()
    async with unit_of_work(factory) as db:
        teachers = await _eligible_teachers(db)
        if not teachers:
            logger.info("Payout batch skipped: no teacher has a positive balance")
            return batch

        for teacher in teachers:
            payout = await _settle_teacher(
                db,
                teacher,
                method=method or settings.payout_method,
                status=status or settings.payout_status,
            )
            batch.payouts.append((payout, teacher))

    batch.processed_count = len(batch.payouts)
    logger.info(
        "Payout batch committed: %s teachers, %s cents",
        batch.processed_count,
        sum(p.amount_cents for p, _ in batch.payouts),
    )
    return batch


async def list_payouts(
    db: AsyncSession,
    *,
    teacher_id: int | None = None,
    status: str | None = None,
    limit: int = 200,
) -> list[tuple[Payout, User | None]]:
    stmt = select(Payout, User).outerjoin(User, User.id == Payout.teacher_id)
    if teacher_id is not None:
        stmt = stmt.where(Payout.teacher_id == teacher_id)
    if status:
        stmt = stmt.where(Payout.status == status)
    rows = (await db.execute(stmt.order_by(Payout.created_at.desc(), Payout.id.desc()).limit(limit))).all()
    return [(row[0], row[1]) for row in rows]
