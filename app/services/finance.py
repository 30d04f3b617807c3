from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.errors import ValidationError
from app.db.session import unit_of_work
from app.models.finance import CommissionSettings, Transaction
from app.models.user import User
from app.services.bookings import create_booking

logger = logging.getLogger(__name__)


async def ensure_commission_settings(db: AsyncSession) -> CommissionSettings:
    row = (
        await db.execute(select(CommissionSettings).order_by(CommissionSettings.id.asc()).limit(1))
    ).scalar_one_or_none()
    if row is None:
        row = CommissionSettings(standard_rate=12, premium_rate=10, new_teacher_rate=8)
        db.add(row)
        await db.flush()
    return row


def split_commission(amount_cents: int, percent: int) -> tuple[int, int]:
    """Return ``(platform_fee_cents, teacher_earnings_cents)``; the fee rounds half-up."""
    if amount_cents <= 0:
        return 0, 0
    fee = int((Decimal(amount_cents) * Decimal(percent) / Decimal(100)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    fee = min(max(fee, 0), amount_cents)
    return fee, amount_cents - fee


def _metadata_int(metadata: Mapping[str, Any], key: str) -> int:
    try:
        return int(str(metadata.get(key) or "").strip())
    except ValueError as exc:
        raise ValidationError(f"Checkout metadata {key} is invalid") from exc


def _metadata_datetime(metadata: Mapping[str, Any], key: str) -> datetime:
    raw = str(metadata.get(key) or "").strip()
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError(f"Checkout metadata {key} is invalid") from exc


async def record_checkout_completion(
    session: Mapping[str, Any],
    factory: async_sessionmaker[AsyncSession] | None = None,
) -> str:
    """Apply a completed checkout session: booking, transaction and teacher credit.

    Everything happens in one unit of work keyed by the checkout session id, so a
    redelivered event finds its transaction and changes nothing. Returns
    ``"recorded"`` or ``"duplicate"``.
    """
    payment_ref = str(session.get("id") or "").strip()
    if not payment_ref:
        raise ValidationError("Checkout session id missing")
    metadata = session.get("metadata") or {}
    if not isinstance(metadata, Mapping):
        metadata = {}
    student_id = _metadata_int(metadata, "user_id")
    teacher_id = _metadata_int(metadata, "teacher_id")
    lesson_date = _metadata_datetime(metadata, "lesson_date")
    duration = _metadata_int(metadata, "lesson_duration") if metadata.get("lesson_duration") else 60
    amount_cents = int(session.get("amount_total") or 0)
    currency = str(session.get("currency") or settings.default_currency).upper()

    async with unit_of_work(factory) as db:
        seen = (
            await db.execute(select(Transaction.id).where(Transaction.payment_ref == payment_ref))
        ).scalar_one_or_none()
        if seen is not None:
            logger.info("Checkout %s already recorded as transaction %s", payment_ref, seen)
            return "duplicate"

        booking, _ = await create_booking(
            db,
            student_id=student_id,
            teacher_id=teacher_id,
            lesson_type=str(metadata.get("lesson_type") or "standard"),
            lesson_date=lesson_date,
            duration_minutes=duration,
            amount_cents=amount_cents,
            currency=currency,
            notes=str(metadata.get("notes") or "") or None,
            payment_ref=payment_ref,
        )
        commission = await ensure_commission_settings(db)
        fee, earnings = split_commission(amount_cents, commission.standard_rate)
        db.add(
            Transaction(
                user_id=student_id,
                teacher_id=teacher_id,
                booking_id=booking.id,
                amount_cents=amount_cents,
                currency=currency,
                type="lesson",
                status="completed",
                platform_fee_cents=fee,
                teacher_earnings_cents=earnings,
                payment_ref=payment_ref,
            )
        )
        await db.execute(
            update(User).where(User.id == teacher_id).values(balance_cents=User.balance_cents + earnings)
        )

    logger.info(
        "Checkout %s recorded: booking %s, %s cents, teacher %s credited %s",
        payment_ref,
        booking.id,
        amount_cents,
        teacher_id,
        earnings,
    )
    return "recorded"


async def list_transactions(
    db: AsyncSession,
    *,
    tx_type: str | None = None,
    limit: int = 200,
) -> list[Transaction]:
    stmt = select(Transaction)
    if tx_type:
        stmt = stmt.where(Transaction.type == tx_type)
    return list(
        (await db.execute(stmt.order_by(Transaction.created_at.desc(), Transaction.id.desc()).limit(limit)))
        .scalars()
        .all()
    )
