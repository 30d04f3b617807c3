from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.v1.deps import user_name_map
from app.db.session import get_db, get_session_factory
from app.models.finance import Payout, Transaction
from app.models.user import User
from app.schemas.finance import (
    CommissionSettingsIn,
    CommissionSettingsOut,
    PayoutBatchOut,
    PayoutOut,
    TransactionOut,
)
from app.services.auth import AuthUser, get_current_admin
from app.services.finance import ensure_commission_settings, list_transactions
from app.services.payments import cents_to_amount
from app.services.payouts import list_payouts, process_payouts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin-finance"])


def _to_payout_out(row: Payout, teacher: User | None) -> PayoutOut:
    return PayoutOut(
        id=row.id,
        teacher_id=row.teacher_id,
        teacher_name=(teacher.full_name or teacher.email) if teacher is not None else "",
        amount=cents_to_amount(row.amount_cents),
        method=row.method,
        status=row.status,
        created_at=row.created_at,
    )


def _to_transaction_out(row: Transaction, names: dict[int, str]) -> TransactionOut:
    return TransactionOut(
        id=row.id,
        user_id=row.user_id,
        student_name=names.get(row.user_id, "") if row.user_id else "",
        teacher_id=row.teacher_id,
        teacher_name=names.get(row.teacher_id, "") if row.teacher_id else "",
        booking_id=row.booking_id,
        amount=cents_to_amount(row.amount_cents),
        currency=row.currency,
        type=row.type,
        status=row.status,
        platform_fee=cents_to_amount(row.platform_fee_cents),
        teacher_earnings=cents_to_amount(row.teacher_earnings_cents),
        payment_ref=row.payment_ref,
        created_at=row.created_at,
    )


@router.post("/payouts", response_model=PayoutBatchOut)
async def run_payouts(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    admin: AuthUser = Depends(get_current_admin),
) -> PayoutBatchOut:
    logger.info("Admin %s started a payout batch", admin.user_id)
    batch = await process_payouts(factory)
    if not batch.processed_count:
        message = "No teachers with positive balance to process"
    else:
        message = f"Successfully processed {batch.processed_count} payouts"
    return PayoutBatchOut(
        message=message,
        processed_count=batch.processed_count,
        payouts=[_to_payout_out(p, teacher) for p, teacher in batch.payouts],
    )


@router.get("/payouts", response_model=list[PayoutOut])
async def get_payouts(
    teacher_id: int | None = Query(default=None, alias="teacherId"),
    status: str | None = Query(default=None, max_length=20),
    db: AsyncSession = Depends(get_db),
    _admin: AuthUser = Depends(get_current_admin),
) -> list[PayoutOut]:
    rows = await list_payouts(db, teacher_id=teacher_id, status=status)
    return [_to_payout_out(p, teacher) for p, teacher in rows]


@router.get("/transactions", response_model=list[TransactionOut])
async def get_transactions(
    tx_type: str | None = Query(default=None, alias="type", max_length=20),
    db: AsyncSession = Depends(get_db),
    _admin: AuthUser = Depends(get_current_admin),
) -> list[TransactionOut]:
    rows = await list_transactions(db, tx_type=tx_type)
    names = await user_name_map(db, {r.user_id for r in rows} | {r.teacher_id for r in rows})
    return [_to_transaction_out(r, names) for r in rows]


@router.get("/commission-settings", response_model=CommissionSettingsOut)
async def get_commission_settings(
    db: AsyncSession = Depends(get_db),
    _admin: AuthUser = Depends(get_current_admin),
) -> CommissionSettingsOut:
    row = await ensure_commission_settings(db)
    await db.commit()
    await db.refresh(row)
    return CommissionSettingsOut(
        standard_rate=row.standard_rate,
        premium_rate=row.premium_rate,
        new_teacher_rate=row.new_teacher_rate,
        updated_at=row.updated_at,
    )


@router.put("/commission-settings", response_model=CommissionSettingsOut)
async def put_commission_settings(
    payload: CommissionSettingsIn,
    db: AsyncSession = Depends(get_db),
    admin: AuthUser = Depends(get_current_admin),
) -> CommissionSettingsOut:
    row = await ensure_commission_settings(db)
    row.standard_rate = payload.standard_rate
    row.premium_rate = payload.premium_rate
    row.new_teacher_rate = payload.new_teacher_rate
    await db.commit()
    await db.refresh(row)
    logger.info("Admin %s updated commission settings", admin.user_id)
    return CommissionSettingsOut(
        standard_rate=row.standard_rate,
        premium_rate=row.premium_rate,
        new_teacher_rate=row.new_teacher_rate,
        updated_at=row.updated_at,
    )
