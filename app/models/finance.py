from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.common import CreatedAtMixin, TimestampMixin


class Payout(CreatedAtMixin, Base):
    __tablename__ = "payouts"
    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_payouts_amount_positive"),
        Index("ix_payouts_teacher_created", "teacher_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    teacher_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    method: Mapped[str] = mapped_column(String(40), default="Bank Transfer", nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="Processed", nullable=False)


class Transaction(CreatedAtMixin, Base):
    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("payment_ref", name="uq_transactions_payment_ref"),
        CheckConstraint("type in ('lesson','subscription')", name="ck_transactions_type"),
        CheckConstraint("amount_cents >= 0", name="ck_transactions_amount_non_negative"),
        CheckConstraint("platform_fee_cents >= 0", name="ck_transactions_fee_non_negative"),
        CheckConstraint("teacher_earnings_cents >= 0", name="ck_transactions_earnings_non_negative"),
        Index("ix_transactions_status_created", "status", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True)
    teacher_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    booking_id: Mapped[int | None] = mapped_column(
        ForeignKey("bookings.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    type: Mapped[str] = mapped_column(String(20), default="lesson", nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="completed", nullable=False)
    platform_fee_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    teacher_earnings_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    payment_ref: Mapped[str | None] = mapped_column(String(255), nullable=True)


class CommissionSettings(TimestampMixin, Base):
    __tablename__ = "commission_settings"
    __table_args__ = (
        CheckConstraint("standard_rate between 0 and 100", name="ck_commission_standard_range"),
        CheckConstraint("premium_rate between 0 and 100", name="ck_commission_premium_range"),
        CheckConstraint("new_teacher_rate between 0 and 100", name="ck_commission_new_teacher_range"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    standard_rate: Mapped[int] = mapped_column(Integer, default=12, nullable=False)
    premium_rate: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    new_teacher_rate: Mapped[int] = mapped_column(Integer, default=8, nullable=False)
