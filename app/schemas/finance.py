from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class PayoutOut(BaseModel):
    id: int
    teacher_id: int | None = None
    teacher_name: str = ""
    amount: float
    method: str
    status: str
    created_at: datetime


class PayoutBatchOut(BaseModel):
    message: str
    processed_count: int
    payouts: list[PayoutOut]


class TransactionOut(BaseModel):
    id: int
    user_id: int | None = None
    student_name: str = ""
    teacher_id: int | None = None
    teacher_name: str = ""
    booking_id: int | None = None
    amount: float
    currency: str
    type: str
    status: str
    platform_fee: float
    teacher_earnings: float
    payment_ref: str | None = None
    created_at: datetime


class CommissionSettingsOut(BaseModel):
    standard_rate: int
    premium_rate: int
    new_teacher_rate: int
    updated_at: datetime


class CommissionSettingsIn(BaseModel):
    standard_rate: int = Field(ge=0, le=100)
    premium_rate: int = Field(ge=0, le=100)
    new_teacher_rate: int = Field(ge=0, le=100)


class CheckoutIn(BaseModel):
    teacher_id: int = Field(gt=0)
    lesson_type: str = Field(min_length=1, max_length=80)
    lesson_date: datetime
    lesson_duration: int = Field(default=60, ge=15, le=600)
    amount: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    notes: str | None = Field(default=None, max_length=4000)
    success_url: str = Field(min_length=1, max_length=1000)
    cancel_url: str = Field(min_length=1, max_length=1000)


class CheckoutOut(BaseModel):
    session_id: str
    checkout_url: str
    status: str
    amount: float


class WebhookAckOut(BaseModel):
    received: bool = True
    status: str
