from __future__ import annotations

import logging

import stripe
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.errors import InternalError, NotFoundError, ValidationError
from app.db.session import get_db, get_session_factory
from app.models.common import as_utc
from app.models.user import User
from app.schemas.finance import CheckoutIn, CheckoutOut, WebhookAckOut
from app.services.auth import AuthUser, get_current_user, require_role
from app.services.bookings import create_booking
from app.services.finance import record_checkout_completion
from app.services.payments import (
    PaymentProviderError,
    amount_to_cents,
    cents_to_amount,
    create_stripe_checkout_session,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments"])

_FREE_DEMO_TYPES = {"free-demo", "free_demo", "demo"}
_TRIAL_TYPES = {"trial", "trial-class", "trial_class"}


def _lesson_price_cents(teacher: User, lesson_type: str, requested_cents: int) -> int:
    kind = lesson_type.strip().lower()
    if kind in _FREE_DEMO_TYPES:
        if not teacher.free_demo_available:
            raise ValidationError("This teacher does not offer a free demo")
        return 0
    if kind in _TRIAL_TYPES:
        if teacher.trial_class_price_cents is None:
            raise ValidationError("This teacher does not offer a trial class")
        return teacher.trial_class_price_cents
    return requested_cents


@router.post("/payments/checkout", response_model=CheckoutOut)
async def create_checkout(
    payload: CheckoutIn,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> CheckoutOut:
    require_role(current_user, {"student"})
    teacher = (
        await db.execute(
            select(User).where(and_(User.id == payload.teacher_id, User.role == "teacher", User.status == "active"))
        )
    ).scalar_one_or_none()
    if teacher is None:
        raise NotFoundError("Teacher not found")

    amount_cents = _lesson_price_cents(teacher, payload.lesson_type, amount_to_cents(payload.amount))
    if amount_cents == 0:
        await create_booking(
            db,
            student_id=current_user.user_id,
            teacher_id=teacher.id,
            lesson_type=payload.lesson_type,
            lesson_date=payload.lesson_date,
            duration_minutes=payload.lesson_duration,
            amount_cents=0,
            currency=settings.default_currency,
            notes=payload.notes,
        )
        await db.commit()
        return CheckoutOut(session_id="", checkout_url=payload.success_url, status="free", amount=0.0)

    try:
        stripe_session = await create_stripe_checkout_session(
            secret_key=settings.stripe_secret_key,
            amount_cents=amount_cents,
            currency=settings.default_currency,
            title=f"{payload.lesson_type.strip().title()} lesson with {teacher.full_name or teacher.email}",
            success_url=payload.success_url,
            cancel_url=payload.cancel_url,
            metadata={
                "user_id": str(current_user.user_id),
                "teacher_id": str(teacher.id),
                "lesson_type": payload.lesson_type.strip(),
                "lesson_date": as_utc(payload.lesson_date).isoformat(),
                "lesson_duration": str(payload.lesson_duration),
                "notes": (payload.notes or "").strip()[:450],
            },
        )
    except PaymentProviderError as exc:
        logger.exception("Stripe checkout creation failed")
        raise HTTPException(status_code=502, detail="Payment provider unavailable") from exc

    return CheckoutOut(
        session_id=stripe_session["session_id"],
        checkout_url=stripe_session["checkout_url"],
        status=stripe_session["status"],
        amount=cents_to_amount(amount_cents),
    )


@router.post("/webhooks/stripe", response_model=WebhookAckOut)
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> WebhookAckOut:
    if not settings.stripe_webhook_secret:
        raise InternalError("Stripe webhook secret is not configured")

    body = await request.body()
    try:
        event = stripe.Webhook.construct_event(
            body,
            stripe_signature or "",
            settings.stripe_webhook_secret,
            tolerance=settings.stripe_webhook_tolerance_seconds,
        )
    except stripe.SignatureVerificationError as exc:
        logger.warning("Stripe webhook rejected: %s", exc)
        raise ValidationError("Webhook signature verification failed") from exc
    except ValueError as exc:
        raise ValidationError("Webhook body is not valid JSON") from exc

    event_type = str(event.get("type") or "")
    if event_type != "checkout.session.completed":
        logger.info("Ignoring Stripe event %s", event_type)
        return WebhookAckOut(status="ignored")

    session = event.get("data", {}).get("object", {})
    outcome = await record_checkout_completion(session, factory)
    return WebhookAckOut(status=outcome)
