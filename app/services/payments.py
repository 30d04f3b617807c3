from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any

import httpx

_CENT = Decimal("0.01")


class PaymentProviderError(RuntimeError):
    pass


def amount_to_cents(amount: Decimal | int | float | str) -> int:
    value = Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return int(value * 100)


def _amount_value_from_cents(amount_cents: int) -> str:
    amount = (Decimal(amount_cents) / Decimal(100)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return format(amount, "f")


def cents_to_amount(amount_cents: int | None) -> float:
    return float(_amount_value_from_cents(int(amount_cents or 0)))


async def create_stripe_checkout_session(
    *,
    secret_key: str,
    amount_cents: int,
    currency: str,
    title: str,
    success_url: str,
    cancel_url: str,
    metadata: dict[str, str] | None = None,
) -> dict[str, Any]:
    if not secret_key:
        raise PaymentProviderError("STRIPE_SECRET_KEY missing")

    form: dict[str, str] = {
        "mode": "payment",
        "success_url": success_url,
        "cancel_url": cancel_url,
        "line_items[0][price_data][currency]": currency.lower(),
        "line_items[0][price_data][unit_amount]": str(amount_cents),
        "line_items[0][price_data][product_data][name]": title,
        "line_items[0][quantity]": "1",
    }
    for key, value in (metadata or {}).items():
        form[f"metadata[{key}]"] = value

    headers = {"Authorization": f"Bearer {secret_key}"}
    async with httpx.AsyncClient(timeout=30) as client:
        res = await client.post(
            "https://api.stripe.com/v1/checkout/sessions",
            data=form,
            headers=headers,
        )
    if not res.is_success:
        raise PaymentProviderError(f"Stripe checkout error ({res.status_code}): {res.text}")
    payload = res.json()
    return {
        "session_id": str(payload.get("id") or ""),
        "checkout_url": str(payload.get("url") or ""),
        "status": str(payload.get("status") or "open"),
    }

