from __future__ import annotations

import logging

from arq.cron import cron
from arq.connections import RedisSettings

from app.core.config import settings
from app.db.session import SessionLocal
from app.services.bookings import complete_elapsed_bookings
from app.services.payouts import process_payouts

logger = logging.getLogger(__name__)


async def process_payouts_job(ctx) -> dict:
    batch = await process_payouts(SessionLocal)
    return {
        "processed_count": batch.processed_count,
        "payout_ids": [payout.id for payout, _ in batch.payouts],
    }


async def complete_past_bookings_job(ctx) -> dict:
    async with SessionLocal() as db:
        changed = await complete_elapsed_bookings(db, grace_minutes=settings.booking_autocomplete_minutes)
        if changed:
            await db.commit()
            logger.info("Marked %s elapsed bookings as completed", changed)
    return {"bookings_completed": changed}


class WorkerSettings:
    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    functions = [process_payouts_job, complete_past_bookings_job]
    cron_jobs = [cron(complete_past_bookings_job, minute=set(range(0, 60, 5)))]
