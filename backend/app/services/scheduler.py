"""Background task scheduler — daily invoice overdue sweep.

Uses FastAPI's lifespan context to start/stop an asyncio background loop
that fires once per day at the configured hour and flips every `sent`
invoice whose due date has passed to `overdue`.

Configuration:
    OVERDUE_CHECK_HOUR=1   (run at 01:00 UTC daily, via .env)
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta, timezone

from fastapi import FastAPI
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import async_session
from app.models.invoice import Invoice
from app.utils.cache import close_redis, invalidate_cache

logger = logging.getLogger("cargoflow.scheduler")


async def mark_overdue_invoices(db: AsyncSession, today: date | None = None) -> int:
    """Set status=overdue on sent invoices past their due date. Returns the count.

    Runs inside the caller's transaction; the caller commits.
    """
    today = today or date.today()
    result = await db.execute(
        update(Invoice)
        .where(Invoice.status == "sent", Invoice.due_date < today)
        .values(status="overdue", updated_at=datetime.utcnow())
    )
    return result.rowcount or 0


async def run_overdue_sweep() -> int:
    async with async_session() as db:
        try:
            count = await mark_overdue_invoices(db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    if count:
        await invalidate_cache("dashboard:*")
    logger.info("Marked %d invoice(s) overdue", count)
    return count


def _seconds_until(target_hour: int, now: datetime) -> tuple[datetime, float]:
    next_run = now.replace(hour=target_hour, minute=0, second=0, microsecond=0)
    if next_run <= now:
        next_run += timedelta(days=1)
    return next_run, (next_run - now).total_seconds()


async def _scheduler_loop() -> None:
    """Sleep until the next target hour, run the sweep, repeat."""
    while True:
        next_run, wait_seconds = _seconds_until(
            settings.overdue_check_hour, datetime.now(timezone.utc)
        )
        logger.info(
            "Next overdue sweep at %s (in %.0f seconds)",
            next_run.isoformat(),
            wait_seconds,
        )
        await asyncio.sleep(wait_seconds)

        try:
            await run_overdue_sweep()
        except Exception:
            logger.exception("Unhandled error in overdue sweep")

        # Avoid running twice in the same minute
        await asyncio.sleep(60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan: start the scheduler on startup, cancel on shutdown."""
    task = asyncio.create_task(_scheduler_loop())
    logger.info("Overdue invoice scheduler started")
    try:
        yield
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        await close_redis()
        logger.info("Overdue invoice scheduler stopped")
