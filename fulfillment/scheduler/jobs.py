"""APScheduler jobs — daily invoice recomputation for the current period."""

import logging
from datetime import datetime

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from fulfillment.config import get_settings
from fulfillment.infrastructure.database import SessionLocal

settings = get_settings()
logger = logging.getLogger(__name__)
tz = pytz.timezone(settings.TIMEZONE)

scheduler = AsyncIOScheduler(timezone=tz)


async def daily_invoice_job():
    """Recompute the current period's invoice of every active customer."""
    from fulfillment.application.services.invoice_service import recalculate_period
    from fulfillment.application.services.period import current_period

    period = current_period()
    logger.info(f"Running invoice recalculation for {period} at {datetime.now(tz).strftime('%d/%m/%Y %H:%M')}")

    db = SessionLocal()
    try:
        report = recalculate_period(db, period)
        logger.info(
            f"Invoice recalculation result: {report.processed_invoices} invoices, "
            f"{len(report.failures)} failures"
        )
        for failure in report.failures:
            logger.warning(f"User {failure.user_id} ({failure.period}) failed: {failure.code} - {failure.error}")
    except Exception as e:
        logger.error(f"Invoice recalculation job failed: {e}")
    finally:
        db.close()


def start_scheduler():
    """Start the APScheduler with the daily invoice job."""
    scheduler.add_job(
        daily_invoice_job,
        trigger=CronTrigger(hour=settings.BILLING_RECALC_CRON_HOUR, minute=0, timezone=tz),
        id="daily_invoice_recalculation",
        name=f"Invoice Recalculation (Daily {settings.BILLING_RECALC_CRON_HOUR:02d}:00)",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(f"Scheduler started: invoices recomputed daily at {settings.BILLING_RECALC_CRON_HOUR:02d}:00 {settings.TIMEZONE}")


def stop_scheduler():
    """Stop the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
