"""APScheduler jobs — scheduled email dispatch on a fixed interval."""

from typing import Callable, Optional

import pytz
import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from app.config import get_settings
from app.infrastructure.database import SessionLocal
from app.infrastructure.mailer import MailClient

settings = get_settings()
logger = structlog.get_logger(__name__)
tz = pytz.timezone(settings.TIMEZONE)

scheduler = AsyncIOScheduler(timezone=tz)

EMAIL_DISPATCH_JOB_ID = "email_dispatch"


async def email_dispatch_job(mailer: MailClient, session_factory: Callable[[], Session] = SessionLocal):
    """Periodic job: deliver every due scheduled email once."""
    from app.application.services.email_dispatcher import dispatch_due_emails

    db = session_factory()
    try:
        await dispatch_due_emails(db, mailer)
    except Exception as e:
        logger.error("Email dispatch job failed", error=str(e))
    finally:
        db.close()


def start_scheduler(mailer: MailClient, session_factory: Optional[Callable[[], Session]] = None):
    """Start the APScheduler with the email dispatch job."""
    interval = settings.EMAIL_DISPATCH_INTERVAL_SECONDS
    scheduler.add_job(
        email_dispatch_job,
        trigger=IntervalTrigger(seconds=interval, timezone=tz),
        kwargs={"mailer": mailer, "session_factory": session_factory or SessionLocal},
        id=EMAIL_DISPATCH_JOB_ID,
        name=f"Scheduled Email Dispatch (Every {interval}s)",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info("Scheduler started", interval_seconds=interval, timezone=settings.TIMEZONE)


def stop_scheduler():
    """Stop the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
