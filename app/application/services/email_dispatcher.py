"""Email dispatcher — one pass over the scheduled email queue.

A row is pending while `sent_at` is null and `send_at` has passed. Each
cycle tries every pending row once:
- blocked destination: marked sent without delivery
- delivered: marked sent
- failed: attempts/last_error recorded, row stays pending for the next cycle
"""

from datetime import datetime
from typing import Iterable, Optional

import structlog
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.clock import utcnow
from app.domain.models.scheduled_email import ScheduledEmail
from app.domain.schemas.notification import DispatchResult, MailMessage
from app.infrastructure.mailer import MailClient
from app.infrastructure.repositories.scheduled_email_repository import SQLAlchemyScheduledEmailRepository

settings = get_settings()
logger = structlog.get_logger(__name__)


def is_blocked_destination(address: str, blocked_domains: Iterable[str]) -> bool:
    """True for internal/test domains and their subdomains, and for malformed addresses."""
    address = (address or "").strip().lower()
    if "@" not in address:
        return True
    domain = address.rsplit("@", 1)[1]
    return any(domain == blocked or domain.endswith("." + blocked) for blocked in blocked_domains)


async def dispatch_due_emails(
    db: Session,
    mailer: MailClient,
    now: Optional[datetime] = None,
    blocked_domains: Optional[Iterable[str]] = None,
) -> DispatchResult:
    now = now or utcnow()
    blocked = list(blocked_domains if blocked_domains is not None else settings.BLOCKED_EMAIL_DOMAINS)
    repo = SQLAlchemyScheduledEmailRepository(db, ScheduledEmail)

    # Plain values up front: rows may be deleted by request handlers while we send
    due = [(e.id, e.to_email, e.subject, e.body) for e in repo.list_due(now)]
    result = DispatchResult(total=len(due))

    for email_id, to_email, subject, body in due:
        if is_blocked_destination(to_email, blocked):
            logger.warning("Skipping email to blocked domain", email_id=email_id, to=to_email)
            repo.mark_sent(email_id, utcnow())
            result.skipped += 1
            continue

        try:
            await mailer.send(MailMessage(to=[to_email], subject=subject, text=body))
        except Exception as e:
            logger.error("Scheduled email failed", email_id=email_id, to=to_email, error=str(e))
            repo.record_failure(email_id, str(e))
            result.failed += 1
            continue

        repo.mark_sent(email_id, utcnow())
        result.sent += 1

    if result.total:
        logger.info("Email dispatch cycle finished", **result.model_dump())
    return result
