"""Notification service — best-effort immediate emails and scheduled reminders.

Immediate emails run as background tasks after the response is sent; a
delivery failure is logged and dropped, never surfaced to the caller.
Scheduled emails are rows picked up later by the email dispatcher.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional

import structlog
from sqlalchemy.orm import Session

from app.application.services import email_templates
from app.core.clock import as_utc, utcnow
from app.domain.models.maintenance_request import MaintenanceRequest
from app.domain.models.scheduled_email import EmailKind, ScheduledEmail
from app.domain.models.user import User
from app.domain.schemas.notification import MailMessage
from app.infrastructure.mailer import MailClient
from app.infrastructure.repositories.scheduled_email_repository import SQLAlchemyScheduledEmailRepository

logger = structlog.get_logger(__name__)

REMINDER_LEAD_TIME = timedelta(hours=24)


async def send_best_effort(mailer: MailClient, message: MailMessage) -> bool:
    """Send one message; any failure is logged and swallowed."""
    try:
        await mailer.send(message)
        return True
    except Exception as e:
        logger.error("Notification email failed", to=message.to, subject=message.subject, error=str(e))
        return False


async def send_all_best_effort(mailer: MailClient, messages: Iterable[MailMessage]) -> int:
    sent = 0
    for message in messages:
        if await send_best_effort(mailer, message):
            sent += 1
    return sent


def schedule_email(
    db: Session,
    to_email: str,
    subject: str,
    body: str,
    send_at: datetime,
    request_id: Optional[int] = None,
    kind: EmailKind = EmailKind.MANUAL,
) -> ScheduledEmail:
    repo = SQLAlchemyScheduledEmailRepository(db, ScheduledEmail)
    email = repo.create({
        "to_email": to_email,
        "subject": subject,
        "body": body,
        "send_at": as_utc(send_at),
        "request_id": request_id,
        "kind": kind.value,
    })
    logger.info(
        "Email scheduled",
        email_id=email.id,
        kind=email.kind,
        to=to_email,
        send_at=email.send_at,
        request_id=request_id,
    )
    return email


def schedule_visit_reminder(db: Session, request: MaintenanceRequest, recipient: User) -> Optional[ScheduledEmail]:
    """Remind `recipient` a day before the visit (right away if that moment already passed)."""
    scheduled_at = as_utc(request.scheduled_at)
    if scheduled_at is None or scheduled_at <= utcnow():
        return None
    send_at = max(scheduled_at - REMINDER_LEAD_TIME, utcnow())
    subject, body = email_templates.visit_reminder_body(request, recipient)
    return schedule_email(
        db, recipient.email, subject, body, send_at, request_id=request.id, kind=EmailKind.VISIT_REMINDER
    )


def cancel_visit_reminders(db: Session, request: MaintenanceRequest, recipient: Optional[User] = None) -> int:
    """Drop the pending reminders of a request, for everyone or for one recipient."""
    deleted = SQLAlchemyScheduledEmailRepository(db, ScheduledEmail).delete_pending(
        request.id,
        EmailKind.VISIT_REMINDER.value,
        to_email=recipient.email if recipient is not None else None,
    )
    if deleted:
        logger.info("Visit reminders cancelled", request_id=request.id, count=deleted)
    return deleted


def reschedule_visit_reminders(db: Session, request: MaintenanceRequest) -> list[ScheduledEmail]:
    """Replace pending reminders with fresh ones for the owner and the assigned technician."""
    cancel_visit_reminders(db, request)
    reminders = []
    for recipient in (request.owner, request.technician):
        if recipient is None:
            continue
        reminder = schedule_visit_reminder(db, request, recipient)
        if reminder is not None:
            reminders.append(reminder)
    return reminders


def schedule_feedback_invitation(db: Session, request: MaintenanceRequest) -> Optional[ScheduledEmail]:
    if request.owner is None:
        return None
    subject, body = email_templates.feedback_invitation_body(request, request.owner)
    return schedule_email(
        db, request.owner.email, subject, body, utcnow(), request_id=request.id, kind=EmailKind.FEEDBACK_INVITATION
    )
