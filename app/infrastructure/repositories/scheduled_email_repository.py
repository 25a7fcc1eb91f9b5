"""
SQLAlchemy Implementation of the Scheduled Email Repository.
"""

from datetime import datetime
from typing import List, Optional

from app.domain.models.scheduled_email import ScheduledEmail
from app.domain.repositories.scheduled_email_repository import ScheduledEmailRepository
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository

MAX_ERROR_LENGTH = 500


class SQLAlchemyScheduledEmailRepository(SQLAlchemyRepository[ScheduledEmail], ScheduledEmailRepository):
    """Scheduled email repository implementation using SQLAlchemy."""

    def list_due(self, now: datetime) -> List[ScheduledEmail]:
        return (
            self.db.query(ScheduledEmail)
            .filter(ScheduledEmail.send_at <= now, ScheduledEmail.sent_at.is_(None))
            .order_by(ScheduledEmail.send_at.asc(), ScheduledEmail.id.asc())
            .all()
        )

    def list_all(self, pending: bool | None = None) -> List[ScheduledEmail]:
        query = self.db.query(ScheduledEmail)
        if pending is True:
            query = query.filter(ScheduledEmail.sent_at.is_(None))
        elif pending is False:
            query = query.filter(ScheduledEmail.sent_at.isnot(None))
        return query.order_by(ScheduledEmail.send_at.desc(), ScheduledEmail.id.desc()).all()

    def mark_sent(self, email_id: int, sent_at: datetime) -> bool:
        """Stamp `sent_at` once; a row deleted or already sent meanwhile is left alone."""
        updated = (
            self.db.query(ScheduledEmail)
            .filter(ScheduledEmail.id == email_id, ScheduledEmail.sent_at.is_(None))
            .update(
                {ScheduledEmail.sent_at: sent_at, ScheduledEmail.last_error: None},
                synchronize_session=False,
            )
        )
        self.db.commit()
        return updated == 1

    def record_failure(self, email_id: int, error: str) -> bool:
        updated = (
            self.db.query(ScheduledEmail)
            .filter(ScheduledEmail.id == email_id, ScheduledEmail.sent_at.is_(None))
            .update(
                {
                    ScheduledEmail.attempts: ScheduledEmail.attempts + 1,
                    ScheduledEmail.last_error: error[:MAX_ERROR_LENGTH],
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        return updated == 1

    def delete_pending(self, request_id: int, kind: str, to_email: Optional[str] = None) -> int:
        """Drop unsent rows of one kind for a request; sent rows stay as history."""
        query = self.db.query(ScheduledEmail).filter(
            ScheduledEmail.request_id == request_id,
            ScheduledEmail.kind == kind,
            ScheduledEmail.sent_at.is_(None),
        )
        if to_email is not None:
            query = query.filter(ScheduledEmail.to_email == to_email)
        deleted = query.delete(synchronize_session=False)
        self.db.commit()
        return deleted
