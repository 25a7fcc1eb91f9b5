"""Deferred notification — picked up by the email dispatcher once due."""

import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func

from app.infrastructure.database import Base


class EmailKind(str, enum.Enum):
    VISIT_REMINDER = "visit_reminder"
    FEEDBACK_INVITATION = "feedback_invitation"
    MANUAL = "manual"


class ScheduledEmail(Base):
    __tablename__ = "scheduled_emails"

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(
        Integer, ForeignKey("maintenance_requests.id", ondelete="SET NULL"), nullable=True, index=True
    )
    kind = Column(String(32), nullable=False, default=EmailKind.MANUAL.value, index=True)
    to_email = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    send_at = Column(DateTime(timezone=True), nullable=False, index=True)
    sent_at = Column(DateTime(timezone=True), nullable=True, index=True)  # null until dispatched
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def is_pending(self) -> bool:
        return self.sent_at is None

    def __repr__(self):
        return f"<ScheduledEmail {self.id} {self.kind} -> {self.to_email} ({'pending' if self.is_pending else 'sent'})>"
