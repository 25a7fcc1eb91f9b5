"""Chat message posted on a maintenance request thread."""

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.clock import utcnow
from app.infrastructure.database import Base


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    content = Column(Text, nullable=False)
    attachment_urls = Column(JSON, nullable=False, default=list)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    request_id = Column(
        Integer, ForeignKey("maintenance_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)

    sender = relationship("User")
    request = relationship("MaintenanceRequest", back_populates="messages")

    def __repr__(self):
        return f"<Message {self.id} on request {self.request_id}>"
