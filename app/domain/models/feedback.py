"""Client feedback on a completed request — one per request."""

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.infrastructure.database import Base


class Feedback(Base):
    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    request_id = Column(
        Integer, ForeignKey("maintenance_requests.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    request = relationship("MaintenanceRequest", back_populates="feedback")
    user = relationship("User")

    def __repr__(self):
        return f"<Feedback {self.rating}/5 on request {self.request_id}>"
