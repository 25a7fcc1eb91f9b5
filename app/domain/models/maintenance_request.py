"""Maintenance request — the client's service ticket."""

import enum

from sqlalchemy import Column, Integer, String, Float, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.clock import utcnow
from app.infrastructure.database import Base


class RequestStatus(str, enum.Enum):
    PENDING = "pendente"
    IN_PROGRESS = "em_progresso"
    COMPLETED = "concluido"
    CANCELLED = "cancelado"


class ServiceCategory(str, enum.Enum):
    PLUMBING = "Canalização"
    ELECTRICAL = "Eletricidade"
    PAINTING = "Pintura"
    OTHER = "Outro"


class MaintenanceRequest(Base):
    __tablename__ = "maintenance_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(120), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(50), nullable=False, index=True)
    price = Column(Float, nullable=True)
    status = Column(String(20), nullable=False, default=RequestStatus.PENDING.value, index=True)
    media_urls = Column(JSON, nullable=False, default=list)
    scheduled_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    technician_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    owner = relationship("User", foreign_keys=[owner_id], back_populates="owned_requests")
    technician = relationship("User", foreign_keys=[technician_id], back_populates="assigned_requests")
    messages = relationship(
        "Message",
        back_populates="request",
        order_by="Message.id",
        passive_deletes=True,
    )
    feedback = relationship("Feedback", back_populates="request", uselist=False, passive_deletes=True)

    def __repr__(self):
        return f"<MaintenanceRequest {self.id} - {self.title} ({self.status})>"
