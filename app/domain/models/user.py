"""User domain model — maps to the 'users' table."""

import enum

from sqlalchemy import Column, Integer, String, Date, DateTime, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.infrastructure.database import Base


class UserRole(str, enum.Enum):
    CLIENT = "client"
    TECHNICIAN = "technician"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    nif = Column(String(9), nullable=True)
    birth_date = Column(Date, nullable=True)
    avatar_url = Column(String(1000), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.CLIENT.value, index=True)
    technician_categories = Column(JSON, nullable=False, default=list)

    # Password reset (sha256 of the one-time token)
    reset_token_hash = Column(String(64), nullable=True, index=True)
    reset_token_expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    owned_requests = relationship(
        "MaintenanceRequest", foreign_keys="MaintenanceRequest.owner_id", back_populates="owner", passive_deletes=True
    )
    assigned_requests = relationship(
        "MaintenanceRequest", foreign_keys="MaintenanceRequest.technician_id", back_populates="technician", passive_deletes=True
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_technician(self) -> bool:
        return self.role == UserRole.TECHNICIAN.value

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part).strip()

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
