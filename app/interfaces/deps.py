"""
API Dependencies — repository providers bound to the request session.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from app.domain.models.feedback import Feedback
from app.domain.models.maintenance_request import MaintenanceRequest
from app.domain.models.scheduled_email import ScheduledEmail
from app.domain.repositories.base import BaseRepository
from app.domain.repositories.request_repository import RequestRepository
from app.domain.repositories.scheduled_email_repository import ScheduledEmailRepository
from app.infrastructure.database import get_db
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository
from app.infrastructure.repositories.request_repository import SQLAlchemyRequestRepository
from app.infrastructure.repositories.scheduled_email_repository import SQLAlchemyScheduledEmailRepository


def get_request_repository(db: Session = Depends(get_db)) -> RequestRepository:
    """Get maintenance request repository instance."""
    return SQLAlchemyRequestRepository(db, MaintenanceRequest)


def get_scheduled_email_repository(db: Session = Depends(get_db)) -> ScheduledEmailRepository:
    return SQLAlchemyScheduledEmailRepository(db, ScheduledEmail)


def get_feedback_repository(db: Session = Depends(get_db)) -> BaseRepository[Feedback]:
    return SQLAlchemyRepository(db, Feedback)
