"""
SQLAlchemy Implementation of the Maintenance Request Repository.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, and_
from sqlalchemy.orm import joinedload, selectinload

from app.domain.models.feedback import Feedback
from app.domain.models.maintenance_request import MaintenanceRequest, RequestStatus
from app.domain.models.message import Message
from app.domain.models.scheduled_email import ScheduledEmail
from app.domain.repositories.request_repository import RequestRepository
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository


def _newest_first(query):
    return query.order_by(MaintenanceRequest.created_at.desc(), MaintenanceRequest.id.desc())


class SQLAlchemyRequestRepository(SQLAlchemyRepository[MaintenanceRequest], RequestRepository):
    """Request repository implementation using SQLAlchemy."""

    def _with_people(self):
        return self.db.query(MaintenanceRequest).options(
            joinedload(MaintenanceRequest.owner),
            joinedload(MaintenanceRequest.technician),
        )

    def list_all(self, status: str | None = None) -> List[MaintenanceRequest]:
        query = self._with_people()
        if status:
            query = query.filter(MaintenanceRequest.status == status)
        return _newest_first(query).all()

    def list_for_owner(self, owner_id: int) -> List[MaintenanceRequest]:
        query = self._with_people().filter(MaintenanceRequest.owner_id == owner_id)
        return _newest_first(query).all()

    def list_for_technician(
        self, technician_id: int, categories: List[str], status: str | None = None
    ) -> List[MaintenanceRequest]:
        open_filter = and_(
            MaintenanceRequest.technician_id.is_(None),
            MaintenanceRequest.status == (status or RequestStatus.PENDING.value),
        )
        if categories:
            open_filter = and_(open_filter, MaintenanceRequest.category.in_(categories))

        mine = MaintenanceRequest.technician_id == technician_id
        if status:
            mine = and_(mine, MaintenanceRequest.status == status)

        query = self._with_people().filter(or_(mine, open_filter))
        return _newest_first(query).all()

    def list_public_completed(self, status: str, limit: int) -> List[MaintenanceRequest]:
        query = (
            self.db.query(MaintenanceRequest)
            .join(Feedback, Feedback.request_id == MaintenanceRequest.id)
            .options(selectinload(MaintenanceRequest.feedback).joinedload(Feedback.user))
            .filter(MaintenanceRequest.status == status)
        )
        return _newest_first(query).limit(limit).all()

    def list_messages(self, request_id: int, since: Optional[datetime] = None) -> List[Message]:
        query = (
            self.db.query(Message)
            .options(joinedload(Message.sender))
            .filter(Message.request_id == request_id)
        )
        if since is not None:
            query = query.filter(Message.created_at > since)
        return query.order_by(Message.created_at.asc(), Message.id.asc()).all()

    def delete_with_dependents(self, request: MaintenanceRequest) -> None:
        request_id = request.id
        try:
            self.db.query(Message).filter(Message.request_id == request_id).delete(synchronize_session=False)
            self.db.query(Feedback).filter(Feedback.request_id == request_id).delete(synchronize_session=False)
            self.db.query(ScheduledEmail).filter(
                ScheduledEmail.request_id == request_id,
                ScheduledEmail.sent_at.is_(None),
            ).delete(synchronize_session=False)
            # Sent rows are kept as history, detached from the request
            self.db.query(ScheduledEmail).filter(ScheduledEmail.request_id == request_id).update(
                {ScheduledEmail.request_id: None}, synchronize_session=False
            )
            self.db.query(MaintenanceRequest).filter(MaintenanceRequest.id == request_id).delete(
                synchronize_session=False
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
