"""
SQLAlchemy Implementation of the User Repository.
"""

from typing import List, Optional

from app.domain.models.feedback import Feedback
from app.domain.models.maintenance_request import MaintenanceRequest, RequestStatus
from app.domain.models.message import Message
from app.domain.models.scheduled_email import EmailKind, ScheduledEmail
from app.domain.models.user import User, UserRole
from app.domain.repositories.user_repository import UserRepository
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyUserRepository(SQLAlchemyRepository[User], UserRepository):
    """User repository implementation using SQLAlchemy."""

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def get_by_reset_token_hash(self, token_hash: str) -> Optional[User]:
        return self.db.query(User).filter(User.reset_token_hash == token_hash).first()

    def list_users(self, role: str | None = None) -> List[User]:
        query = self.db.query(User)
        if role:
            query = query.filter(User.role == role)
        return query.order_by(User.created_at.desc(), User.id.desc()).all()

    def list_technicians(self, category: str | None = None) -> List[User]:
        technicians = self.list_users(role=UserRole.TECHNICIAN.value)
        if not category:
            return technicians
        return [t for t in technicians if not t.technician_categories or category in t.technician_categories]

    def delete_with_dependents(self, user: User) -> None:
        user_id = user.id
        try:
            owned_ids = [
                row[0]
                for row in self.db.query(MaintenanceRequest.id).filter(MaintenanceRequest.owner_id == user_id).all()
            ]
            if owned_ids:
                self.db.query(Message).filter(Message.request_id.in_(owned_ids)).delete(synchronize_session=False)
                self.db.query(Feedback).filter(Feedback.request_id.in_(owned_ids)).delete(synchronize_session=False)
                self.db.query(ScheduledEmail).filter(
                    ScheduledEmail.request_id.in_(owned_ids),
                    ScheduledEmail.sent_at.is_(None),
                ).delete(synchronize_session=False)
                self.db.query(ScheduledEmail).filter(ScheduledEmail.request_id.in_(owned_ids)).update(
                    {ScheduledEmail.request_id: None}, synchronize_session=False
                )
                self.db.query(MaintenanceRequest).filter(MaintenanceRequest.id.in_(owned_ids)).delete(
                    synchronize_session=False
                )

            self.db.query(Feedback).filter(Feedback.user_id == user_id).delete(synchronize_session=False)
            self.db.query(Message).filter(Message.sender_id == user_id).delete(synchronize_session=False)

            self.db.query(ScheduledEmail).filter(
                ScheduledEmail.to_email == user.email,
                ScheduledEmail.kind == EmailKind.VISIT_REMINDER.value,
                ScheduledEmail.sent_at.is_(None),
            ).delete(synchronize_session=False)

            # Work in progress goes back to the open pool; finished work keeps its status
            self.db.query(MaintenanceRequest).filter(
                MaintenanceRequest.technician_id == user_id,
                MaintenanceRequest.status == RequestStatus.IN_PROGRESS.value,
            ).update({MaintenanceRequest.status: RequestStatus.PENDING.value}, synchronize_session=False)
            self.db.query(MaintenanceRequest).filter(MaintenanceRequest.technician_id == user_id).update(
                {MaintenanceRequest.technician_id: None}, synchronize_session=False
            )

            self.db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
