"""Request service — lifecycle of a maintenance request.

pendente -> em_progresso (accept / admin assignment) -> concluido (complete).
Declining puts the request back to pendente without a technician.
"""

from typing import Optional

import structlog
from sqlalchemy.orm import Session

from app.application.services import notification_service
from app.application.services.access_control import (
    can_delete_request,
    ensure_request_access,
)
from app.core.clock import as_utc, utcnow
from app.core.exceptions import (
    ConflictException,
    EntityNotFoundException,
    ForbiddenException,
    ValidationException,
)
from app.domain.models.feedback import Feedback
from app.domain.models.maintenance_request import MaintenanceRequest, RequestStatus
from app.domain.models.user import User
from app.domain.schemas.request import FeedbackCreate, RequestCreate, RequestUpdate
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository
from app.infrastructure.repositories.request_repository import SQLAlchemyRequestRepository
from app.infrastructure.repositories.user_repository import SQLAlchemyUserRepository

logger = structlog.get_logger(__name__)

# Columns that may never be set to NULL through an update
REQUIRED_FIELDS = ("title", "description", "category", "status", "media_urls")
CLOSED_STATUSES = (RequestStatus.COMPLETED.value, RequestStatus.CANCELLED.value)


def _repo(db: Session) -> SQLAlchemyRequestRepository:
    return SQLAlchemyRequestRepository(db, MaintenanceRequest)


def get_request_or_404(db: Session, request_id: int) -> MaintenanceRequest:
    request = _repo(db).get_by_id(request_id)
    if request is None:
        raise EntityNotFoundException("Pedido não encontrado")
    return request


def create_request(db: Session, owner: User, data: RequestCreate) -> MaintenanceRequest:
    request = _repo(db).create({
        "title": data.title,
        "description": data.description,
        "category": data.category.value,
        "price": data.price,
        "scheduled_at": as_utc(data.scheduled_at),
        "media_urls": data.media_urls,
        "status": RequestStatus.PENDING.value,
        "owner_id": owner.id,
    })
    logger.info("Maintenance request created", request_id=request.id, owner_id=owner.id, category=request.category)
    notification_service.schedule_visit_reminder(db, request, owner)
    return request


def technician_recipients(db: Session, category: str) -> list[str]:
    return [t.email for t in SQLAlchemyUserRepository(db, User).list_technicians(category)]


def list_requests(db: Session, user: User, status: Optional[str] = None) -> list[MaintenanceRequest]:
    """Admins see everything; technicians see their jobs plus the open pool."""
    if user.is_admin:
        return _repo(db).list_all(status)
    if user.is_technician:
        return _repo(db).list_for_technician(user.id, list(user.technician_categories or []), status)
    raise ForbiddenException("Acesso negado")


def list_my_requests(db: Session, user: User) -> list[MaintenanceRequest]:
    return _repo(db).list_for_owner(user.id)


def get_request_for_user(db: Session, user: User, request_id: int) -> MaintenanceRequest:
    return ensure_request_access(user, _repo(db).get_by_id(request_id))


def update_request(
    db: Session, user: User, request_id: int, data: RequestUpdate
) -> tuple[MaintenanceRequest, bool]:
    """Apply a partial update; returns the request and whether a technician was newly assigned."""
    request = get_request_for_user(db, user, request_id)
    changes = data.model_dump(exclude_unset=True)
    newly_assigned = False
    previous_technician = request.technician
    visit_moved = "scheduled_at" in changes and as_utc(changes["scheduled_at"]) != as_utc(request.scheduled_at)

    if "technician_id" in changes:
        if not user.is_admin:
            raise ForbiddenException("Apenas administradores podem atribuir técnicos")
        technician_id = changes.pop("technician_id")
        if technician_id is None:
            request.technician_id = None
        else:
            technician = SQLAlchemyUserRepository(db, User).get_by_id(technician_id)
            if technician is None or not technician.is_technician:
                raise ValidationException("Técnico inválido", {"fields": {"technician_id": "Técnico inválido"}})
            newly_assigned = request.technician_id != technician.id
            request.technician_id = technician.id
            if request.status == RequestStatus.PENDING.value and "status" not in changes:
                request.status = RequestStatus.IN_PROGRESS.value

    for field, value in changes.items():
        if value is None and field in REQUIRED_FIELDS:
            continue
        if field in ("category", "status") and value is not None:
            value = value.value
        if field == "scheduled_at":
            value = as_utc(value)
        setattr(request, field, value)

    if request.status == RequestStatus.COMPLETED.value and request.completed_at is None:
        request.completed_at = utcnow()

    db.commit()
    db.refresh(request)
    logger.info("Maintenance request updated", request_id=request.id, by=user.id, fields=sorted(changes))

    _sync_visit_reminders(db, request, previous_technician, visit_moved, newly_assigned)
    return request, newly_assigned


def _sync_visit_reminders(
    db: Session,
    request: MaintenanceRequest,
    previous_technician: Optional[User],
    visit_moved: bool,
    newly_assigned: bool,
) -> None:
    if request.status in CLOSED_STATUSES:
        notification_service.cancel_visit_reminders(db, request)
        return
    if visit_moved:
        notification_service.reschedule_visit_reminders(db, request)
        return
    if previous_technician is not None and previous_technician.id != request.technician_id:
        notification_service.cancel_visit_reminders(db, request, previous_technician)
    if newly_assigned and request.technician is not None:
        notification_service.schedule_visit_reminder(db, request, request.technician)


def delete_request(db: Session, user: User, request_id: int) -> None:
    request = get_request_or_404(db, request_id)
    if not can_delete_request(user, request):
        raise ForbiddenException("Acesso negado")
    _repo(db).delete_with_dependents(request)
    logger.info("Maintenance request deleted", request_id=request_id, by=user.id)


def _ensure_technician(user: User, action: str) -> None:
    if not user.is_technician:
        raise ForbiddenException(f"Apenas técnicos podem {action} pedidos.")


def accept_request(db: Session, user: User, request_id: int) -> tuple[MaintenanceRequest, bool]:
    """Assign the request to the calling technician; returns it and whether this call took it."""
    _ensure_technician(user, "aceitar")
    request = get_request_or_404(db, request_id)
    if request.technician_id is not None and request.technician_id != user.id:
        raise ConflictException("O pedido já foi atribuído a outro técnico.")
    if request.status in CLOSED_STATUSES:
        raise ConflictException("O pedido já não está disponível.")
    already_assigned = request.technician_id == user.id
    if already_assigned and request.status == RequestStatus.IN_PROGRESS.value:
        return request, False

    request.technician_id = user.id
    request.status = RequestStatus.IN_PROGRESS.value
    db.commit()
    db.refresh(request)
    logger.info("Maintenance request accepted", request_id=request.id, technician_id=user.id)
    if already_assigned:
        return request, False
    notification_service.schedule_visit_reminder(db, request, user)
    return request, True


def decline_request(db: Session, user: User, request_id: int) -> MaintenanceRequest:
    _ensure_technician(user, "recusar")
    request = get_request_or_404(db, request_id)
    if request.technician_id is not None and request.technician_id != user.id:
        raise ConflictException("O pedido pertence a outro técnico.")
    if request.status in CLOSED_STATUSES:
        raise ConflictException("O pedido já não está disponível.")

    request.technician_id = None
    request.status = RequestStatus.PENDING.value
    db.commit()
    db.refresh(request)
    logger.info("Maintenance request declined", request_id=request.id, technician_id=user.id)
    notification_service.cancel_visit_reminders(db, request, user)
    return request


def complete_request(db: Session, user: User, request_id: int) -> MaintenanceRequest:
    request = get_request_or_404(db, request_id)
    is_assigned = request.technician_id is not None and request.technician_id == user.id
    if not (user.is_admin or is_assigned):
        raise ForbiddenException("Apenas o técnico atribuído ou o administrador podem concluir o pedido.")
    if request.status == RequestStatus.CANCELLED.value:
        raise ConflictException("Um pedido cancelado não pode ser concluído.")

    already_completed = request.status == RequestStatus.COMPLETED.value
    request.status = RequestStatus.COMPLETED.value
    request.completed_at = request.completed_at or utcnow()
    db.commit()
    db.refresh(request)
    logger.info("Maintenance request completed", request_id=request.id, by=user.id)

    if not already_completed:
        notification_service.cancel_visit_reminders(db, request)
        notification_service.schedule_feedback_invitation(db, request)
    return request


def add_feedback(db: Session, user: User, request_id: int, data: FeedbackCreate) -> Feedback:
    request = get_request_or_404(db, request_id)
    if request.owner_id != user.id:
        raise ForbiddenException("Apenas o cliente que criou o pedido pode avaliá-lo.")
    if request.status != RequestStatus.COMPLETED.value:
        raise ValidationException("Pedido ainda não foi concluído.")
    if request.feedback is not None:
        raise ConflictException("Este pedido já foi avaliado.")

    feedback = SQLAlchemyRepository(db, Feedback).create({
        "rating": data.rating,
        "comment": data.comment or None,
        "request_id": request.id,
        "user_id": user.id,
    })
    logger.info("Feedback created", request_id=request.id, rating=feedback.rating)
    return feedback
