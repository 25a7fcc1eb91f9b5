"""Message service — the per-request chat thread."""

from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy.orm import Session

from app.application.services.access_control import can_delete_message, ensure_request_access
from app.core.clock import as_utc
from app.core.exceptions import EntityNotFoundException, ForbiddenException
from app.domain.models.maintenance_request import MaintenanceRequest
from app.domain.models.message import Message
from app.domain.models.user import User
from app.domain.schemas.request import MessageBody
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository
from app.infrastructure.repositories.request_repository import SQLAlchemyRequestRepository

logger = structlog.get_logger(__name__)


def list_messages(
    db: Session, user: User, request_id: int, since: Optional[datetime] = None
) -> list[Message]:
    repo = SQLAlchemyRequestRepository(db, MaintenanceRequest)
    ensure_request_access(user, repo.get_by_id(request_id))
    return repo.list_messages(request_id, since=as_utc(since))


def post_message(db: Session, user: User, request_id: int, body: MessageBody) -> Message:
    repo = SQLAlchemyRequestRepository(db, MaintenanceRequest)
    ensure_request_access(user, repo.get_by_id(request_id))

    message = SQLAlchemyRepository(db, Message).create({
        "content": body.content,
        "attachment_urls": body.attachment_urls,
        "sender_id": user.id,
        "request_id": request_id,
    })
    logger.info("Message posted", message_id=message.id, request_id=request_id, sender_id=user.id)
    return message


def delete_message(db: Session, user: User, message_id: int) -> None:
    messages = SQLAlchemyRepository(db, Message)
    message = messages.get_by_id(message_id)
    if message is None:
        raise EntityNotFoundException("Mensagem não encontrada")

    request = db.get(MaintenanceRequest, message.request_id)
    if not can_delete_message(user, message, request):
        raise ForbiddenException("Apenas o autor ou um administrador podem apagar a mensagem.")

    messages.delete(message_id)
    logger.info("Message deleted", message_id=message_id, by=user.id)
