"""Who may see or change a maintenance request and its thread.

Decisions are recomputed on every call; nothing is cached.
"""

from typing import Optional

from app.core.exceptions import EntityNotFoundException, ForbiddenException
from app.domain.models.maintenance_request import MaintenanceRequest
from app.domain.models.message import Message
from app.domain.models.user import User


def can_access_request(user: User, request: Optional[MaintenanceRequest]) -> bool:
    """Admin, owner or assigned technician."""
    if request is None:
        return False
    if user.is_admin:
        return True
    if request.owner_id == user.id:
        return True
    return request.technician_id is not None and request.technician_id == user.id


def can_delete_request(user: User, request: MaintenanceRequest) -> bool:
    return user.is_admin or request.owner_id == user.id


def can_delete_message(user: User, message: Message, request: Optional[MaintenanceRequest]) -> bool:
    """Request access plus authorship (or admin)."""
    if not can_access_request(user, request):
        return False
    return user.is_admin or message.sender_id == user.id


def ensure_request_access(user: User, request: Optional[MaintenanceRequest]) -> MaintenanceRequest:
    """Return the request or raise 404/403."""
    if request is None:
        raise EntityNotFoundException("Pedido não encontrado")
    if not can_access_request(user, request):
        raise ForbiddenException("Acesso negado")
    return request
