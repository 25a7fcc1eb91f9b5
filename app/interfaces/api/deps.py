"""FastAPI dependencies — JWT auth, role guards and shared clients."""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.application.services.auth_service import decode_access_token
from app.core.exceptions import ForbiddenException, UnauthorizedException
from app.domain.models.user import User
from app.infrastructure.database import get_db
from app.infrastructure.mailer import MailClient
from app.infrastructure.storage import ObjectStorage

# auto_error=False: a missing header must be a 401, not HTTPBearer's 403
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Extract and validate the current user from JWT token."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException("Token não fornecido")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise UnauthorizedException("Token inválido ou expirado")

    sub = payload.get("sub")
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise UnauthorizedException("Token inválido")

    user = db.get(User, user_id)
    if user is None:
        raise UnauthorizedException("Utilizador não encontrado")

    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Require admin role."""
    if not user.is_admin:
        raise ForbiddenException("Apenas administradores podem aceder a este recurso")
    return user


def get_mailer(request: Request) -> MailClient:
    return request.app.state.mailer


def get_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage
