"""User service — profile updates, role management and account deletion."""

from typing import Optional

import structlog
from sqlalchemy.orm import Session

from app.core.exceptions import EntityNotFoundException, ValidationException
from app.domain.models.user import User, UserRole
from app.domain.schemas.user import ProfileUpdate, RoleUpdate
from app.infrastructure.repositories.user_repository import SQLAlchemyUserRepository

logger = structlog.get_logger(__name__)


def _repo(db: Session) -> SQLAlchemyUserRepository:
    return SQLAlchemyUserRepository(db, User)


def update_profile(db: Session, user: User, data: ProfileUpdate) -> User:
    changes = data.model_dump(exclude_unset=True)

    categories = changes.pop("technician_categories", None)
    if categories is not None and user.is_technician:
        user.technician_categories = [c.value for c in data.technician_categories]

    for field in ("first_name", "last_name"):
        # Names can be changed but not removed
        if changes.get(field) is None:
            changes.pop(field, None)

    for field, value in changes.items():
        setattr(user, field, value)

    db.commit()
    db.refresh(user)
    logger.info("Profile updated", user_id=user.id, fields=sorted(changes))
    return user


def delete_account(db: Session, user: User) -> None:
    user_id = user.id
    _repo(db).delete_with_dependents(user)
    logger.info("User deleted with dependents", user_id=user_id)


def list_users(db: Session, role: Optional[UserRole] = None) -> list[User]:
    return _repo(db).list_users(role.value if role else None)


def get_user_or_404(db: Session, user_id: int) -> User:
    user = _repo(db).get_by_id(user_id)
    if user is None:
        raise EntityNotFoundException("Utilizador não encontrado")
    return user


def change_role(db: Session, admin: User, user_id: int, data: RoleUpdate) -> User:
    user = get_user_or_404(db, user_id)
    if user.id == admin.id and data.role != UserRole.ADMIN:
        raise ValidationException("Não pode remover o seu próprio acesso de administrador.")

    user.role = data.role.value
    if data.role == UserRole.TECHNICIAN:
        if data.technician_categories is not None:
            user.technician_categories = [c.value for c in data.technician_categories]
    else:
        user.technician_categories = []

    db.commit()
    db.refresh(user)
    logger.info("User role changed", user_id=user.id, role=user.role, by=admin.id)
    return user


def delete_user_as_admin(db: Session, admin: User, user_id: int) -> tuple[str, str]:
    """Delete another account; returns (email, name) for the goodbye email."""
    user = get_user_or_404(db, user_id)
    if user.id == admin.id:
        raise ValidationException("Um administrador não pode eliminar a própria conta.")

    email, name = user.email, user.full_name or "Utilizador"
    delete_account(db, user)
    return email, name
