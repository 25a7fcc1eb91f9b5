"""Auth service — JWT token management, password hashing and password reset."""

import hashlib
import secrets
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.clock import as_utc, utcnow
from app.core.exceptions import ValidationException
from app.domain.models.user import User, UserRole
from app.infrastructure.repositories.user_repository import SQLAlchemyUserRepository

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_user_token(user: User) -> str:
    return create_access_token(data={"sub": str(user.id), "role": user.role})


def decode_access_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
        return payload
    except JWTError:
        return None


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return SQLAlchemyUserRepository(db, User).get_by_email(email)


def create_user(
    db: Session,
    email: str,
    password: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    birth_date: Optional[date] = None,
    role: UserRole = UserRole.CLIENT,
    technician_categories: Optional[list[str]] = None,
) -> User:
    repo = SQLAlchemyUserRepository(db, User)
    if repo.get_by_email(email):
        raise _duplicate_email()

    try:
        return repo.create({
            "email": email.strip().lower(),
            "password_hash": hash_password(password),
            "first_name": first_name,
            "last_name": last_name,
            "birth_date": birth_date,
            "role": UserRole(role).value,
            "technician_categories": list(technician_categories or []),
        })
    except IntegrityError:
        # A concurrent registration won the unique index
        db.rollback()
        raise _duplicate_email()


def _duplicate_email() -> ValidationException:
    return ValidationException("Email já registado", {"fields": {"email": "Email já registado"}})


def _hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_password_reset(db: Session, user: User) -> str:
    """Store a hashed one-time token on the user and return the raw token for the email link."""
    token = secrets.token_urlsafe(32)
    user.reset_token_hash = _hash_reset_token(token)
    user.reset_token_expires_at = utcnow() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRATION_MINUTES)
    db.commit()
    return token


def reset_password(db: Session, token: str, new_password: str) -> User:
    user = SQLAlchemyUserRepository(db, User).get_by_reset_token_hash(_hash_reset_token(token))
    expires_at = as_utc(user.reset_token_expires_at) if user else None
    if not user or expires_at is None or expires_at < utcnow():
        raise ValidationException("Token inválido ou expirado")

    user.password_hash = hash_password(new_password)
    user.reset_token_hash = None
    user.reset_token_expires_at = None
    db.commit()
    db.refresh(user)
    return user
