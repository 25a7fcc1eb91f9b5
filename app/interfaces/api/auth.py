"""Auth API routes — register, login, password reset, me."""

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from app.infrastructure.database import get_db
from app.infrastructure.mailer import MailClient
from app.application.services import email_templates
from app.application.services.auth_service import (
    authenticate_user,
    create_user,
    create_user_token,
    get_user_by_email,
    issue_password_reset,
    reset_password,
)
from app.application.services.notification_service import send_best_effort
from app.core.exceptions import UnauthorizedException
from app.domain.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterResponse,
    ResetPasswordRequest,
    TokenResponse,
    UserCreate,
    UserRead,
)
from app.interfaces.api.deps import get_current_user, get_mailer
from app.domain.models.user import User

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/auth", tags=["Auth"])

FORGOT_PASSWORD_MESSAGE = "Se o email existir, enviámos instruções para redefinir a palavra-passe."


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: UserCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: MailClient = Depends(get_mailer),
):
    user = create_user(
        db=db,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        birth_date=body.birth_date,
    )
    logger.info("User registered", user_id=user.id)
    background_tasks.add_task(send_best_effort, mailer, email_templates.welcome_email(user))

    return RegisterResponse(message="Utilizador registado com sucesso", user=UserRead.model_validate(user))


@router.post("/login", response_model=TokenResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate_user(db, body.email, body.password)
    if not user:
        raise UnauthorizedException("Email ou palavra-passe incorretos")

    return TokenResponse(
        access_token=create_user_token(user),
        user=UserRead.model_validate(user),
    )


@router.post("/forgot", response_model=MessageResponse)
def forgot_password(
    body: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: MailClient = Depends(get_mailer),
):
    # Same answer whether or not the account exists
    user = get_user_by_email(db, body.email)
    if user:
        token = issue_password_reset(db, user)
        logger.info("Password reset issued", user_id=user.id)
        background_tasks.add_task(send_best_effort, mailer, email_templates.password_reset_email(user, token))

    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset", response_model=MessageResponse)
def reset(
    body: ResetPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: MailClient = Depends(get_mailer),
):
    user = reset_password(db, body.token, body.password)
    logger.info("Password reset completed", user_id=user.id)
    background_tasks.add_task(send_best_effort, mailer, email_templates.password_changed_email(user))

    return MessageResponse(message="Palavra-passe redefinida com sucesso")


@router.get("/me", response_model=UserRead)
def get_me(user: User = Depends(get_current_user)):
    return UserRead.model_validate(user)
