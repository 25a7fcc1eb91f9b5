"""Profile API routes — the authenticated user's own account."""

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from sqlalchemy.orm import Session

from app.infrastructure.database import get_db
from app.infrastructure.mailer import MailClient
from app.application.services import email_templates, user_service
from app.application.services.notification_service import send_best_effort
from app.domain.models.user import User
from app.domain.schemas.auth import UserRead
from app.domain.schemas.user import ProfileUpdate
from app.interfaces.api.deps import get_current_user, get_mailer

router = APIRouter(prefix="/api/profile", tags=["Profile"])


@router.get("", response_model=UserRead)
def get_profile(user: User = Depends(get_current_user)):
    return UserRead.model_validate(user)


@router.patch("", response_model=UserRead)
def update_profile(
    body: ProfileUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    mailer: MailClient = Depends(get_mailer),
):
    user = user_service.update_profile(db, user, body)
    background_tasks.add_task(send_best_effort, mailer, email_templates.profile_updated_email(user))
    return UserRead.model_validate(user)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def delete_profile(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    mailer: MailClient = Depends(get_mailer),
):
    goodbye = email_templates.account_deleted_email(user.email, user.full_name or "Utilizador")
    user_service.delete_account(db, user)
    background_tasks.add_task(send_best_effort, mailer, goodbye)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
