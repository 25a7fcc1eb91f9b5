"""Admin API routes — users, requests, feedback, scheduled emails and scheduler status."""

from datetime import datetime
from typing import Optional

import pytz
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.orm import Session, joinedload

from app.config import get_settings
from app.infrastructure.database import get_db
from app.infrastructure.mailer import MailClient
from app.application.services import email_templates, request_service, user_service
from app.application.services.notification_service import schedule_email, send_best_effort
from app.core.exceptions import EntityNotFoundException
from app.domain.models.feedback import Feedback
from app.domain.models.maintenance_request import RequestStatus
from app.domain.models.user import User, UserRole
from app.domain.repositories.base import BaseRepository
from app.domain.repositories.request_repository import RequestRepository
from app.domain.repositories.scheduled_email_repository import ScheduledEmailRepository
from app.domain.schemas.auth import UserRead
from app.domain.schemas.notification import ScheduledEmailCreate, ScheduledEmailRead
from app.domain.schemas.request import FeedbackRead, RequestRead
from app.domain.schemas.user import RoleUpdate
from app.interfaces.api.deps import get_mailer, require_admin
from app.interfaces.deps import (
    get_feedback_repository,
    get_request_repository,
    get_scheduled_email_repository,
)

settings = get_settings()
tz = pytz.timezone(settings.TIMEZONE)
router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/users", response_model=list[UserRead])
def list_users(
    role: Optional[UserRole] = None,
    db: Session = Depends(get_db),
):
    return [UserRead.model_validate(u) for u in user_service.list_users(db, role)]


@router.patch("/users/{user_id}/role", response_model=UserRead)
def change_user_role(
    user_id: int,
    body: RoleUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return UserRead.model_validate(user_service.change_role(db, admin, user_id, body))


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    mailer: MailClient = Depends(get_mailer),
):
    email, name = user_service.delete_user_as_admin(db, admin, user_id)
    background_tasks.add_task(send_best_effort, mailer, email_templates.account_deleted_email(email, name))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/requests", response_model=list[RequestRead])
def list_requests(
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    repo: RequestRepository = Depends(get_request_repository),
):
    requests = repo.list_all(status_filter.value if status_filter else None)
    return [RequestRead.model_validate(r) for r in requests]


@router.delete("/requests/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_request(
    request_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    request_service.delete_request(db, admin, request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/feedbacks", response_model=list[FeedbackRead])
def list_feedbacks(db: Session = Depends(get_db)):
    feedbacks = (
        db.query(Feedback)
        .options(joinedload(Feedback.user))
        .order_by(Feedback.created_at.desc(), Feedback.id.desc())
        .all()
    )
    return [FeedbackRead.model_validate(f) for f in feedbacks]


@router.delete("/feedbacks/{feedback_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_feedback(
    feedback_id: int,
    repo: BaseRepository[Feedback] = Depends(get_feedback_repository),
):
    if repo.delete(feedback_id) is None:
        raise EntityNotFoundException("Avaliação não encontrada")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/requests/{request_id}/schedule-email",
    response_model=ScheduledEmailRead,
    status_code=status.HTTP_201_CREATED,
)
def schedule_request_email(
    request_id: int,
    body: ScheduledEmailCreate,
    db: Session = Depends(get_db),
):
    request = request_service.get_request_or_404(db, request_id)
    email = schedule_email(db, body.to_email, body.subject, body.body, body.send_at, request_id=request.id)
    return ScheduledEmailRead.model_validate(email)


@router.get("/scheduled-emails", response_model=list[ScheduledEmailRead])
def list_scheduled_emails(
    pending: Optional[bool] = None,
    repo: ScheduledEmailRepository = Depends(get_scheduled_email_repository),
):
    return [ScheduledEmailRead.model_validate(e) for e in repo.list_all(pending)]


@router.get("/scheduler-status")
def scheduler_status():
    """Get scheduler status and next run time."""
    from app.scheduler.jobs import scheduler

    now = datetime.now(tz)
    jobs = []
    for job in scheduler.get_jobs():
        next_run = getattr(job, "next_run_time", None)
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": next_run.strftime("%d/%m/%Y %H:%M:%S") if next_run else "N/A",
            "next_run_iso": next_run.isoformat() if next_run else None,
        })

    return {
        "running": scheduler.running,
        "current_time": now.strftime("%d/%m/%Y %H:%M:%S"),
        "timezone": settings.TIMEZONE,
        "jobs": jobs,
    }
