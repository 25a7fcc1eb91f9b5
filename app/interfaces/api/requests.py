"""Maintenance request API routes — CRUD, lifecycle, nested thread and feedback."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.infrastructure.database import get_db
from app.infrastructure.mailer import MailClient
from app.application.services import email_templates, invoice_service, message_service, request_service
from app.application.services.notification_service import send_all_best_effort
from app.domain.models.maintenance_request import RequestStatus
from app.domain.models.user import User
from app.domain.schemas.request import (
    CompletionResponse,
    FeedbackCreate,
    FeedbackRead,
    MessageBody,
    MessageRead,
    RequestCreate,
    RequestDetail,
    RequestRead,
    RequestUpdate,
)
from app.interfaces.api.deps import get_current_user, get_mailer

router = APIRouter(prefix="/api/requests", tags=["Requests"])


@router.post("", response_model=RequestRead, status_code=status.HTTP_201_CREATED)
def create_request(
    body: RequestCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    mailer: MailClient = Depends(get_mailer),
):
    request = request_service.create_request(db, user, body)

    recipients = request_service.technician_recipients(db, request.category)
    if recipients:
        # One message per technician so addresses are not shared
        notices = [email_templates.new_request_email(request, user, [email]) for email in recipients]
        background_tasks.add_task(send_all_best_effort, mailer, notices)

    return RequestRead.model_validate(request)


@router.get("", response_model=list[RequestRead])
def list_requests(
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    requests = request_service.list_requests(db, user, status_filter.value if status_filter else None)
    return [RequestRead.model_validate(r) for r in requests]


@router.get("/mine", response_model=list[RequestRead])
def list_my_requests(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return [RequestRead.model_validate(r) for r in request_service.list_my_requests(db, user)]


@router.get("/{request_id}", response_model=RequestDetail)
def get_request(
    request_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return RequestDetail.model_validate(request_service.get_request_for_user(db, user, request_id))


@router.api_route("/{request_id}", methods=["PUT", "PATCH"], response_model=RequestRead)
def update_request(
    request_id: int,
    body: RequestUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    mailer: MailClient = Depends(get_mailer),
):
    request, newly_assigned = request_service.update_request(db, user, request_id, body)
    if newly_assigned:
        background_tasks.add_task(send_all_best_effort, mailer, email_templates.request_accepted_emails(request))
    return RequestRead.model_validate(request)


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_request(
    request_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    request_service.delete_request(db, user, request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{request_id}/accept", response_model=CompletionResponse)
def accept_request(
    request_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    mailer: MailClient = Depends(get_mailer),
):
    request, newly_accepted = request_service.accept_request(db, user, request_id)
    if newly_accepted:
        background_tasks.add_task(send_all_best_effort, mailer, email_templates.request_accepted_emails(request))
    return CompletionResponse(message="Pedido aceite com sucesso", request=RequestRead.model_validate(request))


@router.post("/{request_id}/decline", response_model=CompletionResponse)
def decline_request(
    request_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    request = request_service.decline_request(db, user, request_id)
    return CompletionResponse(message="Pedido recusado", request=RequestRead.model_validate(request))


@router.post("/{request_id}/complete", response_model=CompletionResponse)
def complete_request(
    request_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    request = request_service.complete_request(db, user, request_id)
    invoice, file_name = invoice_service.encode_invoice(request)
    return CompletionResponse(
        message="Pedido concluído",
        request=RequestRead.model_validate(request),
        invoice=invoice,
        file_name=file_name,
    )


@router.get("/{request_id}/invoice")
def download_invoice(
    request_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    request = invoice_service.get_invoice_for_user(db, user, request_id)
    return Response(
        content=invoice_service.generate_invoice_pdf(request),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{invoice_service.invoice_file_name(request)}"'},
    )


@router.get("/{request_id}/messages", response_model=list[MessageRead])
def list_request_messages(
    request_id: int,
    since: Optional[datetime] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return [MessageRead.model_validate(m) for m in message_service.list_messages(db, user, request_id, since)]


@router.post("/{request_id}/messages", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
def post_request_message(
    request_id: int,
    body: MessageBody,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return MessageRead.model_validate(message_service.post_message(db, user, request_id, body))


@router.post("/{request_id}/feedback", response_model=FeedbackRead, status_code=status.HTTP_201_CREATED)
def create_feedback(
    request_id: int,
    body: FeedbackCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return FeedbackRead.model_validate(request_service.add_feedback(db, user, request_id, body))
