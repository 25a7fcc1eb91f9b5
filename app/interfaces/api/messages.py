"""Message API routes — chat thread of a request, polled by the SPA."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.infrastructure.database import get_db
from app.application.services import message_service
from app.domain.models.user import User
from app.domain.schemas.request import MessageCreate, MessageRead
from app.interfaces.api.deps import get_current_user

router = APIRouter(prefix="/api/messages", tags=["Messages"])


@router.get("/{request_id}", response_model=list[MessageRead])
def list_messages(
    request_id: int,
    since: Optional[datetime] = Query(None, description="Only messages created after this instant"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    messages = message_service.list_messages(db, user, request_id, since)
    return [MessageRead.model_validate(m) for m in messages]


@router.post("", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
def post_message(
    body: MessageCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return MessageRead.model_validate(message_service.post_message(db, user, body.request_id, body))


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_message(
    message_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    message_service.delete_message(db, user, message_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
