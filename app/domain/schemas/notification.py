"""Pydantic schemas for outbound mail and scheduled emails."""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional


class MailMessage(BaseModel):
    to: list[str]
    subject: str
    text: str
    html: Optional[str] = None


class ScheduledEmailCreate(BaseModel):
    to_email: EmailStr
    subject: str = Field(min_length=1, max_length=255)
    body: str = Field(min_length=1, max_length=10000)
    send_at: datetime


class ScheduledEmailRead(BaseModel):
    id: int
    request_id: Optional[int] = None
    kind: str = "manual"
    to_email: str
    subject: str
    body: str
    send_at: datetime
    sent_at: Optional[datetime] = None
    attempts: int = 0
    last_error: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DispatchResult(BaseModel):
    total: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0


class UploadRead(BaseModel):
    url: str
    key: str
    content_type: str
    size: int
