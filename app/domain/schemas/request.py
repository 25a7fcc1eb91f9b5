"""Pydantic schemas for maintenance requests, messages and feedback."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.domain.models.maintenance_request import RequestStatus, ServiceCategory
from app.domain.schemas.user import UserBrief

MAX_ATTACHMENTS = 10


def _clean_urls(value):
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    return [str(url).strip() for url in value if url and str(url).strip()]


class RequestCreate(BaseModel):
    title: str = Field(min_length=3, max_length=120)
    description: str = Field(min_length=1, max_length=2000)
    category: ServiceCategory
    price: Optional[float] = Field(None, ge=0, le=100000)
    scheduled_at: Optional[datetime] = None
    media_urls: list[str] = Field(default_factory=list, max_length=MAX_ATTACHMENTS)

    model_config = {"str_strip_whitespace": True}

    @field_validator("media_urls", mode="before")
    @classmethod
    def normalize_media(cls, value):
        return _clean_urls(value)


class RequestUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=120)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    category: Optional[ServiceCategory] = None
    price: Optional[float] = Field(None, ge=0, le=100000)
    status: Optional[RequestStatus] = None
    scheduled_at: Optional[datetime] = None
    media_urls: Optional[list[str]] = Field(None, max_length=MAX_ATTACHMENTS)
    technician_id: Optional[int] = None

    model_config = {"str_strip_whitespace": True}

    @field_validator("media_urls", mode="before")
    @classmethod
    def normalize_media(cls, value):
        if value is None:
            return None
        return _clean_urls(value)


class MessageSender(BaseModel):
    id: int
    email: str
    first_name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = {"from_attributes": True}


class MessageBody(BaseModel):
    content: str = Field(min_length=1, max_length=2000)
    attachment_urls: list[str] = Field(default_factory=list, max_length=MAX_ATTACHMENTS)

    model_config = {"str_strip_whitespace": True}

    @field_validator("attachment_urls", mode="before")
    @classmethod
    def normalize_attachments(cls, value):
        return _clean_urls(value)


class MessageCreate(MessageBody):
    request_id: int


class MessageRead(BaseModel):
    id: int
    content: str
    attachment_urls: list[str] = []
    sender_id: int
    request_id: int
    created_at: Optional[datetime] = None
    sender: Optional[MessageSender] = None

    model_config = {"from_attributes": True}


class FeedbackCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)

    model_config = {"str_strip_whitespace": True}


class FeedbackAuthor(BaseModel):
    first_name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = {"from_attributes": True}


class FeedbackRead(BaseModel):
    id: int
    rating: int
    comment: Optional[str] = None
    request_id: int
    user_id: int
    created_at: Optional[datetime] = None
    user: Optional[FeedbackAuthor] = None

    model_config = {"from_attributes": True}


class RequestRead(BaseModel):
    id: int
    title: str
    description: str
    category: str
    price: Optional[float] = None
    status: str
    media_urls: list[str] = []
    scheduled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    owner_id: int
    technician_id: Optional[int] = None
    owner: Optional[UserBrief] = None
    technician: Optional[UserBrief] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RequestDetail(RequestRead):
    messages: list[MessageRead] = []
    feedback: Optional[FeedbackRead] = None


class PublicRequestRead(BaseModel):
    id: int
    title: str
    category: str
    status: str
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    feedback: Optional[FeedbackRead] = None

    model_config = {"from_attributes": True}


class CompletionResponse(BaseModel):
    message: str
    request: RequestRead
    invoice: Optional[str] = None  # base64 PDF, set on completion
    file_name: Optional[str] = None
