"""Pydantic schemas for User and Auth."""

from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import date, datetime
from typing import Optional

from app.core.clock import utcnow


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    birth_date: Optional[date] = None

    model_config = {"str_strip_whitespace": True}

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("birth_date")
    @classmethod
    def birth_date_in_past(cls, value: Optional[date]) -> Optional[date]:
        if value is not None and value >= utcnow().date():
            raise ValueError("Data de nascimento inválida")
        return value


class UserRead(BaseModel):
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    nif: Optional[str] = None
    birth_date: Optional[date] = None
    avatar_url: Optional[str] = None
    role: str
    is_admin: bool
    is_technician: bool
    technician_categories: list[str] = []
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RegisterResponse(BaseModel):
    message: str
    user: UserRead


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead


class ForgotPasswordRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=10)
    password: str = Field(min_length=6, max_length=128)


class MessageResponse(BaseModel):
    message: str
