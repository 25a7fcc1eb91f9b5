"""Pydantic schemas for profile updates and admin role management."""

import re
from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.core.clock import utcnow
from app.domain.models.maintenance_request import ServiceCategory
from app.domain.models.user import UserRole

NIF_PATTERN = re.compile(r"^\d{9}$")


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    nif: Optional[str] = None
    avatar_url: Optional[str] = Field(None, max_length=1000)
    birth_date: Optional[date] = None
    technician_categories: Optional[list[ServiceCategory]] = None

    model_config = {"str_strip_whitespace": True}

    @field_validator("nif", mode="before")
    @classmethod
    def validate_nif(cls, value):
        # Empty string clears the NIF
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        value = str(value).strip()
        if not NIF_PATTERN.match(value):
            raise ValueError("NIF deve ter 9 dígitos")
        return value

    @field_validator("birth_date")
    @classmethod
    def birth_date_in_past(cls, value: Optional[date]) -> Optional[date]:
        if value is not None and value >= utcnow().date():
            raise ValueError("Data de nascimento inválida")
        return value


class RoleUpdate(BaseModel):
    role: UserRole
    technician_categories: Optional[list[ServiceCategory]] = None


class UserBrief(BaseModel):
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = {"from_attributes": True}
