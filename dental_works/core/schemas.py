"""Pydantic schemas for patient and user API I/O."""

from __future__ import annotations

import re
import uuid
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

PHONE_RE = re.compile(r"^[\d\s\-+()]+$")
EMAIL_RE = re.compile(r"\S+@\S+\.\S+")


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _check_phone(value: str) -> str:
    if not PHONE_RE.match(value):
        raise ValueError("Invalid phone format")
    return value


def _check_email(value: Optional[str]) -> Optional[str]:
    if value is not None and not EMAIL_RE.search(value):
        raise ValueError("Invalid email format")
    return value


# --- Patient ---

class PatientCreate(BaseModel):
    first_name: str
    last_name: str
    phone: str
    email: Optional[str] = None
    birth_date: Optional[date] = None
    medical_notes: Optional[str] = None

    @field_validator("first_name", "last_name", "phone")
    @classmethod
    def _required(cls, value: str, info: ValidationInfo) -> str:
        value = value.strip()
        if not value:
            raise ValueError(f"{info.field_name} is required")
        return value

    @field_validator("email", "birth_date", "medical_notes", mode="before")
    @classmethod
    def _optional(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("phone")
    @classmethod
    def _phone(cls, value: str) -> str:
        return _check_phone(value)

    @field_validator("email")
    @classmethod
    def _email(cls, value: Optional[str]) -> Optional[str]:
        return _check_email(value)


class PatientUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    birth_date: Optional[date] = None
    medical_notes: Optional[str] = None

    @field_validator("first_name", "last_name", "phone")
    @classmethod
    def _not_blank(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError(f"{info.field_name} cannot be blank")
        return value

    @field_validator("email", "birth_date", "medical_notes", mode="before")
    @classmethod
    def _optional(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("phone")
    @classmethod
    def _phone(cls, value: Optional[str]) -> Optional[str]:
        return _check_phone(value) if value is not None else value

    @field_validator("email")
    @classmethod
    def _email(cls, value: Optional[str]) -> Optional[str]:
        return _check_email(value)


class PatientRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    first_name: str
    last_name: str
    phone: str
    email: Optional[str] = None
    birth_date: Optional[date] = None
    medical_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# --- Auth ---

class Credentials(BaseModel):
    email: str
    password: str = Field(min_length=6)

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        value = value.strip().lower()
        if not EMAIL_RE.search(value):
            raise ValueError("Invalid email format")
        return value


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    created_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead
