from __future__ import annotations
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from blueprints.core.http import iso_z

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
ROLE_PATTERN = "^(ADMIN|TEACHER|STUDENT)$"


def _norm_email(v: str) -> str:
    return v.strip().lower()


class UserIn(BaseModel):
    email: str = Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=6, max_length=128)
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    role: str = Field(pattern=ROLE_PATTERN)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str):
        return _norm_email(v)


class UserUpdateIn(BaseModel):
    email: Optional[str] = Field(None, min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    first_name: Optional[str] = Field(None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(None, min_length=2, max_length=50)
    role: Optional[str] = Field(None, pattern=ROLE_PATTERN)
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=6, max_length=128)

    @field_validator("email")
    @classmethod
    def _email(cls, v: Optional[str]):
        return _norm_email(v) if v is not None else v


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: str
    last_name: str
    full_name: str
    role: str
    is_active: bool
    created_at: datetime

    @field_serializer("created_at")
    def _ser_created(self, v: datetime):
        return iso_z(v)


class UserBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str
    role: str
