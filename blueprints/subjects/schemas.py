from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from blueprints.core.http import iso_z
from blueprints.users.schemas import UserBrief


class SubjectIn(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    code: str = Field(min_length=2, max_length=20)
    description: Optional[str] = None
    semester: int = Field(ge=1, le=12)
    is_active: bool = True


class SubjectUpdateIn(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = None
    semester: Optional[int] = Field(None, ge=1, le=12)
    is_active: Optional[bool] = None


class SubjectTeachersIn(BaseModel):
    teacher_ids: List[int] = Field(min_length=1)


class SubjectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    code: str
    description: Optional[str] = None
    semester: int
    is_active: bool
    created_at: datetime

    @field_serializer("created_at")
    def _ser_created(self, v: datetime):
        return iso_z(v)


class SubjectDetailOut(SubjectOut):
    teachers: List[UserBrief] = []
