from __future__ import annotations
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from blueprints.core.http import iso_z
from blueprints.users.schemas import UserBrief

DIFFICULTY_PATTERN = r"^(easy|medium|hard)$"


class CourseworkIn(BaseModel):
    title: str = Field(min_length=5, max_length=300)
    description: str = Field(min_length=20)
    requirements: Optional[str] = None
    subject_id: int
    # для админа обязателен, преподаватель создаёт только от своего имени
    teacher_id: Optional[int] = None
    max_students: int = Field(1, ge=1)
    difficulty_level: str = Field("medium", pattern=DIFFICULTY_PATTERN)
    is_available: bool = True


class CourseworkUpdateIn(BaseModel):
    title: Optional[str] = Field(None, min_length=5, max_length=300)
    description: Optional[str] = Field(None, min_length=20)
    requirements: Optional[str] = None
    max_students: Optional[int] = Field(None, ge=1)
    difficulty_level: Optional[str] = Field(None, pattern=DIFFICULTY_PATTERN)
    is_available: Optional[bool] = None


class AvailabilityIn(BaseModel):
    is_available: bool


class SubjectBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    code: str


class CourseworkOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    requirements: Optional[str] = None
    max_students: int
    difficulty_level: str
    is_available: bool
    enrolled_count: int
    free_slots: int
    subject: SubjectBrief
    teacher: UserBrief
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _ser_dt(self, v: datetime):
        return iso_z(v)
