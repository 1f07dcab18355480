from __future__ import annotations
from typing import Optional

from pydantic import BaseModel, Field


class AssignIn(BaseModel):
    # студент может не указывать себя явно
    student_id: Optional[int] = None


class GradeIn(BaseModel):
    # диапазон 2..5 проверяет сервис, чтобы отдать invalid_grade, а не 422
    grade: int
    feedback: Optional[str] = Field(None, max_length=5000)


class StatusIn(BaseModel):
    status: str = Field(min_length=1, max_length=20)
