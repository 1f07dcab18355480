# blueprints/assignments/repository.py
"""
Доступ к student_courseworks и счётчику мест курсовой.

Функции не коммитят сами, кроме create_assignment/delete_assignment,
которые обязаны менять строку назначения и enrolled_count одной транзакцией.
Любой SQLAlchemyError откатывает сессию и превращается в TransientError.
"""
from __future__ import annotations
import logging
from datetime import datetime
from functools import wraps
from typing import List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import joinedload

from extensions import db
from models import Coursework, StudentCoursework, CourseworkStatus
from blueprints.core.errors import NotFound, TransientError
from .errors import AlreadyAssigned, CapacityExceeded

log = logging.getLogger(__name__)


def _storage_guard(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except SQLAlchemyError as exc:
            db.session.rollback()
            log.error("storage failure", extra={"event": "storage_error", "error": f"{fn.__name__}: {exc}"})
            raise TransientError("storage is unavailable") from exc
    return wrapper


def _active():
    return (db.session.query(StudentCoursework)
            .options(joinedload(StudentCoursework.student), joinedload(StudentCoursework.coursework))
            .filter(StudentCoursework.deleted_at.is_(None)))


@_storage_guard
def get_coursework(coursework_id: int) -> Coursework:
    cw = db.session.get(Coursework, coursework_id)
    if cw is None or cw.deleted_at is not None:
        raise NotFound("coursework", coursework_id)
    return cw


@_storage_guard
def get_coursework_with_enrollment_count(coursework_id: int) -> Tuple[Coursework, int]:
    cw = get_coursework(coursework_id)
    count = db.session.query(func.count(StudentCoursework.id)).filter(
        StudentCoursework.coursework_id == coursework_id,
        StudentCoursework.deleted_at.is_(None),
    ).scalar()
    return cw, int(count or 0)


@_storage_guard
def get_assignment_by_student(student_id: int) -> Optional[StudentCoursework]:
    return _active().filter(StudentCoursework.student_id == student_id).first()


@_storage_guard
def get_assignment(assignment_id: int) -> Optional[StudentCoursework]:
    return _active().filter(StudentCoursework.id == assignment_id).first()


@_storage_guard
def create_assignment(student_id: int, coursework_id: int, now: datetime) -> StudentCoursework:
    # место занимаем условным UPDATE: 0 строк => мест нет
    res = db.session.execute(
        update(Coursework)
        .where(
            Coursework.id == coursework_id,
            Coursework.deleted_at.is_(None),
            Coursework.enrolled_count < Coursework.max_students,
        )
        .values(enrolled_count=Coursework.enrolled_count + 1)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        db.session.rollback()
        raise CapacityExceeded("no slots available for this coursework")

    row = StudentCoursework(
        student_id=student_id,
        coursework_id=coursework_id,
        status=CourseworkStatus.ASSIGNED.value,
        created_at=now,
        updated_at=now,
    )
    db.session.add(row)
    try:
        db.session.commit()
    except IntegrityError:
        # частичный уникальный индекс по student_id: параллельная запись успела раньше
        db.session.rollback()
        raise AlreadyAssigned("student already has an assigned coursework")
    return row


def update_status(row: StudentCoursework, status: str) -> None:
    row.status = status


def set_grade(row: StudentCoursework, grade: int, feedback: Optional[str]) -> None:
    row.grade = grade
    row.feedback = feedback


def set_submitted(row: StudentCoursework, ts: datetime) -> None:
    row.submitted_at = ts


def set_completed(row: StudentCoursework, ts: datetime) -> None:
    row.completed_at = ts


@_storage_guard
def save() -> None:
    db.session.commit()


@_storage_guard
def delete_assignment(row: StudentCoursework, now: datetime) -> None:
    row.deleted_at = now
    db.session.execute(
        update(Coursework)
        .where(Coursework.id == row.coursework_id, Coursework.enrolled_count > 0)
        .values(enrolled_count=Coursework.enrolled_count - 1)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()


@_storage_guard
def list_by_coursework(coursework_id: int) -> List[StudentCoursework]:
    return (_active()
            .filter(StudentCoursework.coursework_id == coursework_id)
            .order_by(StudentCoursework.created_at.asc(), StudentCoursework.id.asc())
            .all())


@_storage_guard
def list_by_teacher(teacher_id: int) -> List[StudentCoursework]:
    return (_active()
            .join(Coursework, Coursework.id == StudentCoursework.coursework_id)
            .filter(Coursework.teacher_id == teacher_id, Coursework.deleted_at.is_(None))
            .order_by(StudentCoursework.coursework_id.asc(),
                      StudentCoursework.created_at.asc(),
                      StudentCoursework.id.asc())
            .all())
