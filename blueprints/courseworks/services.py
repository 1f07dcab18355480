# blueprints/courseworks/services.py
"""
Каталог курсовых работ: создание, правка, снятие с публикации.

Права проверяются здесь же, роуты только разбирают запрос.
Счётчик enrolled_count этот модуль не пишет, им владеет workflow назначений;
max_students и удаление сверяются с ним условным UPDATE.
"""
from __future__ import annotations
import logging
from typing import Optional

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import Coursework, Subject, User, Role, utcnow
from blueprints.core.errors import ApiError, Conflict, Forbidden, NotFound, TransientError
from .schemas import CourseworkIn, CourseworkUpdateIn

log = logging.getLogger(__name__)


def _commit() -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        log.error("coursework commit failed", extra={"event": "storage_error", "error": str(exc)})
        raise TransientError("storage is unavailable") from exc


def get_coursework(coursework_id: int) -> Coursework:
    cw = db.session.get(Coursework, coursework_id)
    if cw is None or cw.deleted_at is not None:
        raise NotFound("coursework", coursework_id)
    return cw


def ensure_owner(user: User, cw: Coursework) -> None:
    if user.is_admin:
        return
    if not (user.is_teacher and cw.teacher_id == user.id):
        raise Forbidden("only the supervising teacher may change this coursework")


def _check_max_students(value: int) -> None:
    limit = current_app.config.get("COURSEWORK_MAX_STUDENTS_LIMIT")
    if limit and value > limit:
        raise ApiError(f"max_students must not exceed {limit}", error_code="max_students_limit")


def create_coursework(user: User, data: CourseworkIn) -> Coursework:
    if user.is_admin:
        if data.teacher_id is None:
            raise ApiError("teacher_id is required", error_code="teacher_required")
        teacher_id = data.teacher_id
    else:
        if data.teacher_id not in (None, user.id):
            raise Forbidden("teachers create courseworks only for themselves")
        teacher_id = user.id

    teacher = db.session.get(User, teacher_id)
    if teacher is None or teacher.role != Role.TEACHER.value:
        raise NotFound("teacher", teacher_id)
    subject = db.session.get(Subject, data.subject_id)
    if subject is None:
        raise NotFound("subject", data.subject_id)
    _check_max_students(data.max_students)

    cw = Coursework(
        title=data.title.strip(),
        description=data.description,
        requirements=data.requirements,
        subject_id=subject.id,
        teacher_id=teacher.id,
        max_students=data.max_students,
        difficulty_level=data.difficulty_level,
        is_available=data.is_available,
        enrolled_count=0,
    )
    db.session.add(cw)
    _commit()
    log.info("coursework created", extra={"event": "coursework_created", "coursework_id": cw.id,
                                          "user_id": user.id})
    return cw


def _guarded_write(coursework_id: int, *conditions, **values) -> bool:
    """Условный UPDATE строки курсовой; False, если условие не выполнилось."""
    try:
        res = db.session.execute(
            update(Coursework)
            .where(Coursework.id == coursework_id, Coursework.deleted_at.is_(None), *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
    except SQLAlchemyError as exc:
        db.session.rollback()
        log.error("coursework update failed", extra={"event": "storage_error", "error": str(exc)})
        raise TransientError("storage is unavailable") from exc
    if res.rowcount:
        return True
    # счётчик мог измениться параллельной записью: перечитываем строку
    db.session.rollback()
    return False


def _fresh(cw: Coursework) -> Coursework:
    db.session.refresh(cw)
    if cw.deleted_at is not None:
        raise NotFound("coursework", cw.id)
    return cw


def update_coursework(user: User, coursework_id: int, data: CourseworkUpdateIn) -> Coursework:
    cw = get_coursework(coursework_id)
    ensure_owner(user, cw)
    if data.max_students is not None:
        _check_max_students(data.max_students)
        # сравнение с enrolled_count делает сама БД, а не прочитанная копия
        if not _guarded_write(cw.id, Coursework.enrolled_count <= data.max_students,
                              max_students=data.max_students, updated_at=utcnow()):
            cw = _fresh(cw)
            raise Conflict(
                "max_students is below current enrollment",
                error_code="capacity_below_enrollment",
                extra={"enrolled_count": cw.enrolled_count},
            )
        db.session.refresh(cw)
    if data.title is not None:
        cw.title = data.title.strip()
    if data.description is not None:
        cw.description = data.description
    if data.requirements is not None:
        cw.requirements = data.requirements
    if data.difficulty_level is not None:
        cw.difficulty_level = data.difficulty_level
    if data.is_available is not None:
        cw.is_available = data.is_available
    _commit()
    return cw


def set_availability(user: User, coursework_id: int, is_available: bool) -> None:
    cw = get_coursework(coursework_id)
    ensure_owner(user, cw)
    cw.is_available = is_available
    _commit()
    log.info("coursework availability changed",
             extra={"event": "coursework_availability", "coursework_id": cw.id, "user_id": user.id})


def delete_coursework(user: User, coursework_id: int) -> None:
    cw = get_coursework(coursework_id)
    ensure_owner(user, cw)
    now = utcnow()
    if not _guarded_write(cw.id, Coursework.enrolled_count == 0,
                          deleted_at=now, is_available=False, updated_at=now):
        cw = _fresh(cw)
        raise Conflict("coursework has assigned students", error_code="coursework_in_use",
                       extra={"enrolled_count": cw.enrolled_count})
    _commit()
    log.info("coursework deleted", extra={"event": "coursework_deleted", "coursework_id": coursework_id,
                                          "user_id": user.id})


def list_query(*, subject_id: Optional[int] = None, teacher_id: Optional[int] = None,
               available: Optional[bool] = None, difficulty: Optional[str] = None):
    q = db.session.query(Coursework).filter(Coursework.deleted_at.is_(None))
    if subject_id is not None:
        q = q.filter(Coursework.subject_id == subject_id)
    if teacher_id is not None:
        q = q.filter(Coursework.teacher_id == teacher_id)
    if available is not None:
        q = q.filter(Coursework.is_available.is_(available))
    if difficulty:
        q = q.filter(Coursework.difficulty_level == difficulty)
    return q.order_by(Coursework.id.asc())


def available_query(subject_id: Optional[int] = None):
    """Открытые для записи темы, у которых остались места."""
    q = list_query(subject_id=subject_id, available=True)
    return q.filter(Coursework.enrolled_count < Coursework.max_students)
