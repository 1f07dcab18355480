# blueprints/subjects/routes.py
from __future__ import annotations
import logging

from flask import Blueprint, request, url_for, abort
from flask_login import login_required
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import Subject, User, Coursework, Role
from blueprints.auth.routes import admin_required
from blueprints.core.errors import ApiError, Conflict
from blueprints.core.http import ok, created, page_args, bool_arg, int_arg, paginate
from .schemas import SubjectIn, SubjectUpdateIn, SubjectTeachersIn, SubjectOut, SubjectDetailOut

api_bp = Blueprint("subjects_api", __name__)
log = logging.getLogger(__name__)


def _out(s: Subject) -> dict:
    return SubjectOut.model_validate(s).model_dump(mode="json")


def _detail(s: Subject) -> dict:
    return SubjectDetailOut.model_validate(s).model_dump(mode="json")


def _commit_or_conflict():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("subject code already exists", error_code="subject_code_taken")


# ---- read: любой авторизованный ----
@api_bp.get("/subjects")
@login_required
def api_subjects_list():
    page, per_page = page_args()
    s = db.session.query(Subject)
    q = (request.args.get("q") or "").strip()
    if q:
        s = s.filter(or_(Subject.name.like(f"%{q}%"), Subject.code.like(f"%{q}%")))
    semester = int_arg("semester")
    if semester is not None:
        s = s.filter(Subject.semester == semester)
    active = bool_arg("active")
    if active is not None:
        s = s.filter(Subject.is_active.is_(active))
    s = s.order_by(Subject.code.asc())
    return ok(paginate(s, _out, page=page, per_page=per_page))


@api_bp.get("/subjects/<int:id>")
@login_required
def api_subjects_get(id: int):
    s = db.session.get(Subject, id) or abort(404)
    return ok(_detail(s))


# ---- write: только админ ----
@api_bp.post("/subjects")
@admin_required
def api_subjects_create():
    data = SubjectIn.model_validate(request.get_json(silent=True) or {})
    s = Subject(
        name=data.name.strip(),
        code=data.code.strip().upper(),
        description=data.description,
        semester=data.semester,
        is_active=data.is_active,
    )
    db.session.add(s)
    _commit_or_conflict()
    log.info("subject created", extra={"event": "subject_created"})
    return created(url_for("subjects_api.api_subjects_get", id=s.id), _out(s))


@api_bp.put("/subjects/<int:id>")
@admin_required
def api_subjects_update(id: int):
    data = SubjectUpdateIn.model_validate(request.get_json(silent=True) or {})
    s = db.session.get(Subject, id) or abort(404)
    if data.name is not None:
        s.name = data.name.strip()
    if data.description is not None:
        s.description = data.description
    if data.semester is not None:
        s.semester = data.semester
    if data.is_active is not None:
        s.is_active = data.is_active
    _commit_or_conflict()
    return ok(_out(s))


@api_bp.delete("/subjects/<int:id>")
@admin_required
def api_subjects_delete(id: int):
    s = db.session.get(Subject, id) or abort(404)
    in_use = db.session.query(Coursework.id).filter(
        Coursework.subject_id == s.id, Coursework.deleted_at.is_(None)).first()
    if in_use:
        raise Conflict("subject has courseworks", error_code="subject_in_use")
    db.session.delete(s)
    db.session.commit()
    return "", 204


# ---- преподаватели дисциплины ----
@api_bp.post("/subjects/<int:id>/teachers")
@admin_required
def api_subjects_add_teachers(id: int):
    data = SubjectTeachersIn.model_validate(request.get_json(silent=True) or {})
    s = db.session.get(Subject, id) or abort(404)
    teachers = User.query.filter(User.id.in_(data.teacher_ids)).all()
    found = {t.id: t for t in teachers}
    missing = [tid for tid in data.teacher_ids if tid not in found]
    not_teachers = [t.id for t in teachers if t.role != Role.TEACHER.value]
    if missing or not_teachers:
        raise ApiError("teacher_ids must reference users with TEACHER role",
                       error_code="invalid_teachers",
                       extra={"missing": missing, "not_teachers": not_teachers})
    for t in teachers:
        if t not in s.teachers:
            s.teachers.append(t)
    db.session.commit()
    return ok(_detail(s))


@api_bp.delete("/subjects/<int:id>/teachers/<int:teacher_id>")
@admin_required
def api_subjects_remove_teacher(id: int, teacher_id: int):
    s = db.session.get(Subject, id) or abort(404)
    t = next((t for t in s.teachers if t.id == teacher_id), None) or abort(404)
    s.teachers.remove(t)
    db.session.commit()
    return "", 204
