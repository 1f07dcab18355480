# blueprints/users/routes.py
from __future__ import annotations
import logging

from flask import Blueprint, request, url_for, abort
from flask_login import current_user
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import User, StudentCoursework, Coursework
from blueprints.auth.routes import admin_required
from blueprints.core.errors import Conflict
from blueprints.core.http import ok, created, page_args, bool_arg, paginate
from .schemas import UserIn, UserUpdateIn, UserOut

api_bp = Blueprint("users_api", __name__)
log = logging.getLogger(__name__)


def _out(u: User) -> dict:
    return UserOut.model_validate(u).model_dump(mode="json")


def _commit_or_conflict(detail: str = "email already registered", code: str = "email_taken"):
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict(detail, error_code=code)


@api_bp.get("/users")
@admin_required
def api_users_list():
    page, per_page = page_args()
    s = db.session.query(User)
    role = (request.args.get("role") or "").upper()
    if role:
        s = s.filter(User.role == role)
    active = bool_arg("active")
    if active is not None:
        s = s.filter(User.is_active.is_(active))
    q = (request.args.get("q") or "").strip()
    if q:
        s = s.filter(or_(User.email.like(f"%{q}%"),
                         User.first_name.like(f"%{q}%"),
                         User.last_name.like(f"%{q}%")))
    s = s.order_by(User.id.asc())
    return ok(paginate(s, _out, page=page, per_page=per_page))


@api_bp.post("/users")
@admin_required
def api_users_create():
    data = UserIn.model_validate(request.get_json(silent=True) or {})
    if User.query.filter_by(email=data.email).first():
        raise Conflict("email already registered", error_code="email_taken")
    u = User(
        email=data.email,
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        role=data.role,
        is_active=True,
    )
    u.set_password(data.password)
    db.session.add(u)
    _commit_or_conflict()
    log.info("user created", extra={"event": "user_created", "user_id": u.id})
    return created(url_for("users_api.api_users_get", id=u.id), _out(u))


@api_bp.get("/users/<int:id>")
@admin_required
def api_users_get(id: int):
    u = db.session.get(User, id) or abort(404)
    return ok(_out(u))


@api_bp.put("/users/<int:id>")
@admin_required
def api_users_update(id: int):
    data = UserUpdateIn.model_validate(request.get_json(silent=True) or {})
    u = db.session.get(User, id) or abort(404)
    if data.email is not None:
        u.email = data.email
    if data.first_name is not None:
        u.first_name = data.first_name.strip()
    if data.last_name is not None:
        u.last_name = data.last_name.strip()
    if data.role is not None and data.role != u.role:
        # роль нельзя менять, пока на неё завязаны курсовые/назначения
        _ensure_unreferenced(u)
        u.role = data.role
    if data.is_active is not None:
        u.is_active = data.is_active
    if data.password:
        u.set_password(data.password)
    _commit_or_conflict()
    return ok(_out(u))


@api_bp.delete("/users/<int:id>")
@admin_required
def api_users_delete(id: int):
    u = db.session.get(User, id) or abort(404)
    if u.id == current_user.id:
        raise Conflict("cannot delete yourself", error_code="self_delete")
    _ensure_unreferenced(u)
    db.session.delete(u)
    _commit_or_conflict("user is still referenced", "user_in_use")
    return "", 204


def _ensure_unreferenced(u: User) -> None:
    has_assignment = db.session.query(StudentCoursework.id).filter(
        StudentCoursework.student_id == u.id, StudentCoursework.deleted_at.is_(None)).first()
    if has_assignment:
        raise Conflict("user has an active coursework assignment", error_code="user_in_use")
    owns_coursework = db.session.query(Coursework.id).filter(
        Coursework.teacher_id == u.id, Coursework.deleted_at.is_(None)).first()
    if owns_coursework:
        raise Conflict("user supervises courseworks", error_code="user_in_use")
