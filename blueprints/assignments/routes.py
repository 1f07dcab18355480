# blueprints/assignments/routes.py
from __future__ import annotations

from flask import Blueprint, request, url_for, jsonify
from flask_login import login_required, current_user

from models import Role
from blueprints.auth.routes import admin_required, student_required, teacher_required, roles_required
from blueprints.core.errors import ApiError, Forbidden
from blueprints.core.http import ok, created
from blueprints.courseworks.services import get_coursework, ensure_owner
from . import services
from .schemas import AssignIn, GradeIn, StatusIn

api_bp = Blueprint("assignments_api", __name__)


def _me():
    return current_user._get_current_object()


def _ensure_supervisor(a: services.AssignmentOut) -> None:
    """Менять статус и оценку может руководитель курсовой или админ."""
    user = _me()
    if user.is_admin or (user.is_teacher and a.teacher_id == user.id):
        return
    raise Forbidden("only the supervising teacher may change this assignment")


# ---------- запись на курсовую ----------
@api_bp.post("/courseworks/<int:id>/assign")
@roles_required(Role.STUDENT.value, Role.ADMIN.value)
def api_assign(id: int):
    data = AssignIn.model_validate(request.get_json(silent=True) or {})
    user = _me()
    if user.is_student:
        if data.student_id not in (None, user.id):
            raise Forbidden("students may only enroll themselves")
        student_id = user.id
    else:
        if data.student_id is None:
            raise ApiError("student_id is required", error_code="student_required")
        student_id = data.student_id
    a = services.assign_student(student_id, id)
    return created(url_for("assignments_api.api_assignment_get", id=a.id), a.to_dict())


@api_bp.get("/courseworks/<int:id>/progress")
@teacher_required
def api_progress(id: int):
    ensure_owner(_me(), get_coursework(id))
    return ok(services.coursework_progress(id).to_dict())


# ---------- своё назначение (студент) ----------
@api_bp.get("/assignments/me")
@student_required
def api_my_assignment():
    return ok(services.get_student_assignment(_me().id).to_dict())


@api_bp.delete("/assignments/me")
@student_required
def api_my_unassign():
    services.unassign_student(_me().id)
    return "", 204


# ---------- назначение студента (преподаватель/админ) ----------
@api_bp.get("/students/<int:student_id>/assignment")
@teacher_required
def api_student_assignment(student_id: int):
    return ok(services.get_student_assignment(student_id).to_dict())


@api_bp.delete("/students/<int:student_id>/assignment")
@admin_required
def api_student_unassign(student_id: int):
    services.unassign_student(student_id)
    return "", 204


# ---------- операции над назначением ----------
@api_bp.get("/assignments/<int:id>")
@login_required
def api_assignment_get(id: int):
    a = services.get_assignment(id)
    user = _me()
    if not (user.is_admin or a.student_id == user.id or (user.is_teacher and a.teacher_id == user.id)):
        raise Forbidden("no access to this assignment")
    return ok(a.to_dict())


@api_bp.post("/assignments/<int:id>/submit")
@student_required
def api_submit(id: int):
    a = services.get_assignment(id)
    if a.student_id != _me().id:
        raise Forbidden("only the assigned student may submit")
    return ok(services.submit(id).to_dict())


@api_bp.post("/assignments/<int:id>/grade")
@teacher_required
def api_grade(id: int):
    data = GradeIn.model_validate(request.get_json(silent=True) or {})
    _ensure_supervisor(services.get_assignment(id))
    return ok(services.grade(id, data.grade, data.feedback).to_dict())


@api_bp.post("/assignments/<int:id>/complete")
@teacher_required
def api_complete(id: int):
    _ensure_supervisor(services.get_assignment(id))
    return ok(services.complete(id).to_dict())


@api_bp.put("/assignments/<int:id>/status")
@teacher_required
def api_status(id: int):
    data = StatusIn.model_validate(request.get_json(silent=True) or {})
    _ensure_supervisor(services.get_assignment(id))
    return ok(services.update_status(id, data.status.strip().lower()).to_dict())


@api_bp.get("/teacher/assignments")
@roles_required(Role.TEACHER.value)
def api_teacher_assignments():
    items = services.list_teacher_assignments(_me().id)
    return jsonify({"items": [a.to_dict() for a in items]})
