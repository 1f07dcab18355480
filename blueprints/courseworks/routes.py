# blueprints/courseworks/routes.py
from __future__ import annotations

from flask import Blueprint, request, url_for
from flask_login import login_required, current_user

from blueprints.auth.routes import teacher_required
from blueprints.core.http import ok, created, page_args, bool_arg, int_arg, paginate
from . import services
from .schemas import CourseworkIn, CourseworkUpdateIn, AvailabilityIn, CourseworkOut

api_bp = Blueprint("courseworks_api", __name__)


def _out(cw) -> dict:
    return CourseworkOut.model_validate(cw).model_dump(mode="json")


@api_bp.get("/courseworks")
@login_required
def api_courseworks_list():
    page, per_page = page_args()
    q = services.list_query(
        subject_id=int_arg("subject_id"),
        teacher_id=int_arg("teacher_id"),
        available=bool_arg("available"),
        difficulty=(request.args.get("difficulty") or "").lower() or None,
    )
    return ok(paginate(q, _out, page=page, per_page=per_page))


@api_bp.get("/courseworks/available")
@login_required
def api_courseworks_available():
    page, per_page = page_args()
    q = services.available_query(subject_id=int_arg("subject_id"))
    return ok(paginate(q, _out, page=page, per_page=per_page))


@api_bp.get("/courseworks/<int:id>")
@login_required
def api_courseworks_get(id: int):
    return ok(_out(services.get_coursework(id)))


@api_bp.post("/courseworks")
@teacher_required
def api_courseworks_create():
    data = CourseworkIn.model_validate(request.get_json(silent=True) or {})
    cw = services.create_coursework(current_user._get_current_object(), data)
    return created(url_for("courseworks_api.api_courseworks_get", id=cw.id), _out(cw))


@api_bp.put("/courseworks/<int:id>")
@teacher_required
def api_courseworks_update(id: int):
    data = CourseworkUpdateIn.model_validate(request.get_json(silent=True) or {})
    cw = services.update_coursework(current_user._get_current_object(), id, data)
    return ok(_out(cw))


@api_bp.put("/courseworks/<int:id>/availability")
@teacher_required
def api_courseworks_availability(id: int):
    data = AvailabilityIn.model_validate(request.get_json(silent=True) or {})
    services.set_availability(current_user._get_current_object(), id, data.is_available)
    return "", 204


@api_bp.delete("/courseworks/<int:id>")
@teacher_required
def api_courseworks_delete(id: int):
    services.delete_coursework(current_user._get_current_object(), id)
    return "", 204
