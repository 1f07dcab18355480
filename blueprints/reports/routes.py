# blueprints/reports/routes.py
from __future__ import annotations
from flask import Blueprint, Response
from flask_login import current_user

from blueprints.auth.routes import admin_required, teacher_required
from blueprints.courseworks.services import get_coursework, ensure_owner
from .services import progress_csv, capacity_csv

api_bp = Blueprint("reports_api", __name__)


def _csv_resp(content: str, filename: str) -> Response:
    return Response(
        content,
        mimetype="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@api_bp.get("/courseworks/<int:id>/progress.csv")
@teacher_required
def coursework_progress(id: int):
    ensure_owner(current_user._get_current_object(), get_coursework(id))
    return _csv_resp(progress_csv(id), f"coursework_{id}_progress.csv")


@api_bp.get("/courseworks.csv")
@admin_required
def courseworks_capacity():
    return _csv_resp(capacity_csv(), "courseworks_capacity.csv")
