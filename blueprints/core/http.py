from __future__ import annotations
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from flask import jsonify, request
from sqlalchemy.orm import Query

MAX_PER_PAGE = 100


def iso_z(value: Optional[datetime]) -> Optional[str]:
    """UTC без tz-info -> ISO-8601 с суффиксом Z."""
    if value is None:
        return None
    return value.isoformat(timespec="seconds") + "Z"


def ok(data: Any, status: int = 200):
    return jsonify(data), status


def created(location: str, data: Any):
    resp = jsonify(data)
    resp.status_code = 201
    resp.headers["Location"] = location
    return resp


def page_args(default_per_page: int = 20) -> tuple[int, int]:
    try:
        page = max(1, int(request.args.get("page", 1)))
        per_page = int(request.args.get("per_page", default_per_page))
    except ValueError:
        return 1, default_per_page
    return page, min(MAX_PER_PAGE, max(1, per_page))


def bool_arg(name: str) -> bool | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in ("1", "true", "yes", "on")


def int_arg(name: str) -> int | None:
    raw = request.args.get(name)
    if raw is None or not raw.strip().isdigit():
        return None
    return int(raw)


def paginate(query: Query, serialize: Callable[[Any], dict], *, page: int, per_page: int) -> dict:
    total = query.count()
    rows: Iterable = query.offset((page - 1) * per_page).limit(per_page).all()
    return {
        "items": [serialize(r) for r in rows],
        "meta": {"page": page, "per_page": per_page, "total": total},
    }
