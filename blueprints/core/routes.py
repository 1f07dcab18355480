from __future__ import annotations
import json, logging
from datetime import datetime, UTC
from uuid import uuid4

from flask import g, jsonify, request
from flask.logging import default_handler
from flask_wtf.csrf import CSRFError
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException
from werkzeug.wrappers.response import Response

from . import bp
from .errors import ApiError

log = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_LOG_FIELDS = (
    "event", "path", "method", "status", "duration_ms", "request_id", "user_id",
    "assignment_id", "student_id", "coursework_id", "from_status", "to_status", "error",
)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.now(UTC).replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in _LOG_FIELDS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _setup_structured_logging(app):
    root = logging.getLogger()
    has_json = any(
        isinstance(h, logging.StreamHandler)
        and isinstance(getattr(h, "formatter", None), JSONFormatter)
        for h in root.handlers
    )
    if not has_json:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)
    root.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    # иначе записи app.logger задваиваются
    app.logger.removeHandler(default_handler)


def _pydantic_errors_safe(ve: ValidationError):
    errs = ve.errors(include_url=False)
    for e in errs:
        if "ctx" in e and isinstance(e["ctx"], dict):
            e["ctx"] = {k: str(v) for k, v in e["ctx"].items()}
    return errs


@bp.before_app_request
def _start_timer():
    g._req_start = datetime.now(UTC)
    g.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex


@bp.after_app_request
def _log_request(response: Response):
    response.headers[REQUEST_ID_HEADER] = getattr(g, "request_id", "")
    try:
        duration_ms = int((datetime.now(UTC) - g._req_start).total_seconds() * 1000)
    except AttributeError:
        duration_ms = None
    extra = {
        "event": "http_request",
        "path": request.path,
        "method": request.method,
        "status": response.status_code,
        "duration_ms": duration_ms,
        "request_id": getattr(g, "request_id", None),
    }
    log.info("request handled", extra=extra)
    return response


@bp.record_once
def _on_register(state):
    _setup_structured_logging(state.app)


# ---------- единые JSON-ошибки ----------
@bp.app_errorhandler(ApiError)
def _api_error(e: ApiError):
    if e.status_code >= 500:
        log.error("api error", extra={"event": "api_error", "error": e.error_code, "path": request.path})
    return jsonify(e.to_dict()), e.status_code


@bp.app_errorhandler(ValidationError)
def _validation_error(e: ValidationError):
    return jsonify({"error": "validation_error", "detail": _pydantic_errors_safe(e)}), 422


@bp.app_errorhandler(CSRFError)
def _csrf_error(e: CSRFError):
    return jsonify({"error": "csrf_failed", "detail": e.description}), 400


@bp.app_errorhandler(HTTPException)
def _http_error(e: HTTPException):
    code = (e.name or "error").lower().replace(" ", "_")
    body = {"error": code}
    if e.description:
        body["detail"] = e.description
    return jsonify(body), e.code or 500


@bp.get("/health")
def health():
    return jsonify({
        "status": "ok",
        "ts": datetime.now(UTC).replace(tzinfo=None).isoformat(timespec="seconds") + "Z",
        "request_id": getattr(g, "request_id", None),
    })
