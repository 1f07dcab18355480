# blueprints/auth/routes.py
from __future__ import annotations
import logging
import time
from functools import wraps
from typing import Callable, Optional

from flask import Blueprint, request, jsonify, abort, current_app
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError

from extensions import db, csrf, login_manager
from models import User, Role
from blueprints.core.errors import ApiError, Conflict, Forbidden
from blueprints.users.schemas import EMAIL_PATTERN, UserOut

api_bp = Blueprint("auth_api", __name__)
log = logging.getLogger(__name__)

# ---- безопасные значения по умолчанию
DEFAULT_RL_MAX = 5
DEFAULT_RL_WIN = 300  # 5 минут


class LoginIn(BaseModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class RegisterIn(BaseModel):
    email: str = Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=6, max_length=128)
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)


class ChangePasswordIn(BaseModel):
    old_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=128)


# ---------- rate limit ----------
def _rl_bucket(email: str) -> list[float]:
    ip = request.headers.get("X-Forwarded-For", request.remote_addr or "0.0.0.0").split(",")[0].strip()
    attempts = current_app.extensions.setdefault("login_attempts", {})
    return attempts.setdefault(f"{ip}|{(email or '').lower()}", [])


def _rl_blocked(bucket: list[float]) -> bool:
    now = time.time()
    win = current_app.config.get("AUTH_RL_WINDOW", DEFAULT_RL_WIN)
    mx = current_app.config.get("AUTH_RL_MAX", DEFAULT_RL_MAX)
    # purge старых
    cutoff = now - win
    while bucket and bucket[0] < cutoff:
        bucket.pop(0)
    return len(bucket) >= mx


# ---------- декораторы ролей ----------
def roles_required(*roles: str) -> Callable:
    def decorator(fn: Callable):
        @wraps(fn)
        @login_required
        def wrapper(*args, **kwargs):
            if getattr(current_user, "role", None) not in roles:
                abort(403)
            return fn(*args, **kwargs)
        return wrapper
    return decorator


admin_required = roles_required(Role.ADMIN.value)
# админу можно всё, что можно преподавателю
teacher_required = roles_required(Role.TEACHER.value, Role.ADMIN.value)
student_required = roles_required(Role.STUDENT.value)


# ---------- обработчик 401 ----------
@login_manager.unauthorized_handler
def _unauth():
    return jsonify({"error": "unauthorized"}), 401


def _user_json(user: User) -> dict:
    return UserOut.model_validate(user).model_dump(mode="json")


# ---------- API ----------
@api_bp.get("/csrf")
def api_csrf():
    token = generate_csrf()
    resp = jsonify({"csrf_token": token})
    resp.set_cookie("csrf_token", token, samesite="Lax", httponly=False, path="/")
    return resp


@api_bp.post("/login")
@csrf.exempt
def api_login():
    payload = request.get_json(silent=True) or {}
    if not payload.get("email") or not payload.get("password"):
        return jsonify({"error": "missing_credentials"}), 400
    data = LoginIn.model_validate(payload)
    email = data.email.strip().lower()

    bucket = _rl_bucket(email)
    if _rl_blocked(bucket):
        log.warning("login rate limited", extra={"event": "login_rate_limited"})
        return jsonify({"error": "too_many_attempts"}), 429

    user: Optional[User] = User.query.filter_by(email=email).first()
    if not user or not user.check_password(data.password):
        bucket.append(time.time())
        return jsonify({"error": "invalid_credentials"}), 401

    if not user.is_active:
        return jsonify({"error": "inactive"}), 403

    bucket.clear()
    login_user(user, remember=True)
    log.info("user logged in", extra={"event": "login", "user_id": user.id})
    return jsonify({"ok": True, "user": _user_json(user)})


@api_bp.post("/register")
@csrf.exempt
def api_register():
    if not current_app.config.get("REGISTRATION_OPEN", True):
        raise Forbidden("registration is closed", error_code="registration_closed")
    data = RegisterIn.model_validate(request.get_json(silent=True) or {})
    email = data.email.strip().lower()
    if User.query.filter_by(email=email).first():
        raise Conflict("email already registered", error_code="email_taken")

    # самостоятельно регистрируются только студенты
    user = User(
        email=email,
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        role=Role.STUDENT.value,
        is_active=True,
    )
    user.set_password(data.password)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("email already registered", error_code="email_taken")

    login_user(user, remember=True)
    log.info("user registered", extra={"event": "register", "user_id": user.id})
    return jsonify({"ok": True, "user": _user_json(user)}), 201


@api_bp.post("/logout")
@login_required
def api_logout():
    logout_user()
    return jsonify({"ok": True})


@api_bp.get("/me")
@login_required
def api_me():
    return jsonify(_user_json(current_user._get_current_object()))


@api_bp.post("/change-password")
@login_required
def api_change_password():
    data = ChangePasswordIn.model_validate(request.get_json(silent=True) or {})
    user: User = current_user._get_current_object()
    if not user.check_password(data.old_password):
        raise ApiError("old password does not match", error_code="invalid_old_password")
    user.set_password(data.new_password)
    db.session.commit()
    return jsonify({"ok": True})
