from __future__ import annotations
import logging
import os
from importlib import import_module
from flask import Flask
from sqlalchemy import inspect
from sqlalchemy.engine import make_url

from config import config_map
from extensions import db, migrate, login_manager, csrf

log = logging.getLogger(__name__)


def _engine_options(app: Flask) -> dict:
    """Таймаут драйвера БД: дедлайн для каждого обращения к хранилищу."""
    timeout = int(app.config.get("DB_TIMEOUT_SECONDS") or 0)
    opts = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    if not timeout:
        return opts
    backend = make_url(app.config["SQLALCHEMY_DATABASE_URI"]).get_backend_name()
    connect_args = dict(opts.get("connect_args") or {})
    if backend == "sqlite":
        # ожидание блокировки файла БД
        connect_args.setdefault("timeout", timeout)
    else:
        opts.setdefault("pool_timeout", timeout)
        if backend == "postgresql":
            connect_args.setdefault("connect_timeout", timeout)
            connect_args.setdefault("options", f"-c statement_timeout={timeout * 1000}")
    opts["connect_args"] = connect_args
    return opts


def _seed_from_config(app: Flask) -> None:
    if not app.config.get("SEED_TEST_DATA"):
        return
    with app.app_context():
        # таблица users может ещё не быть создана (alembic upgrade и т.п.)
        if not inspect(db.engine).has_table("users"):
            return

        from models import User  # локальный импорт, чтобы избежать циклов
        created = 0
        for u in app.config.get("DEFAULT_USERS", []):
            if User.query.filter_by(email=u["email"]).first():
                continue
            user = User(
                email=u["email"],
                first_name=u.get("first_name", ""),
                last_name=u.get("last_name", ""),
                role=u["role"],
                is_active=True,
            )
            user.set_password(u["password"])
            db.session.add(user)
            created += 1
        if created:
            db.session.commit()
            log.info("default users seeded", extra={"event": "seed_users"})


def register_blueprints(app: Flask) -> None:
    # Жёстко импортируем модуль с маршрутами core перед взятием bp
    import_module("blueprints.core.routes")
    from blueprints.core import bp as core_bp
    from blueprints.auth.routes import api_bp as auth_api_bp
    from blueprints.users.routes import api_bp as users_api_bp
    from blueprints.subjects.routes import api_bp as subjects_api_bp
    from blueprints.courseworks.routes import api_bp as courseworks_api_bp
    from blueprints.assignments.routes import api_bp as assignments_api_bp
    from blueprints.reports.routes import api_bp as reports_api_bp

    # core без префикса → '/health' в корне
    app.register_blueprint(core_bp)
    app.register_blueprint(auth_api_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(users_api_bp, url_prefix="/api/v1")
    app.register_blueprint(subjects_api_bp, url_prefix="/api/v1")
    app.register_blueprint(courseworks_api_bp, url_prefix="/api/v1")
    app.register_blueprint(assignments_api_bp, url_prefix="/api/v1")
    app.register_blueprint(reports_api_bp, url_prefix="/api/v1/reports")


def create_app(config_name: str | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    cfg_name = config_name or os.getenv("FLASK_CONFIG", "default")
    app.config.from_object(config_map[cfg_name])
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = _engine_options(app)
    app.json.sort_keys = app.config.get("JSON_SORT_KEYS", False)

    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    import_module("models")  # регистрирует модели и user_loader
    register_blueprints(app)
    _seed_from_config(app)
    return app
