import logging
import os
import sys
from logging.config import fileConfig

from alembic import context

# корень репозитория в sys.path, чтобы работал `from app import create_app`
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)
log = logging.getLogger("alembic.env")

from flask import current_app, has_app_context  # noqa: E402
from extensions import db                       # noqa: E402

# `flask db ...` уже поднял приложение; прямой запуск alembic собирает его сам
if not has_app_context():
    from app import create_app                  # noqa: E402
    create_app(os.getenv("FLASK_CONFIG", "default")).app_context().push()

engine_url = current_app.config["SQLALCHEMY_DATABASE_URI"]
if not config.get_main_option("sqlalchemy.url"):
    config.set_main_option("sqlalchemy.url", engine_url.replace("%", "%%"))

target_metadata = db.metadata


def run_migrations_offline():
    """Offline-режим: генерим SQL без подключения."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,  # SQLite не умеет ALTER CONSTRAINT
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    """Online-режим: применяем миграции к реальной БД."""
    with db.engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=True,
            compare_type=True,
        )
        with context.begin_transaction():
            log.info("running migrations against %s", db.engine.url.render_as_string(hide_password=True))
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
