from __future__ import annotations
import os
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    BASE_DIR = Path(__file__).resolve().parent
    # SQLite-файл в каталоге проекта
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'courseforge.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # таймаут драйвера = дедлайн любого запроса к БД
    DB_TIMEOUT_SECONDS = int(os.getenv("DB_TIMEOUT_SECONDS", "15"))

    JSON_SORT_KEYS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # CSRF (Flask-WTF): токен в заголовке, без ограничения по времени
    WTF_CSRF_TIME_LIMIT = None
    WTF_CSRF_HEADERS = ["X-CSRF-Token", "X-CSRFToken"]

    # лимит попыток входа: не более AUTH_RL_MAX за AUTH_RL_WINDOW секунд
    AUTH_RL_MAX = 5
    AUTH_RL_WINDOW = 300
    REGISTRATION_OPEN = _env_bool("REGISTRATION_OPEN", True)

    # курсовые
    COURSEWORK_ENFORCE_TRANSITIONS = _env_bool("COURSEWORK_ENFORCE_TRANSITIONS", True)
    COURSEWORK_MAX_STUDENTS_LIMIT = 10

    SEED_TEST_DATA = False
    DEFAULT_USERS: list[dict] = []


class DevConfig(BaseConfig):
    DEBUG = True
    SEED_TEST_DATA = True
    DEFAULT_USERS = [
        {"email": "admin@example.com", "password": "pass123", "role": "ADMIN",
         "first_name": "Админ", "last_name": "Системы"},
        {"email": "teacher@example.com", "password": "pass123", "role": "TEACHER",
         "first_name": "Иван", "last_name": "Петров"},
        {"email": "student@example.com", "password": "pass123", "role": "STUDENT",
         "first_name": "Анна", "last_name": "Смирнова"},
    ]


class TestConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "WARNING"
    SEED_TEST_DATA = False


class ProdConfig(BaseConfig):
    DEBUG = False
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True
    REGISTRATION_OPEN = _env_bool("REGISTRATION_OPEN", False)


config_map = {
    "dev": DevConfig,
    "test": TestConfig,
    "prod": ProdConfig,
    "default": DevConfig,
}
