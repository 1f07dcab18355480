# scripts/dev_db_init.py
import os
import sys

# запуск как `python scripts/dev_db_init.py` из корня репозитория
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir)))

from app import create_app  # noqa: E402
from extensions import db  # noqa: E402
from models import User, Subject, Role  # noqa: E402


def seed_minimal():
    if not Subject.query.filter_by(code="DB").first():
        db.session.add(Subject(code="DB", name="Базы данных", semester=5))

    # Админ для входа
    if not User.query.filter_by(email="admin@example.com").first():
        admin = User(email="admin@example.com", first_name="Админ", last_name="Системы",
                     role=Role.ADMIN.value, is_active=True)
        admin.set_password("pass123")
        db.session.add(admin)

    db.session.commit()


if __name__ == "__main__":
    app = create_app("dev")
    with app.app_context():
        db.create_all()
        seed_minimal()
        print("DB initialized and seeded")
