"""
Idempotent seed-скрипт.
Запуск:
  python seed.py --reset         # дропнуть и пересоздать БД + демо-данные
  python seed.py --ensure-admin  # создать только admin@example.com / pass123
  python seed.py                 # мягкое наполнение недостающих данных (idempotent)
"""
import argparse

from app import create_app
from extensions import db
from models import User, Subject, Coursework, Role
from blueprints.assignments import services as assignments
from blueprints.assignments.errors import AlreadyAssigned, CapacityExceeded

DEMO_PASSWORD = "pass123"

TEACHERS = [
    ("petrov@example.com", "Иван", "Петров"),
    ("sidorova@example.com", "Мария", "Сидорова"),
]
STUDENTS = [
    ("smirnova@example.com", "Анна", "Смирнова"),
    ("kuznetsov@example.com", "Олег", "Кузнецов"),
    ("popova@example.com", "Елена", "Попова"),
    ("volkov@example.com", "Дмитрий", "Волков"),
]
SUBJECTS = [
    ("DB", "Базы данных", 5),
    ("SE", "Программная инженерия", 6),
]
# (subject_code, teacher_email, title, max_students, difficulty)
COURSEWORKS = [
    ("DB", "petrov@example.com", "Проектирование БД библиотеки", 2, "easy"),
    ("DB", "petrov@example.com", "Оптимизация запросов в PostgreSQL", 1, "hard"),
    ("SE", "sidorova@example.com", "Веб-сервис учёта курсовых работ", 3, "medium"),
]


def get_or_create(model, defaults=None, **by):
    """Идемпотентное создание по уникальным ключам."""
    inst = db.session.query(model).filter_by(**by).first()
    if inst:
        return inst, False
    data = dict(defaults or {})
    data.update(by)
    inst = model(**data)
    db.session.add(inst)
    db.session.flush()
    return inst, True


def _user(email: str, first: str, last: str, role: Role) -> User:
    u, created = get_or_create(User, defaults={
        "first_name": first, "last_name": last, "role": role.value, "is_active": True,
        "password_hash": "",
    }, email=email)
    if created:
        u.set_password(DEMO_PASSWORD)
    return u


def ensure_admin() -> bool:
    if User.query.filter_by(email="admin@example.com").first():
        return False
    _user("admin@example.com", "Админ", "Системы", Role.ADMIN)
    db.session.commit()
    return True


def seed_catalog() -> None:
    teachers = {e: _user(e, f, l, Role.TEACHER) for e, f, l in TEACHERS}
    for e, f, l in STUDENTS:
        _user(e, f, l, Role.STUDENT)

    subjects = {}
    for code, name, semester in SUBJECTS:
        s, _ = get_or_create(Subject, defaults={"name": name, "semester": semester}, code=code)
        subjects[code] = s

    for code, email, title, max_students, difficulty in COURSEWORKS:
        t = teachers[email]
        if t not in subjects[code].teachers:
            subjects[code].teachers.append(t)
        get_or_create(Coursework, defaults={
            "description": f"Курсовая работа по дисциплине «{subjects[code].name}».",
            "max_students": max_students,
            "difficulty_level": difficulty,
            "is_available": True,
            "enrolled_count": 0,
        }, title=title, subject_id=subjects[code].id, teacher_id=t.id)
    db.session.commit()


def seed_assignments() -> None:
    """Первых двух студентов записываем через workflow, чтобы счётчик мест сошёлся."""
    cw = Coursework.query.filter_by(title=COURSEWORKS[0][2]).first()
    for email, _, _ in STUDENTS[:2]:
        student = User.query.filter_by(email=email).first()
        try:
            assignments.assign_student(student.id, cw.id)
        except (AlreadyAssigned, CapacityExceeded):
            continue


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--reset", action="store_true", help="drop + create + full seed (demo)")
    parser.add_argument("--ensure-admin", action="store_true", help="create only admin@example.com")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        if args.reset:
            db.drop_all()
            db.create_all()
            ensure_admin()
            seed_catalog()
            seed_assignments()
            print("[seed] reset+seed complete")
            return

        if args.ensure_admin:
            created = ensure_admin()
            print("Admin created." if created else "Admin already exists.")
            return

        # режим по умолчанию — мягкое наполнение недостающих данных
        db.create_all()
        ensure_admin()
        seed_catalog()
        seed_assignments()
        print("[seed] soft seed complete")


if __name__ == "__main__":
    main()
