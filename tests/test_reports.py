from __future__ import annotations
import csv
from io import StringIO

import pytest

from app import create_app
from extensions import db
from models import User, Subject, Coursework, Role
from blueprints.assignments import services

PASSWORD = "pass123"


@pytest.fixture()
def world():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        users = {}
        for email, role, first, last in [
            ("admin@example.com", Role.ADMIN, "Админ", "Системы"),
            ("t1@example.com", Role.TEACHER, "Иван", "Петров"),
            ("t2@example.com", Role.TEACHER, "Мария", "Сидорова"),
            ("s1@example.com", Role.STUDENT, "Анна", "Смирнова"),
            ("s2@example.com", Role.STUDENT, "Олег", "Кузнецов"),
        ]:
            u = User(email=email, first_name=first, last_name=last, role=role.value, is_active=True)
            u.set_password(PASSWORD)
            db.session.add(u)
            users[email.split("@")[0]] = u
        subj = Subject(name="Базы данных", code="DB", semester=5)
        db.session.add(subj)
        db.session.flush()
        cw = Coursework(title="Проектирование БД", description="Описание темы курсовой",
                        subject_id=subj.id, teacher_id=users["t1"].id, max_students=4)
        db.session.add(cw)
        db.session.commit()
        a1 = services.assign_student(users["s1"].id, cw.id)
        services.assign_student(users["s2"].id, cw.id)
        services.submit(a1.id)
        services.grade(a1.id, 5, "отлично")
        ids = {k: u.id for k, u in users.items()}
        ids["cw"] = cw.id
    yield app, ids
    with app.app_context():
        db.drop_all()


def login(app, email):
    c = app.test_client()
    assert c.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD}).status_code == 200
    return c


def _rows(resp):
    return list(csv.reader(StringIO(resp.get_data(as_text=True)), delimiter=";"))


def test_progress_csv(world):
    app, ids = world
    c = login(app, "t1@example.com")
    r = c.get(f"/api/v1/reports/courseworks/{ids['cw']}/progress.csv")
    assert r.status_code == 200
    assert r.mimetype == "text/csv"
    assert f'coursework_{ids["cw"]}_progress.csv' in r.headers["Content-Disposition"]
    rows = _rows(r)
    assert rows[0] == ["student_id", "student", "status", "assigned_at", "submitted_at", "completed_at", "grade"]
    assert len(rows) == 3
    assert rows[1][1:3] == ["Анна Смирнова", "reviewed"] and rows[1][6] == "5"
    assert rows[2][1:3] == ["Олег Кузнецов", "assigned"] and rows[2][6] == ""


def test_progress_csv_access(world):
    app, ids = world
    assert login(app, "t2@example.com").get(
        f"/api/v1/reports/courseworks/{ids['cw']}/progress.csv").status_code == 403
    assert login(app, "s1@example.com").get(
        f"/api/v1/reports/courseworks/{ids['cw']}/progress.csv").status_code == 403
    admin = login(app, "admin@example.com")
    assert admin.get(f"/api/v1/reports/courseworks/{ids['cw']}/progress.csv").status_code == 200
    assert admin.get("/api/v1/reports/courseworks/9999/progress.csv").status_code == 404


def test_capacity_csv(world):
    app, ids = world
    assert login(app, "t1@example.com").get("/api/v1/reports/courseworks.csv").status_code == 403
    r = login(app, "admin@example.com").get("/api/v1/reports/courseworks.csv")
    assert r.status_code == 200
    rows = _rows(r)
    assert rows[0][0] == "coursework_id"
    assert rows[1] == [str(ids["cw"]), "Проектирование БД", "DB", "Иван Петров", "4", "2", "2", "50.0", "1"]
