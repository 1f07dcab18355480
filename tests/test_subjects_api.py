from __future__ import annotations
import pytest

from app import create_app
from extensions import db
from models import User, Role

PASSWORD = "pass123"


@pytest.fixture()
def world():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        users = {}
        for email, role in [("admin@example.com", Role.ADMIN), ("t1@example.com", Role.TEACHER),
                            ("t2@example.com", Role.TEACHER), ("s@example.com", Role.STUDENT)]:
            u = User(email=email, first_name="Тест", last_name=email.split("@")[0],
                     role=role.value, is_active=True)
            u.set_password(PASSWORD)
            db.session.add(u)
            users[email] = u
        db.session.commit()
        ids = {k.split("@")[0]: u.id for k, u in users.items()}
    yield app, ids
    with app.app_context():
        db.drop_all()


def login(app, email):
    c = app.test_client()
    assert c.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD}).status_code == 200
    return c, {"X-CSRF-Token": c.get("/api/v1/auth/csrf").get_json()["csrf_token"]}


def _create(c, h, code="db", name="Базы данных", semester=5):
    return c.post("/api/v1/subjects", json={"code": code, "name": name, "semester": semester}, headers=h)


def test_crud(world):
    app, _ = world
    c, h = login(app, "admin@example.com")
    r = _create(c, h)
    assert r.status_code == 201
    sid = r.get_json()["id"]
    assert r.get_json()["code"] == "DB"
    r = _create(c, h, code="DB", name="Другое имя")
    assert r.status_code == 409 and r.get_json()["error"] == "subject_code_taken"
    r = c.put(f"/api/v1/subjects/{sid}", json={"semester": 6}, headers=h)
    assert r.status_code == 200 and r.get_json()["semester"] == 6
    assert _create(c, h, code="X", semester=13).status_code == 422
    assert c.delete(f"/api/v1/subjects/{sid}", headers=h).status_code == 204
    assert c.get(f"/api/v1/subjects/{sid}").status_code == 404


def test_read_for_everyone_write_for_admin(world):
    app, _ = world
    a, ah = login(app, "admin@example.com")
    _create(a, ah)
    _create(a, ah, code="SE", name="Программная инженерия", semester=6)
    s, sh = login(app, "s@example.com")
    js = s.get("/api/v1/subjects").get_json()
    assert [x["code"] for x in js["items"]] == ["DB", "SE"]
    assert s.get("/api/v1/subjects?semester=6").get_json()["meta"]["total"] == 1
    assert _create(s, sh, code="ML").status_code == 403


def test_teachers_link(world):
    app, ids = world
    c, h = login(app, "admin@example.com")
    sid = _create(c, h).get_json()["id"]
    r = c.post(f"/api/v1/subjects/{sid}/teachers", json={"teacher_ids": [ids["t1"], ids["t2"]]}, headers=h)
    assert r.status_code == 200
    assert [t["id"] for t in r.get_json()["teachers"]] == [ids["t1"], ids["t2"]]
    # повторная привязка не дублирует
    r = c.post(f"/api/v1/subjects/{sid}/teachers", json={"teacher_ids": [ids["t1"]]}, headers=h)
    assert len(r.get_json()["teachers"]) == 2

    r = c.post(f"/api/v1/subjects/{sid}/teachers", json={"teacher_ids": [ids["s"], 9999]}, headers=h)
    assert r.status_code == 400
    js = r.get_json()
    assert js["error"] == "invalid_teachers"
    assert js["missing"] == [9999] and js["not_teachers"] == [ids["s"]]

    assert c.delete(f"/api/v1/subjects/{sid}/teachers/{ids['t1']}", headers=h).status_code == 204
    assert c.delete(f"/api/v1/subjects/{sid}/teachers/{ids['t1']}", headers=h).status_code == 404
    teachers = c.get(f"/api/v1/subjects/{sid}").get_json()["teachers"]
    assert [t["id"] for t in teachers] == [ids["t2"]]


def test_delete_subject_with_courseworks(world):
    app, ids = world
    c, h = login(app, "admin@example.com")
    sid = _create(c, h).get_json()["id"]
    r = c.post("/api/v1/courseworks", json={
        "title": "Проектирование БД", "description": "Описание темы курсовой",
        "subject_id": sid, "teacher_id": ids["t1"],
    }, headers=h)
    assert r.status_code == 201
    r = c.delete(f"/api/v1/subjects/{sid}", headers=h)
    assert r.status_code == 409 and r.get_json()["error"] == "subject_in_use"
