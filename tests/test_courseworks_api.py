from __future__ import annotations
import pytest

from app import create_app
from extensions import db
from models import User, Subject, Coursework, Role
from blueprints.assignments.services import assign_student

PASSWORD = "pass123"


def _user(email, role, first, last):
    u = User(email=email, first_name=first, last_name=last, role=role.value, is_active=True)
    u.set_password(PASSWORD)
    db.session.add(u)
    return u


@pytest.fixture()
def world():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        admin = _user("admin@example.com", Role.ADMIN, "Админ", "Системы")
        t1 = _user("t1@example.com", Role.TEACHER, "Иван", "Петров")
        t2 = _user("t2@example.com", Role.TEACHER, "Мария", "Сидорова")
        s1 = _user("s1@example.com", Role.STUDENT, "Анна", "Смирнова")
        s2 = _user("s2@example.com", Role.STUDENT, "Олег", "Кузнецов")
        db_subj = Subject(name="Базы данных", code="DB", semester=5)
        se_subj = Subject(name="Программная инженерия", code="SE", semester=6)
        db.session.add_all([db_subj, se_subj])
        db.session.commit()
        ids = {"admin": admin.id, "t1": t1.id, "t2": t2.id, "s1": s1.id, "s2": s2.id,
               "db": db_subj.id, "se": se_subj.id}
    yield app, ids
    with app.app_context():
        db.drop_all()


def login(app, email):
    c = app.test_client()
    assert c.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD}).status_code == 200
    return c, {"X-CSRF-Token": c.get("/api/v1/auth/csrf").get_json()["csrf_token"]}


def _body(subject_id, **kw):
    body = {"title": "Проектирование БД", "description": "Описание темы курсовой",
            "subject_id": subject_id, "max_students": 2, "difficulty_level": "medium"}
    body.update(kw)
    return body


def test_teacher_creates_for_self(world):
    app, ids = world
    c, h = login(app, "t1@example.com")
    r = c.post("/api/v1/courseworks", json=_body(ids["db"]), headers=h)
    assert r.status_code == 201
    js = r.get_json()
    assert js["teacher"]["id"] == ids["t1"] and js["teacher"]["full_name"] == "Иван Петров"
    assert js["subject"]["code"] == "DB"
    assert (js["enrolled_count"], js["free_slots"]) == (0, 2)
    r = c.post("/api/v1/courseworks", json=_body(ids["db"], teacher_id=ids["t2"]), headers=h)
    assert r.status_code == 403


def test_admin_creates_for_teacher(world):
    app, ids = world
    c, h = login(app, "admin@example.com")
    r = c.post("/api/v1/courseworks", json=_body(ids["db"]), headers=h)
    assert r.status_code == 400 and r.get_json()["error"] == "teacher_required"
    r = c.post("/api/v1/courseworks", json=_body(ids["db"], teacher_id=ids["s1"]), headers=h)
    assert r.status_code == 404
    r = c.post("/api/v1/courseworks", json=_body(ids["db"], teacher_id=ids["t2"]), headers=h)
    assert r.status_code == 201 and r.get_json()["teacher"]["id"] == ids["t2"]


def test_create_validation(world):
    app, ids = world
    c, h = login(app, "t1@example.com")
    assert c.post("/api/v1/courseworks", json=_body(ids["db"], max_students=0), headers=h).status_code == 422
    assert c.post("/api/v1/courseworks", json=_body(ids["db"], difficulty_level="extreme"),
                  headers=h).status_code == 422
    r = c.post("/api/v1/courseworks", json=_body(ids["db"], max_students=11), headers=h)
    assert r.status_code == 400 and r.get_json()["error"] == "max_students_limit"
    assert c.post("/api/v1/courseworks", json=_body(9999), headers=h).status_code == 404
    s, sh = login(app, "s1@example.com")
    assert s.post("/api/v1/courseworks", json=_body(ids["db"]), headers=sh).status_code == 403


def test_list_filters_and_available(world):
    app, ids = world
    c, h = login(app, "admin@example.com")
    full = c.post("/api/v1/courseworks", json=_body(ids["db"], teacher_id=ids["t1"], max_students=1),
                  headers=h).get_json()["id"]
    c.post("/api/v1/courseworks", json=_body(ids["se"], teacher_id=ids["t2"], difficulty_level="hard"),
           headers=h)
    closed = c.post("/api/v1/courseworks", json=_body(ids["se"], teacher_id=ids["t2"], is_available=False),
                    headers=h).get_json()["id"]
    with app.app_context():
        assign_student(ids["s1"], full)

    s, _ = login(app, "s2@example.com")
    assert s.get("/api/v1/courseworks").get_json()["meta"]["total"] == 3
    assert s.get(f"/api/v1/courseworks?subject_id={ids['se']}").get_json()["meta"]["total"] == 2
    assert s.get(f"/api/v1/courseworks?teacher_id={ids['t1']}").get_json()["meta"]["total"] == 1
    assert s.get("/api/v1/courseworks?difficulty=hard").get_json()["meta"]["total"] == 1
    assert s.get("/api/v1/courseworks?available=false").get_json()["items"][0]["id"] == closed
    avail = s.get("/api/v1/courseworks/available").get_json()["items"]
    # заполненная и закрытая темы не показываются
    assert {cw["id"] for cw in avail}.isdisjoint({full, closed})
    assert len(avail) == 1
    assert s.get(f"/api/v1/courseworks/{full}").get_json()["free_slots"] == 0


def test_update_and_ownership(world):
    app, ids = world
    c, h = login(app, "t1@example.com")
    cid = c.post("/api/v1/courseworks", json=_body(ids["db"]), headers=h).get_json()["id"]
    r = c.put(f"/api/v1/courseworks/{cid}", json={"title": "Новая тема курсовой", "max_students": 3}, headers=h)
    assert r.status_code == 200
    assert r.get_json()["title"] == "Новая тема курсовой" and r.get_json()["max_students"] == 3

    o, oh = login(app, "t2@example.com")
    assert o.put(f"/api/v1/courseworks/{cid}", json={"title": "Чужая тема курсовой"}, headers=oh).status_code == 403
    assert o.put(f"/api/v1/courseworks/{cid}/availability", json={"is_available": False},
                 headers=oh).status_code == 403
    a, ah = login(app, "admin@example.com")
    assert a.put(f"/api/v1/courseworks/{cid}/availability", json={"is_available": False},
                 headers=ah).status_code == 204
    assert c.get(f"/api/v1/courseworks/{cid}").get_json()["is_available"] is False


def test_max_students_below_enrollment(world):
    app, ids = world
    c, h = login(app, "t1@example.com")
    cid = c.post("/api/v1/courseworks", json=_body(ids["db"], max_students=3), headers=h).get_json()["id"]
    with app.app_context():
        assign_student(ids["s1"], cid)
        assign_student(ids["s2"], cid)
    r = c.put(f"/api/v1/courseworks/{cid}", json={"max_students": 1}, headers=h)
    assert r.status_code == 409
    js = r.get_json()
    assert js["error"] == "capacity_below_enrollment" and js["enrolled_count"] == 2
    assert c.put(f"/api/v1/courseworks/{cid}", json={"max_students": 2}, headers=h).status_code == 200


def test_delete(world):
    app, ids = world
    c, h = login(app, "t1@example.com")
    cid = c.post("/api/v1/courseworks", json=_body(ids["db"]), headers=h).get_json()["id"]
    with app.app_context():
        assign_student(ids["s1"], cid)
    r = c.delete(f"/api/v1/courseworks/{cid}", headers=h)
    assert r.status_code == 409 and r.get_json()["error"] == "coursework_in_use"

    other = c.post("/api/v1/courseworks", json=_body(ids["db"]), headers=h).get_json()["id"]
    assert c.delete(f"/api/v1/courseworks/{other}", headers=h).status_code == 204
    assert c.get(f"/api/v1/courseworks/{other}").status_code == 404
    assert c.delete(f"/api/v1/courseworks/{other}", headers=h).status_code == 404
    with app.app_context():
        # мягкое удаление: строка осталась
        assert db.session.get(Coursework, other).deleted_at is not None
