from __future__ import annotations
import json
import logging
from datetime import datetime

import pytest

from app import create_app
from blueprints.core.http import iso_z
from blueprints.core.routes import JSONFormatter, REQUEST_ID_HEADER


@pytest.fixture()
def client():
    app = create_app("test")
    return app.test_client()


def test_health_ok(client):
    rv = client.get("/health")
    assert rv.status_code == 200
    data = rv.get_json()
    assert data["status"] == "ok"
    assert data["ts"].endswith("Z")
    assert data["request_id"]


def test_request_id_is_echoed(client):
    rv = client.get("/health", headers={REQUEST_ID_HEADER: "abc123"})
    assert rv.headers[REQUEST_ID_HEADER] == "abc123"
    assert rv.get_json()["request_id"] == "abc123"


def test_request_id_generated(client):
    rv = client.get("/health")
    rid = rv.headers[REQUEST_ID_HEADER]
    assert len(rid) == 32


def test_unknown_route_is_json_404(client):
    rv = client.get("/nope")
    assert rv.status_code == 404
    assert rv.get_json()["error"] == "not_found"


def test_method_not_allowed_is_json(client):
    rv = client.post("/health")
    assert rv.status_code == 405
    assert rv.get_json()["error"] == "method_not_allowed"


def test_json_formatter_includes_extra_fields():
    rec = logging.LogRecord("blueprints.assignments.services", logging.INFO, __file__, 1,
                            "student assigned", None, None)
    rec.event = "assigned"
    rec.assignment_id = 7
    rec.coursework_id = 3
    out = json.loads(JSONFormatter().format(rec))
    assert out["msg"] == "student assigned"
    assert out["level"] == "INFO"
    assert out["event"] == "assigned"
    assert out["assignment_id"] == 7 and out["coursework_id"] == 3
    assert "student_id" not in out


def test_iso_z():
    assert iso_z(None) is None
    assert iso_z(datetime(2024, 9, 1, 10, 30, 15, 123456)) == "2024-09-01T10:30:15Z"
