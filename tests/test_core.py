from __future__ import annotations
import json
import logging

from app import create_app
from blueprints.core.routes import JSONFormatter

def test_health_ok():
    app = create_app("test")
    with app.test_client() as c:
        rv = c.get("/health")
        assert rv.status_code == 200
        data = rv.get_json()
        assert data["status"] == "ok"
        assert data["ts"].endswith("Z")

def test_request_is_logged(caplog):
    app = create_app("test")
    caplog.set_level(logging.INFO, logger="blueprints.core")
    with app.test_client() as c:
        c.get("/health")
    records = [r for r in caplog.records if getattr(r, "event", None) == "http_request"]
    assert records
    assert records[-1].path == "/health"
    assert records[-1].status == 200
    assert records[-1].actor_id is None

def test_csrf_endpoint_returns_token():
    app = create_app("test")
    with app.test_client() as c:
        rv = c.get("/api/v1/csrf")
        assert rv.status_code == 200
        assert rv.get_json()["csrf"]

def test_api_404_is_json():
    app = create_app("test")
    with app.test_client() as c:
        rv = c.get("/api/v1/nowhere")
        assert rv.status_code == 404
        assert rv.get_json()["error"] == "not_found"

def test_json_formatter_keeps_context_fields():
    record = logging.LogRecord("blueprints.assignments.services", logging.INFO, __file__, 1,
                               "teacher assigned to campus", None, None)
    record.event = "assignment.assign"
    record.campus_id = "c1"
    payload = json.loads(JSONFormatter().format(record))
    assert payload["level"] == "INFO"
    assert payload["msg"] == "teacher assigned to campus"
    assert payload["event"] == "assignment.assign"
    assert payload["campus_id"] == "c1"
    assert "actor_id" not in payload
