from __future__ import annotations
import pytest

from app import create_app
from extensions import db
from models import Campus, User, UserType

@pytest.fixture()
def client():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        admin = User(id="root", email="admin@example.com", user_type=UserType.ADMIN)
        admin.set_password("pass")
        tu = User(id="tu1", name="Tess", email="teacher@example.com", user_type=UserType.TEACHER)
        tu.set_password("pass")
        db.session.add_all([admin, tu, Campus(id="c1", name="Campus One", code="C1")])
        db.session.commit()
        yield app.test_client()
        db.session.remove()
        db.drop_all()

def login_as(client, email):
    r = client.post("/api/v1/auth/login", json={"email": email, "password": "pass"})
    assert r.status_code == 200

def test_upsert_requires_admin(client):
    login_as(client, "teacher@example.com")
    r = client.post("/api/v1/teachers", json={"profile": {"user_id": "tu1"}})
    assert r.status_code == 403

def test_upsert_get_and_status(client):
    login_as(client, "admin@example.com")
    r = client.post("/api/v1/teachers", json={
        "profile": {"user_id": "tu1", "teacher_type": "CLASS"},
        "assignments": [{"campus_id": "c1", "is_primary": True}],
    })
    assert r.status_code == 200
    teacher = r.get_json()
    assert teacher["user"]["name"] == "Tess"
    assert teacher["campuses"][0]["is_primary"] is True

    assert client.get(f"/api/v1/teachers/{teacher['id']}").get_json()["id"] == teacher["id"]
    r = client.patch(f"/api/v1/teachers/{teacher['id']}/status", json={"status": "INACTIVE"})
    assert r.status_code == 200
    assert r.get_json()["campuses"][0]["status"] == "INACTIVE"

def test_bad_payloads(client):
    login_as(client, "admin@example.com")
    r = client.post("/api/v1/teachers", json={"profile": {"user_id": "tu1"}, "assignments": [
        {"campus_id": "c1", "is_primary": True}, {"campus_id": "c1"}]})
    assert r.status_code == 400 and r.get_json()["error"] == "invalid_teacher_data"
    assert client.get("/api/v1/teachers/missing").status_code == 404
    assert client.patch("/api/v1/teachers/missing/status", json={"status": "NOPE"}).status_code == 422
