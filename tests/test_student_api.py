from __future__ import annotations
import pytest

from app import create_app
from extensions import db
from models import Campus, Class, User, UserType

@pytest.fixture()
def client():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        admin = User(email="admin@example.com", user_type=UserType.ADMIN)
        admin.set_password("pass")
        viewer = User(email="viewer@example.com", user_type=UserType.COORDINATOR)
        viewer.set_password("pass")
        db.session.add_all([admin, viewer, Campus(id="c1", name="Campus One", code="C1")])
        db.session.flush()
        db.session.add_all([Class(id="k1", name="Nursery A", campus_id="c1"),
                            Class(id="k2", name="Nursery B", campus_id="c1")])
        db.session.commit()
        yield app.test_client()
        db.session.remove()
        db.drop_all()

def login_as(client, email):
    r = client.post("/api/v1/auth/login", json={"email": email, "password": "pass"})
    assert r.status_code == 200

NEW = {"name": "Sam Student", "email": "sam@example.com", "password": "s3cret-pass",
       "date_of_birth": "2021-03-14", "class_id": "k1"}

def test_student_crud_flow(client):
    login_as(client, "admin@example.com")
    r = client.post("/api/v1/students", json=NEW)
    assert r.status_code == 201
    sid = r.get_json()["id"]

    assert client.get(f"/api/v1/students/{sid}").get_json()["class"]["id"] == "k1"
    r = client.put(f"/api/v1/students/{sid}/class", json={"class_id": "k2"})
    assert r.status_code == 200 and r.get_json()["class"]["id"] == "k2"
    r = client.put(f"/api/v1/students/{sid}", json={"name": "Samuel", "email": "sam@example.com",
                                                    "date_of_birth": "2021-03-14"})
    assert r.status_code == 200 and r.get_json()["class"] is None

    js = client.get("/api/v1/students?q=samuel").get_json()
    assert js["meta"]["total"] == 1

    assert client.delete(f"/api/v1/students/{sid}").get_json() == {"success": True}
    assert client.get(f"/api/v1/students/{sid}").status_code == 404

def test_errors(client):
    login_as(client, "admin@example.com")
    assert client.post("/api/v1/students", json=NEW).status_code == 201
    r = client.post("/api/v1/students", json=NEW)
    assert r.status_code == 409 and r.get_json()["error"] == "email_exists"
    r = client.post("/api/v1/students", json={"name": "x"})
    assert r.status_code == 400 and r.get_json()["error"] == "invalid_student_data"
    assert client.get("/api/v1/students?per_page=0").status_code == 422

def test_writes_require_admin(client):
    login_as(client, "viewer@example.com")
    assert client.post("/api/v1/students", json=NEW).status_code == 403
    assert client.get("/api/v1/students").status_code == 200
