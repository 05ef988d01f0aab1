from __future__ import annotations
import pytest

from app import create_app
from blueprints.campus.authz import AuthorizationService, seed_roles
from extensions import db
from models import (
    Campus, CampusRole, StudentCampus, StudentProfile, TeacherCampus, TeacherProfile, User, UserType,
)

def _user(uid, user_type):
    u = User(id=uid, name=uid.upper(), email=f"{uid}@example.com", user_type=user_type)
    u.set_password("pass")
    return u

@pytest.fixture()
def app_ctx():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        seed_roles(db.session)
        db.session.add_all([
            Campus(id="c1", name="Campus One", code="C1"),
            Campus(id="c2", name="Campus Two", code="C2"),
            _user("mgr", UserType.ADMIN),
            _user("coord", UserType.COORDINATOR),
            _user("tu1", UserType.TEACHER),
            _user("su1", UserType.STUDENT),
        ])
        db.session.flush()
        db.session.add_all([TeacherProfile(id="t1", user_id="tu1"), StudentProfile(id="s1", user_id="su1")])
        authz = AuthorizationService(db.session)
        authz.grant_role("mgr", "c1", CampusRole.CAMPUS_MANAGER)
        authz.grant_role("mgr", "c2", CampusRole.CAMPUS_MANAGER)
        authz.grant_role("coord", "c1", CampusRole.CAMPUS_COORDINATOR)
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture()
def client(app_ctx):
    return app_ctx.test_client()

def login_as(client, uid):
    r = client.post("/api/v1/auth/login", json={"email": f"{uid}@example.com", "password": "pass"})
    assert r.status_code == 200

def test_requires_login(client):
    r = client.get("/api/v1/campuses/c1/teachers")
    assert r.status_code == 401

def test_assign_and_list_teacher(client):
    login_as(client, "mgr")
    r = client.post("/api/v1/campuses/c1/teachers", json={"teacher_id": "t1", "is_primary": True})
    assert r.status_code == 201
    js = r.get_json()
    assert js["teacher_id"] == "t1" and js["is_primary"] is True and js["status"] == "ACTIVE"

    r = client.get("/api/v1/campuses/c1/teachers")
    assert r.status_code == 200
    items = r.get_json()["items"]
    assert [i["teacher_id"] for i in items] == ["t1"]
    assert items[0]["classes"] == []

def test_duplicate_is_409(client):
    login_as(client, "mgr")
    assert client.post("/api/v1/campuses/c1/teachers", json={"teacher_id": "t1"}).status_code == 201
    r = client.post("/api/v1/campuses/c1/teachers", json={"teacher_id": "t1"})
    assert r.status_code == 409
    assert r.get_json()["error"] == "already_assigned"

def test_forbidden_is_403(client):
    login_as(client, "coord")
    r = client.post("/api/v1/campuses/c1/teachers", json={"teacher_id": "t1"})
    assert r.status_code == 403
    assert r.get_json()["error"] == "forbidden"

def test_missing_teacher_is_404(client):
    login_as(client, "mgr")
    r = client.post("/api/v1/campuses/c1/teachers", json={"teacher_id": "nope"})
    assert r.status_code == 404
    assert r.get_json()["error"] == "teacher_not_found"

def test_invalid_body_is_422(client):
    login_as(client, "mgr")
    r = client.post("/api/v1/campuses/c1/teachers", json={})
    assert r.status_code == 422
    assert r.get_json()["error"] == "validation_error"
    r = client.patch("/api/v1/campuses/c1/teachers/t1/status", json={"status": "ARCHIVED"})
    assert r.status_code == 422

def test_status_primary_and_remove_flow(client):
    login_as(client, "mgr")
    client.post("/api/v1/campuses/c1/teachers", json={"teacher_id": "t1", "is_primary": True})
    client.post("/api/v1/campuses/c2/teachers", json={"teacher_id": "t1"})

    r = client.put("/api/v1/teachers/t1/primary-campus", json={"campus_id": "c2"})
    assert r.status_code == 200 and r.get_json()["is_primary"] is True

    r = client.patch("/api/v1/campuses/c1/teachers/t1/status", json={"status": "INACTIVE"})
    assert r.status_code == 200 and r.get_json()["status"] == "INACTIVE"

    assert [i["campus_id"] for i in client.get("/api/v1/teachers/t1/campuses").get_json()["items"]] == ["c2"]
    r = client.get("/api/v1/teachers/t1/campuses?include_inactive=1")
    assert [(i["campus_id"], i["is_primary"]) for i in r.get_json()["items"]] == [("c2", True), ("c1", False)]

    r = client.delete("/api/v1/campuses/c2/teachers/t1")
    assert r.status_code == 200 and r.get_json() == {"success": True}
    assert client.delete("/api/v1/campuses/c2/teachers/t1").status_code == 404

def test_deleting_campus_drops_its_assignments(client):
    # mgr is an ADMIN user, so the campus delete route lets it through
    login_as(client, "mgr")
    client.post("/api/v1/campuses/c1/teachers", json={"teacher_id": "t1", "is_primary": True})
    client.post("/api/v1/campuses/c2/teachers", json={"teacher_id": "t1"})
    client.post("/api/v1/campuses/c1/students", json={"student_id": "s1"})

    assert client.delete("/api/v1/campuses/c1").status_code == 204
    assert db.session.query(TeacherCampus).filter_by(campus_id="c1").count() == 0
    assert db.session.query(StudentCampus).count() == 0

    r = client.get("/api/v1/teachers/t1/campuses")
    assert r.status_code == 200
    assert [(i["campus_id"], i["is_primary"]) for i in r.get_json()["items"]] == [("c2", False)]

def test_teacher_self_service_primary(client):
    login_as(client, "mgr")
    client.post("/api/v1/campuses/c1/teachers", json={"teacher_id": "t1"})
    client.post("/api/v1/campuses/c2/teachers", json={"teacher_id": "t1", "is_primary": True})
    client.post("/api/v1/auth/logout")

    login_as(client, "tu1")
    r = client.put("/api/v1/teachers/t1/primary-campus", json={"campus_id": "c1"})
    assert r.status_code == 200 and r.get_json()["campus_id"] == "c1"
    mine = client.get("/api/v1/teachers/t1/campuses").get_json()["items"]
    assert mine[0]["campus_id"] == "c1" and mine[0]["is_primary"] is True

def test_student_routes(client):
    login_as(client, "mgr")
    r = client.post("/api/v1/campuses/c1/students", json={"student_id": "s1", "is_primary": True})
    assert r.status_code == 201 and r.get_json()["student_id"] == "s1"
    items = client.get("/api/v1/campuses/c1/students").get_json()["items"]
    assert len(items) == 1 and "classes" not in items[0]
    client.post("/api/v1/auth/logout")

    login_as(client, "su1")
    assert client.put("/api/v1/students/s1/primary-campus", json={"campus_id": "c1"}).status_code == 403
    assert client.get("/api/v1/students/s1/campuses").status_code == 200
