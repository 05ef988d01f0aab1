from __future__ import annotations
import pytest

from app import create_app
from extensions import db
from models import Status, User, UserType

def _user(email, password, user_type, status=Status.ACTIVE):
    u = User(email=email, name=email.split("@")[0], user_type=user_type, status=status)
    u.set_password(password)
    return u

@pytest.fixture()
def client_app():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        db.session.add_all([
            _user("admin@example.com", "adminpass", UserType.SUPER_ADMIN),
            _user("teacher@example.com", "teachpass", UserType.TEACHER),
            _user("gone@example.com", "gonepass", UserType.TEACHER, status=Status.INACTIVE),
        ])
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture()
def client(client_app):
    return client_app.test_client()

def _login(client, email, password):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password})

def test_unauthorized_401(client):
    r = client.get("/auth/ping-admin")
    assert r.status_code == 401
    assert r.get_json()["error"] == "unauthorized"

def test_forbidden_403(client):
    r = _login(client, "teacher@example.com", "teachpass")
    assert r.status_code == 200
    r2 = client.get("/auth/ping-admin")
    assert r2.status_code == 403

def test_login_success_and_ping_admin(client):
    r = _login(client, "admin@example.com", "adminpass")
    assert r.status_code == 200
    js = r.get_json()
    assert js["ok"] is True and js["user"]["user_type"] == "SUPER_ADMIN"

    r2 = client.get("/auth/ping-admin")
    assert r2.status_code == 200
    assert r2.get_json()["user_type"] == "SUPER_ADMIN"

def test_login_errors(client):
    assert _login(client, "", "").get_json()["error"] == "missing_credentials"
    r = _login(client, "admin@example.com", "wrong")
    assert r.status_code == 401 and r.get_json()["error"] == "invalid_credentials"
    r = _login(client, "gone@example.com", "gonepass")
    assert r.status_code == 403 and r.get_json()["error"] == "inactive"

def test_logout(client):
    assert _login(client, "teacher@example.com", "teachpass").status_code == 200
    r = client.post("/api/v1/auth/logout")
    assert r.status_code == 200
    assert client.get("/auth/ping-admin").status_code == 401
