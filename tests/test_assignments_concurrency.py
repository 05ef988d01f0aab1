from __future__ import annotations
import threading

import pytest
from sqlalchemy import select

from app import create_app
from blueprints.assignments.services import CampusTeacherService
from blueprints.core.errors import TransactionFailure
from extensions import db
from models import Campus, Status, TeacherCampus, TeacherProfile, User, UserType

N = 6

@pytest.fixture()
def file_app(tmp_path):
    # threads need a database they can all open; in-memory SQLite is per connection
    app = create_app("test", config_overrides={
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'concurrency.db'}",
        "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30, "check_same_thread": False}},
    })
    with app.app_context():
        db.create_all()
        root = User(id="root", email="root@example.com", user_type=UserType.SUPER_ADMIN)
        root.set_password("pass")
        tu = User(id="tu1", email="tu1@example.com", user_type=UserType.TEACHER)
        tu.set_password("pass")
        db.session.add_all([root, tu])
        db.session.add_all(Campus(id=f"c{i}", name=f"Campus {i}", code=f"C{i}") for i in range(N))
        db.session.flush()
        db.session.add(TeacherProfile(id="t1", user_id="tu1"))
        db.session.commit()
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()

def test_concurrent_primary_assignments_leave_one_primary(file_app):
    barrier = threading.Barrier(N)
    outcomes: list = []
    lock = threading.Lock()

    def worker(campus_id):
        with file_app.app_context():
            barrier.wait()
            try:
                CampusTeacherService(db.session).assign("root", campus_id, "t1", is_primary=True)
                result = "ok"
            except TransactionFailure:
                # a lost race is reported, never half applied
                result = "failed"
            finally:
                db.session.remove()
            with lock:
                outcomes.append((campus_id, result))

    threads = [threading.Thread(target=worker, args=(f"c{i}",)) for i in range(N)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=120)

    assert len(outcomes) == N
    succeeded = {cid for cid, result in outcomes if result == "ok"}
    assert succeeded

    with file_app.app_context():
        rows = db.session.scalars(select(TeacherCampus).where(TeacherCampus.teacher_id == "t1")).all()
        assert {r.campus_id for r in rows} == succeeded
        primaries = [r for r in rows if r.is_primary and r.status == Status.ACTIVE]
        assert len(primaries) == 1
