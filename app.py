from __future__ import annotations
import os
from importlib import import_module
from typing import Any
from flask import Flask
from config import config_map
from extensions import db, migrate, login_manager, csrf
from sqlalchemy import event, inspect

def _sqlite_foreign_keys(dbapi_conn, _record):
    # SQLite ignores ON DELETE CASCADE unless enabled per connection
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

def _enable_foreign_keys(app):
    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            event.listen(db.engine, "connect", _sqlite_foreign_keys)

def _seed_from_config(app):
    if not app.config.get("SEED_TEST_DATA"):
        return
    with app.app_context():
        # the users table may not exist yet (before alembic upgrade etc.)
        if not inspect(db.engine).has_table("users"):
            return

        from models import User, UserType  # local import to avoid cycles
        from blueprints.campus.authz import seed_roles
        created = 0
        for u in app.config.get("DEFAULT_USERS", []):
            if User.query.filter_by(email=u["email"]).first():
                continue
            user = User(email=u["email"], name=u.get("name"), user_type=UserType(u["user_type"]))
            user.set_password(u["password"])
            db.session.add(user)
            created += 1
        if inspect(db.engine).has_table("roles"):
            created += seed_roles(db.session)
        if created:
            db.session.commit()

def register_blueprints(app: Flask) -> None:
    # core routes must be imported before taking bp
    import_module("blueprints.core.routes")
    from blueprints.core import bp as core_bp, api_bp as core_api_bp
    from blueprints.auth.routes import bp as auth_bp, api_bp as auth_api_bp
    from blueprints.campus.routes import api_bp as campus_api_bp
    from blueprints.assignments.routes import api_bp as assignments_api_bp
    from blueprints.teacher.routes import api_bp as teacher_api_bp
    from blueprints.student.routes import api_bp as student_api_bp

    # core without prefix: '/health' at the root
    app.register_blueprint(core_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(core_api_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_api_bp, url_prefix="/api/v1")
    app.register_blueprint(campus_api_bp, url_prefix="/api/v1")
    app.register_blueprint(assignments_api_bp, url_prefix="/api/v1")
    app.register_blueprint(teacher_api_bp, url_prefix="/api/v1")
    app.register_blueprint(student_api_bp, url_prefix="/api/v1")

def create_app(config_name: str | None = None, config_overrides: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    cfg_name = config_name or os.getenv("FLASK_CONFIG", "default")
    app.config.from_object(config_map[cfg_name])
    # engine options are read once in db.init_app, so overrides go in first
    if config_overrides:
        app.config.update(config_overrides)

    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass
    db.init_app(app)
    _enable_foreign_keys(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)

    from blueprints.core.errors import register_error_handlers
    register_error_handlers(app)
    register_blueprints(app)
    _seed_from_config(app)
    return app
