# blueprints/auth/routes.py
from __future__ import annotations
from functools import wraps
from typing import Callable, Optional

from flask import Blueprint, request, jsonify, abort, current_app
from flask_login import login_user, logout_user, login_required, current_user

from extensions import db, login_manager
from models import User, UserType

bp = Blueprint("auth", __name__)
api_bp = Blueprint("auth_api", __name__)

ADMIN_TYPES = (UserType.SUPER_ADMIN, UserType.ADMIN)

@login_manager.user_loader
def load_user(uid: str) -> Optional[User]:
    return db.session.get(User, uid)

# ---------- role decorators ----------
def admin_required(fn: Callable):
    @wraps(fn)
    @login_required
    def wrapper(*args, **kwargs):
        if getattr(current_user, "user_type", None) not in ADMIN_TYPES:
            abort(403)
        return fn(*args, **kwargs)
    return wrapper

# ---------- 401 ----------
@login_manager.unauthorized_handler
def _unauth():
    if current_app.config.get("TESTING") or request.path.startswith("/api/") \
            or request.accept_mimetypes.accept_json:
        return jsonify({"error": "unauthorized"}), 401
    abort(401)

# ping routes for role checks
@bp.get("/ping-admin")
@admin_required
def ping_admin():
    return jsonify(ok=True, user_type=current_user.user_type.value)

# ---------- API ----------
@api_bp.post("/auth/login")
def api_login():
    payload = request.get_json(silent=True) or request.form or {}
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""

    if not email or not password:
        return jsonify({"error": "missing_credentials"}), 400

    user: Optional[User] = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        return jsonify({"error": "invalid_credentials"}), 401

    if not user.is_active:
        return jsonify({"error": "inactive"}), 403

    login_user(user, remember=True)
    return jsonify({"ok": True, "user": {"id": user.id, "email": user.email,
                                         "user_type": user.user_type.value}})

@api_bp.post("/auth/logout")
@login_required
def api_logout():
    logout_user()
    return jsonify({"ok": True})
