# blueprints/teacher/routes.py
from __future__ import annotations

from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user

from blueprints.auth.routes import admin_required
from extensions import db
from .schemas import TeacherStatusIn
from .services import TeacherService

api_bp = Blueprint("teacher_api", __name__)

def teacher_service() -> TeacherService:
    return TeacherService(db.session)

@api_bp.post("/teachers")
@admin_required
def api_teacher_upsert():
    payload = request.get_json(silent=True) or {}
    out = teacher_service().upsert_teacher(payload, actor_id=current_user.id)
    return jsonify(out)

@api_bp.get("/teachers/<teacher_id>")
@login_required
def api_teacher_profile(teacher_id: str):
    return jsonify(teacher_service().get_teacher_profile(teacher_id))

@api_bp.patch("/teachers/<teacher_id>/status")
@admin_required
def api_teacher_status(teacher_id: str):
    data = TeacherStatusIn.model_validate(request.get_json(silent=True) or {})
    out = teacher_service().update_teacher_status(teacher_id, data.status, actor_id=current_user.id)
    return jsonify(out)
