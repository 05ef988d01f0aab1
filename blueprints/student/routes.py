# blueprints/student/routes.py
from __future__ import annotations

from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user

from blueprints.auth.routes import admin_required
from extensions import db
from .schemas import StudentClassIn, StudentSearchIn
from .services import StudentService

api_bp = Blueprint("student_api", __name__)

def student_service() -> StudentService:
    return StudentService(db.session)

@api_bp.get("/students")
@login_required
def api_students_search():
    params = StudentSearchIn.model_validate(request.args.to_dict())
    return jsonify(student_service().search_students(params))

@api_bp.post("/students")
@admin_required
def api_student_create():
    out = student_service().create_student(request.get_json(silent=True) or {}, actor_id=current_user.id)
    return jsonify(out), 201

@api_bp.get("/students/<student_id>")
@login_required
def api_student_profile(student_id: str):
    return jsonify(student_service().get_student_profile(student_id))

@api_bp.put("/students/<student_id>")
@admin_required
def api_student_update(student_id: str):
    payload = request.get_json(silent=True) or {}
    return jsonify(student_service().update_student(student_id, payload, actor_id=current_user.id))

@api_bp.put("/students/<student_id>/class")
@admin_required
def api_student_assign_class(student_id: str):
    data = StudentClassIn.model_validate(request.get_json(silent=True) or {})
    return jsonify(student_service().assign_to_class(student_id, data.class_id, actor_id=current_user.id))

@api_bp.delete("/students/<student_id>")
@admin_required
def api_student_delete(student_id: str):
    return jsonify(student_service().delete_student(student_id, actor_id=current_user.id))
