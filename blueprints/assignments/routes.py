# blueprints/assignments/routes.py
from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from extensions import db
from .schemas import AssignmentStatusIn, PrimaryCampusIn, StudentAssignIn, TeacherAssignIn
from .services import CampusStudentService, CampusTeacherService

api_bp = Blueprint("assignments_api", __name__)

def teacher_assignments() -> CampusTeacherService:
    return CampusTeacherService(db.session)

def student_assignments() -> CampusStudentService:
    return CampusStudentService(db.session)

def _actor_id() -> str:
    return current_user.id

def _flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in ("1", "true", "yes", "on")

def _body() -> dict:
    return request.get_json(silent=True) or {}

def _items(outs):
    return jsonify({"items": [o.to_dict() for o in outs]})

# ---------- teachers ----------
@api_bp.post("/campuses/<campus_id>/teachers")
@login_required
def teacher_assign(campus_id: str):
    data = TeacherAssignIn.model_validate(_body())
    out = teacher_assignments().assign(_actor_id(), campus_id, data.teacher_id, data.is_primary)
    return jsonify(out.to_dict()), 201

@api_bp.get("/campuses/<campus_id>/teachers")
@login_required
def teacher_list_for_campus(campus_id: str):
    return _items(teacher_assignments().list_for_campus(_actor_id(), campus_id, _flag("include_inactive")))

@api_bp.delete("/campuses/<campus_id>/teachers/<teacher_id>")
@login_required
def teacher_remove(campus_id: str, teacher_id: str):
    return jsonify(teacher_assignments().remove(_actor_id(), campus_id, teacher_id))

@api_bp.patch("/campuses/<campus_id>/teachers/<teacher_id>/status")
@login_required
def teacher_update_status(campus_id: str, teacher_id: str):
    data = AssignmentStatusIn.model_validate(_body())
    out = teacher_assignments().update_status(_actor_id(), campus_id, teacher_id, data.status)
    return jsonify(out.to_dict())

@api_bp.put("/teachers/<teacher_id>/primary-campus")
@login_required
def teacher_set_primary(teacher_id: str):
    data = PrimaryCampusIn.model_validate(_body())
    out = teacher_assignments().set_primary(_actor_id(), teacher_id, data.campus_id)
    return jsonify(out.to_dict())

@api_bp.get("/teachers/<teacher_id>/campuses")
@login_required
def teacher_list_for_person(teacher_id: str):
    return _items(teacher_assignments().list_for_person(_actor_id(), teacher_id, _flag("include_inactive")))

# ---------- students ----------
@api_bp.post("/campuses/<campus_id>/students")
@login_required
def student_assign(campus_id: str):
    data = StudentAssignIn.model_validate(_body())
    out = student_assignments().assign(_actor_id(), campus_id, data.student_id, data.is_primary)
    return jsonify(out.to_dict()), 201

@api_bp.get("/campuses/<campus_id>/students")
@login_required
def student_list_for_campus(campus_id: str):
    return _items(student_assignments().list_for_campus(_actor_id(), campus_id, _flag("include_inactive")))

@api_bp.delete("/campuses/<campus_id>/students/<student_id>")
@login_required
def student_remove(campus_id: str, student_id: str):
    return jsonify(student_assignments().remove(_actor_id(), campus_id, student_id))

@api_bp.patch("/campuses/<campus_id>/students/<student_id>/status")
@login_required
def student_update_status(campus_id: str, student_id: str):
    data = AssignmentStatusIn.model_validate(_body())
    out = student_assignments().update_status(_actor_id(), campus_id, student_id, data.status)
    return jsonify(out.to_dict())

@api_bp.put("/students/<student_id>/primary-campus")
@login_required
def student_set_primary(student_id: str):
    data = PrimaryCampusIn.model_validate(_body())
    out = student_assignments().set_primary(_actor_id(), student_id, data.campus_id)
    return jsonify(out.to_dict())

@api_bp.get("/students/<student_id>/campuses")
@login_required
def student_list_for_person(student_id: str):
    return _items(student_assignments().list_for_person(_actor_id(), student_id, _flag("include_inactive")))
