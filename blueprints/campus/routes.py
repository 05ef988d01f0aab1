# blueprints/campus/routes.py
from __future__ import annotations
import logging
from typing import Any

from flask import Blueprint, abort, jsonify, request, url_for
from flask_login import login_required, current_user
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query

from blueprints.auth.routes import admin_required
from blueprints.core.errors import json_error
from extensions import db
from models import AuditLog, Campus
from .schemas import CampusIn, CampusOut

log = logging.getLogger(__name__)

api_bp = Blueprint("campus_api", __name__)

# ----------------------- Helpers -----------------------
def created(location: str, data: Any):
    resp = jsonify(data)
    resp.status_code = 201
    resp.headers["Location"] = location
    return resp

def _paginate(query: Query, *, page: int, per_page: int):
    total = query.count()
    rows = query.offset((page - 1) * per_page).limit(per_page).all()
    items = [CampusOut.model_validate(r).model_dump(mode="json") for r in rows]
    return {"items": items, "meta": {"page": page, "per_page": per_page, "total": total}}

def _page_args() -> tuple[int, int]:
    try:
        page = max(1, int(request.args.get("page", 1)))
        per_page = min(100, max(1, int(request.args.get("per_page", 20))))
    except ValueError:
        abort(400, description="page and per_page must be integers")
    return page, per_page

def _handle_integrity_error(ex: IntegrityError):
    log.info("campus write rejected: %s", getattr(ex, "orig", ex))
    return json_error("unique_constraint", 409, "Campus code already exists")

def _audit(action: str, campus: Campus):
    db.session.add(AuditLog(user_id=getattr(current_user, "id", None), action=action,
                            entity="campuses", entity_id=campus.id, payload={"code": campus.code}))

# ----------------------- CRUD JSON API -----------------------
@api_bp.get("/campuses")
@login_required
def api_campuses_list():
    q = (request.args.get("q") or "").strip()
    page, per_page = _page_args()
    s = db.session.query(Campus)
    if q:
        s = s.filter(or_(Campus.name.ilike(f"%{q}%"), Campus.code.ilike(f"%{q}%")))
    s = s.order_by(Campus.name.asc(), Campus.code.asc())
    return jsonify(_paginate(s, page=page, per_page=per_page))

@api_bp.post("/campuses")
@admin_required
def api_campuses_create():
    parsed = CampusIn.model_validate(request.get_json(silent=True) or {})
    c = Campus(**parsed.model_dump())
    c.code = c.code.strip()
    db.session.add(c)
    try:
        db.session.flush()
        _audit("campus.create", c)
        db.session.commit()
    except IntegrityError as ex:
        db.session.rollback()
        return _handle_integrity_error(ex)
    out = CampusOut.model_validate(c).model_dump(mode="json")
    return created(url_for("campus_api.api_campuses_get", id=c.id), out)

@api_bp.get("/campuses/<id>")
@login_required
def api_campuses_get(id: str):
    c = db.session.get(Campus, id) or abort(404)
    return jsonify(CampusOut.model_validate(c).model_dump(mode="json"))

@api_bp.put("/campuses/<id>")
@admin_required
def api_campuses_update(id: str):
    parsed = CampusIn.model_validate(request.get_json(silent=True) or {})
    c = db.session.get(Campus, id) or abort(404)
    for key, value in parsed.model_dump().items():
        setattr(c, key, value)
    c.code = c.code.strip()
    try:
        _audit("campus.update", c)
        db.session.commit()
    except IntegrityError as ex:
        db.session.rollback()
        return _handle_integrity_error(ex)
    return jsonify(CampusOut.model_validate(c).model_dump(mode="json"))

@api_bp.delete("/campuses/<id>")
@admin_required
def api_campuses_delete(id: str):
    c = db.session.get(Campus, id) or abort(404)
    _audit("campus.delete", c)
    db.session.delete(c)
    db.session.commit()
    return "", 204
