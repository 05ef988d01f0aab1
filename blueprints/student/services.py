# blueprints/student/services.py
from __future__ import annotations
import logging
from typing import Any, Dict

from pydantic import BaseModel, ValidationError
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from blueprints.core.errors import BadRequest, Conflict, NotFound
from blueprints.core.uow import unit_of_work
from models import (
    AuditLog, Class, ClassGroup, StudentCampus, StudentProfile, User, UserType,
)
from .schemas import StudentClassIn, StudentCreateIn, StudentSearchIn, StudentUpdateIn

log = logging.getLogger(__name__)


def _parse(model: type[BaseModel], data):
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as ve:
        raise BadRequest(f"Invalid student data: {ve.error_count()} error(s)",
                         code="invalid_student_data") from ve


class StudentService:
    def __init__(self, session: Session):
        self.session = session

    # ---------- helpers ----------
    def _require_class(self, class_id: str | None) -> None:
        if class_id and self.session.get(Class, class_id) is None:
            raise NotFound("Class not found", code="class_not_found")

    def _require_unique_email(self, email: str, exclude_user_id: str | None = None) -> None:
        stmt = select(User.id).where(func.lower(User.email) == email)
        if exclude_user_id:
            stmt = stmt.where(User.id != exclude_user_id)
        if self.session.scalar(stmt) is not None:
            raise Conflict("Email already exists", code="email_exists")

    def _require_student(self, student_id: str, *, lock: bool = False) -> StudentProfile:
        stmt = select(StudentProfile).where(StudentProfile.id == student_id)
        if lock:
            stmt = stmt.with_for_update()
        student = self.session.scalar(stmt)
        if student is None:
            raise NotFound("Student not found", code="student_not_found")
        return student

    def _audit(self, actor_id, action: str, student_id: str, payload: dict | None = None) -> None:
        self.session.add(AuditLog(user_id=actor_id, action=action, entity="student_profiles",
                                  entity_id=student_id, payload=payload or {}))

    @staticmethod
    def _summary(s: StudentProfile) -> Dict[str, Any]:
        u, k = s.user, s.klass
        return {
            "id": s.id,
            "user": {"id": u.id, "name": u.name, "email": u.email, "status": u.status.value},
            "date_of_birth": s.date_of_birth.isoformat() if s.date_of_birth else None,
            "class": ({
                "id": k.id, "name": k.name,
                "class_group": ({"id": k.class_group.id, "name": k.class_group.name,
                                 "program": k.class_group.program.name} if k.class_group else None),
            } if k else None),
        }

    # ---------- operations ----------
    def create_student(self, data: StudentCreateIn | Dict[str, Any],
                       actor_id: str | None = None) -> Dict[str, Any]:
        """Create the student's user account and profile in one transaction."""
        data = _parse(StudentCreateIn, data)
        email = data.email.strip().lower()
        with unit_of_work(self.session, conflict="Email already exists", conflict_code="email_exists"):
            self._require_unique_email(email)
            self._require_class(data.class_id)
            user = User(name=data.name, email=email, user_type=UserType.STUDENT)
            user.set_password(data.password)
            self.session.add(user)
            self.session.flush()
            student = StudentProfile(user_id=user.id, date_of_birth=data.date_of_birth,
                                     class_id=data.class_id)
            self.session.add(student)
            self.session.flush()
            self._audit(actor_id, "student.create", student.id, {"class_id": data.class_id})
            student_id = student.id
        log.info("student created", extra={"event": "student.create", "actor_id": actor_id,
                                            "person_id": student_id})
        return self.get_student_profile(student_id)

    def get_student_profile(self, student_id: str) -> Dict[str, Any]:
        student = self.session.scalar(
            select(StudentProfile)
            .where(StudentProfile.id == student_id)
            .options(
                selectinload(StudentProfile.user),
                selectinload(StudentProfile.klass).selectinload(Class.class_group)
                .selectinload(ClassGroup.program),
                selectinload(StudentProfile.campuses).selectinload(StudentCampus.campus),
            )
        )
        if student is None:
            raise NotFound("Student not found", code="student_not_found")
        out = self._summary(student)
        out["campuses"] = [
            {"campus_id": sc.campus_id, "name": sc.campus.name, "is_primary": bool(sc.is_primary),
             "status": sc.status.value, "joined_at": sc.joined_at.isoformat()}
            for sc in sorted(student.campuses, key=lambda r: (not r.is_primary, r.joined_at, r.campus_id))
        ]
        return out

    def update_student(self, student_id: str, data: StudentUpdateIn | Dict[str, Any],
                       actor_id: str | None = None) -> Dict[str, Any]:
        data = _parse(StudentUpdateIn, data)
        email = data.email.strip().lower()
        with unit_of_work(self.session, conflict="Email already exists", conflict_code="email_exists"):
            student = self._require_student(student_id, lock=True)
            self._require_unique_email(email, exclude_user_id=student.user_id)
            self._require_class(data.class_id)
            student.user.name = data.name
            student.user.email = email
            student.date_of_birth = data.date_of_birth
            student.class_id = data.class_id
            self._audit(actor_id, "student.update", student_id, {"class_id": data.class_id})
        log.info("student updated", extra={"event": "student.update", "actor_id": actor_id,
                                            "person_id": student_id})
        return self.get_student_profile(student_id)

    def assign_to_class(self, student_id: str, class_id: str, actor_id: str | None = None) -> Dict[str, Any]:
        class_id = _parse(StudentClassIn, {"class_id": class_id}).class_id
        with unit_of_work(self.session):
            student = self._require_student(student_id, lock=True)
            self._require_class(class_id)
            previous = student.class_id
            if previous != class_id:
                student.class_id = class_id
                self._audit(actor_id, "student.assign_class", student_id,
                            {"from": previous, "to": class_id})
        log.info("student class assigned", extra={"event": "student.assign_class", "actor_id": actor_id,
                                                   "person_id": student_id})
        return self.get_student_profile(student_id)

    def delete_student(self, student_id: str, actor_id: str | None = None) -> Dict[str, bool]:
        """Delete the profile, its campus memberships and the user account."""
        with unit_of_work(self.session):
            student = self._require_student(student_id, lock=True)
            user = student.user
            self._audit(actor_id, "student.delete", student_id, {"email": user.email})
            self.session.delete(student)
            self.session.flush()
            self.session.delete(user)
        log.info("student deleted", extra={"event": "student.delete", "actor_id": actor_id,
                                            "person_id": student_id})
        return {"success": True}

    def search_students(self, params: StudentSearchIn | Dict[str, Any]) -> Dict[str, Any]:
        p = _parse(StudentSearchIn, params)
        stmt = select(StudentProfile).join(User, User.id == StudentProfile.user_id)
        if p.q:
            like = f"%{p.q.strip()}%"
            stmt = stmt.where(or_(User.name.ilike(like), User.email.ilike(like)))
        if p.status:
            stmt = stmt.where(User.status == p.status)
        if p.class_id:
            stmt = stmt.where(StudentProfile.class_id == p.class_id)
        if p.program_id:
            stmt = (stmt.join(Class, Class.id == StudentProfile.class_id)
                    .join(ClassGroup, ClassGroup.id == Class.class_group_id)
                    .where(ClassGroup.program_id == p.program_id))
        if p.campus_id:
            stmt = stmt.where(StudentProfile.id.in_(
                select(StudentCampus.student_id).where(StudentCampus.campus_id == p.campus_id)))

        total = self.session.scalar(select(func.count()).select_from(stmt.subquery()))
        rows = self.session.scalars(
            stmt.options(selectinload(StudentProfile.user),
                         selectinload(StudentProfile.klass).selectinload(Class.class_group)
                         .selectinload(ClassGroup.program))
            .order_by(User.name.asc(), User.email.asc())
            .offset((p.page - 1) * p.per_page).limit(p.per_page)
        ).all()
        return {"items": [self._summary(s) for s in rows],
                "meta": {"page": p.page, "per_page": p.per_page, "total": total}}
