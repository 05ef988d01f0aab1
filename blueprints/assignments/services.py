# blueprints/assignments/services.py
"""Campus membership of teachers and students.

Every person may carry at most one ACTIVE primary campus. All mutations that
touch more than one row run as a single unit of work on the session handed to
the manager: the person row is locked first, the clear-then-set pair is
flushed, then committed; any storage failure rolls the whole unit back.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from blueprints.campus.authz import AuthorizationService
from blueprints.core.errors import BadRequest, Conflict, Forbidden, NotFound
from blueprints.core.uow import unit_of_work
from models import (
    AuditLog, Campus, CampusPermission, Class, Status, StudentCampus, StudentProfile,
    TeacherCampus, TeacherClass, TeacherProfile, utcnow,
)

log = logging.getLogger(__name__)

ASSIGNMENT_STATUSES = (Status.ACTIVE, Status.INACTIVE)


@dataclass(frozen=True)
class AssignmentKind:
    name: str
    model: type
    person_model: type
    person_fk: str
    manage: CampusPermission
    view: CampusPermission
    # a person may pick their own primary campus
    self_service_primary: bool


TEACHER = AssignmentKind(
    name="teacher",
    model=TeacherCampus,
    person_model=TeacherProfile,
    person_fk="teacher_id",
    manage=CampusPermission.MANAGE_CAMPUS_TEACHERS,
    view=CampusPermission.VIEW_CAMPUS_TEACHERS,
    self_service_primary=True,
)

STUDENT = AssignmentKind(
    name="student",
    model=StudentCampus,
    person_model=StudentProfile,
    person_fk="student_id",
    manage=CampusPermission.MANAGE_CAMPUS_STUDENTS,
    view=CampusPermission.VIEW_CAMPUS_STUDENTS,
    self_service_primary=False,
)


@dataclass
class AssignmentOut:
    kind: str
    id: str
    person_id: str
    campus_id: str
    is_primary: bool
    status: str
    joined_at: str
    campus: Dict[str, Any]
    person: Dict[str, Any]
    classes: Optional[List[Dict[str, Any]]] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out[f"{self.kind}_id"] = self.person_id
        if self.classes is None:
            out.pop("classes")
        return out


def coerce_status(value: Any) -> Status:
    try:
        status = Status(value)
    except ValueError:
        raise BadRequest(f"unknown status {value!r}", code="invalid_status")
    if status not in ASSIGNMENT_STATUSES:
        raise BadRequest(f"assignment status must be ACTIVE or INACTIVE, got {status.value}",
                         code="invalid_status")
    return status


class AssignmentManager:
    kind: AssignmentKind

    def __init__(self, session: Session, authz: AuthorizationService | None = None):
        self.session = session
        self.authz = authz or AuthorizationService(session)

    # ---------- helpers ----------
    @property
    def _fk(self):
        return getattr(self.kind.model, self.kind.person_fk)

    def _require(self, actor_id: str | None, campus_id: str, capability: CampusPermission) -> None:
        if not self.authz.has_permission(actor_id, campus_id, capability):
            raise Forbidden(f"You don't have permission to manage {self.kind.name}s in this campus")

    def _person(self, person_id: str, *, lock: bool = False):
        stmt = select(self.kind.person_model).where(self.kind.person_model.id == person_id)
        if lock:
            # serialises concurrent primary changes for the same person
            stmt = stmt.with_for_update()
        return self.session.scalar(stmt)

    def _require_person(self, person_id: str, *, lock: bool = False):
        person = self._person(person_id, lock=lock)
        if person is None:
            raise NotFound(f"{self.kind.name.capitalize()} not found", code=f"{self.kind.name}_not_found")
        return person

    def _get(self, person_id: str, campus_id: str):
        model = self.kind.model
        return self.session.scalar(
            select(model).where(self._fk == person_id, model.campus_id == campus_id)
        )

    def _require_assignment(self, person_id: str, campus_id: str):
        row = self._get(person_id, campus_id)
        if row is None:
            raise NotFound(f"{self.kind.name.capitalize()} is not assigned to this campus",
                           code="assignment_not_found")
        return row

    def _clear_primary(self, person_id: str, *, exclude_campus_id: str | None = None,
                       only_active: bool = False) -> None:
        model = self.kind.model
        stmt = update(model).where(self._fk == person_id, model.is_primary.is_(True))
        if exclude_campus_id is not None:
            stmt = stmt.where(model.campus_id != exclude_campus_id)
        if only_active:
            stmt = stmt.where(model.status == Status.ACTIVE)
        self.session.execute(
            stmt.values(is_primary=False, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )

    def _other_active_primary(self, person_id: str, campus_id: str):
        model = self.kind.model
        return self.session.scalar(select(model).where(
            self._fk == person_id,
            model.campus_id != campus_id,
            model.is_primary.is_(True),
            model.status == Status.ACTIVE,
        ))

    def _audit(self, actor_id: str | None, action: str, row, payload: dict | None = None) -> None:
        self.session.add(AuditLog(
            user_id=actor_id,
            action=f"{self.kind.name}_campus.{action}",
            entity=self.kind.model.__tablename__,
            entity_id=row.id,
            payload=payload or {},
        ))

    def _log(self, msg: str, action: str, actor_id, campus_id, person_id) -> None:
        log.info(msg, extra={"event": f"assignment.{action}", "kind": self.kind.name,
                             "actor_id": actor_id, "campus_id": campus_id, "person_id": person_id})

    def _unit_of_work(self):
        return unit_of_work(
            self.session,
            conflict=f"{self.kind.name.capitalize()} campus assignment violates a uniqueness rule",
            conflict_code="assignment_conflict",
        )

    def _out(self, row, person=None, classes: list[dict] | None = None) -> AssignmentOut:
        person = person or getattr(row, self.kind.name)
        user = person.user
        return AssignmentOut(
            kind=self.kind.name,
            id=row.id,
            person_id=getattr(row, self.kind.person_fk),
            campus_id=row.campus_id,
            is_primary=bool(row.is_primary),
            status=Status(row.status).value,
            joined_at=row.joined_at.isoformat(),
            campus={"id": row.campus.id, "name": row.campus.name},
            person={"id": person.id,
                    "user": {"id": user.id, "name": user.name, "email": user.email}},
            classes=classes,
        )

    # ---------- mutations ----------
    def assign(self, actor_id: str | None, campus_id: str, person_id: str,
               is_primary: bool = False) -> AssignmentOut:
        self._require(actor_id, campus_id, self.kind.manage)
        with self._unit_of_work():
            person = self._require_person(person_id, lock=True)
            if self.session.get(Campus, campus_id) is None:
                raise NotFound("Campus not found", code="campus_not_found")
            if self._get(person_id, campus_id) is not None:
                raise Conflict(f"{self.kind.name.capitalize()} is already assigned to this campus",
                               code="already_assigned")
            if is_primary:
                self._clear_primary(person_id, only_active=True)
            row = self.kind.model(
                campus_id=campus_id,
                is_primary=bool(is_primary),
                status=Status.ACTIVE,
                joined_at=utcnow(),
                **{self.kind.person_fk: person_id},
            )
            self.session.add(row)
            self.session.flush()
            self._audit(actor_id, "assign", row, {"campus_id": campus_id, "is_primary": bool(is_primary)})
            out = self._out(row, person)
        self._log(f"{self.kind.name} assigned to campus", "assign", actor_id, campus_id, person_id)
        return out

    def remove(self, actor_id: str | None, campus_id: str, person_id: str) -> Dict[str, bool]:
        # no primary fix-up: removing the primary leaves the person without one
        self._require(actor_id, campus_id, self.kind.manage)
        with self._unit_of_work():
            row = self._require_assignment(person_id, campus_id)
            self._audit(actor_id, "remove", row, {"campus_id": campus_id, "was_primary": bool(row.is_primary)})
            self.session.delete(row)
            self.session.flush()
        self._log(f"{self.kind.name} removed from campus", "remove", actor_id, campus_id, person_id)
        return {"success": True}

    def set_primary(self, actor_id: str | None, person_id: str, campus_id: str) -> AssignmentOut:
        if not self.authz.has_permission(actor_id, campus_id, self.kind.manage):
            person = self._person(person_id) if self.kind.self_service_primary else None
            if person is None or actor_id is None or person.user_id != actor_id:
                raise Forbidden(f"You don't have permission to manage {self.kind.name}s in this campus")
        with self._unit_of_work():
            person = self._require_person(person_id, lock=True)
            row = self._require_assignment(person_id, campus_id)
            if row.status != Status.ACTIVE:
                raise Conflict("Only an active campus assignment can be primary",
                               code="assignment_inactive")
            self._clear_primary(person_id, exclude_campus_id=campus_id)
            if not row.is_primary:
                row.is_primary = True
                self._audit(actor_id, "set_primary", row, {"campus_id": campus_id})
            self.session.flush()
            out = self._out(row, person)
        self._log(f"{self.kind.name} primary campus set", "set_primary", actor_id, campus_id, person_id)
        return out

    def update_status(self, actor_id: str | None, campus_id: str, person_id: str,
                      new_status: Status | str) -> AssignmentOut:
        self._require(actor_id, campus_id, self.kind.manage)
        new_status = coerce_status(new_status)
        with self._unit_of_work():
            person = self._require_person(person_id, lock=True)
            row = self._require_assignment(person_id, campus_id)
            old_status = Status(row.status)
            if old_status != new_status:
                if (new_status == Status.ACTIVE and row.is_primary
                        and self._other_active_primary(person_id, campus_id) is not None):
                    # another campus became primary while this one was inactive
                    row.is_primary = False
                row.status = new_status
                self._audit(actor_id, "update_status", row,
                            {"from": old_status.value, "to": new_status.value})
                self.session.flush()
            out = self._out(row, person)
        self._log(f"{self.kind.name} campus status updated", "update_status", actor_id, campus_id, person_id)
        return out

    # ---------- reads ----------
    def _classes_for_campus(self, campus_id: str, person_ids: list[str]) -> Optional[Dict[str, List[dict]]]:
        # only teachers carry class summaries in campus listings
        return None

    def list_for_campus(self, actor_id: str | None, campus_id: str,
                        include_inactive: bool = False) -> List[AssignmentOut]:
        if not self.authz.has_permission(actor_id, campus_id, self.kind.view):
            raise Forbidden("You don't have permission to view this campus")
        if self.session.get(Campus, campus_id) is None:
            raise NotFound("Campus not found", code="campus_not_found")
        model = self.kind.model
        person_rel = getattr(model, self.kind.name)
        stmt = (
            select(model)
            .where(model.campus_id == campus_id)
            .options(selectinload(person_rel).selectinload(self.kind.person_model.user),
                     selectinload(model.campus))
            .order_by(model.joined_at.asc(), self._fk.asc())
        )
        if not include_inactive:
            stmt = stmt.where(model.status == Status.ACTIVE)
        rows = list(self.session.scalars(stmt).all())
        classes = self._classes_for_campus(campus_id, [getattr(r, self.kind.person_fk) for r in rows])
        return [
            self._out(r, classes=(None if classes is None
                                  else classes.get(getattr(r, self.kind.person_fk), [])))
            for r in rows
        ]

    def list_for_person(self, actor_id: str | None, person_id: str,
                        include_inactive: bool = False) -> List[AssignmentOut]:
        person = self._require_person(person_id)
        model = self.kind.model
        rows = list(self.session.scalars(
            select(model).where(self._fk == person_id).options(selectinload(model.campus))
        ).all())
        is_self = actor_id is not None and person.user_id == actor_id
        if rows:
            allowed = bool(self.authz.campuses_with_permission(
                actor_id, self.kind.view, {r.campus_id for r in rows}))
        else:
            # a person without campuses is visible to any holder of the view capability
            allowed = self.authz.has_permission_anywhere(actor_id, self.kind.view)
        if not is_self and not allowed:
            raise Forbidden(f"You don't have permission to view this {self.kind.name}")
        if not include_inactive:
            rows = [r for r in rows if r.status == Status.ACTIVE]
        rows.sort(key=lambda r: (not r.is_primary, r.joined_at, r.campus_id))
        return [self._out(r, person) for r in rows]


class CampusTeacherService(AssignmentManager):
    kind = TEACHER

    def _classes_for_campus(self, campus_id: str, person_ids: list[str]) -> Dict[str, List[dict]]:
        if not person_ids:
            return {}
        stmt = (
            select(TeacherClass)
            .join(Class, Class.id == TeacherClass.class_id)
            .where(Class.campus_id == campus_id, TeacherClass.teacher_id.in_(person_ids))
            .options(selectinload(TeacherClass.klass).selectinload(Class.class_group),
                     selectinload(TeacherClass.klass).selectinload(Class.subject))
            .order_by(Class.name.asc())
        )
        out: Dict[str, List[dict]] = {}
        for tc in self.session.scalars(stmt).all():
            c = tc.klass
            out.setdefault(tc.teacher_id, []).append({
                "id": c.id,
                "name": c.name,
                "class_group": ({"id": c.class_group.id, "name": c.class_group.name}
                                if c.class_group else None),
                "subject": ({"id": c.subject.id, "name": c.subject.name} if c.subject else None),
            })
        return out


class CampusStudentService(AssignmentManager):
    kind = STUDENT
