# blueprints/teacher/services.py
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from blueprints.core.errors import BadRequest, NotFound
from blueprints.core.uow import unit_of_work
from models import (
    AuditLog, Campus, Class, Status, Subject, TeacherCampus, TeacherClass,
    TeacherProfile, TeacherSubject, User, utcnow,
)
from .schemas import TeacherUpsertIn

log = logging.getLogger(__name__)


def _missing(session: Session, model, ids: Iterable[str]) -> List[str]:
    ids = set(ids)
    if not ids:
        return []
    found = set(session.scalars(select(model.id).where(model.id.in_(ids))).all())
    return sorted(ids - found)


class TeacherService:
    def __init__(self, session: Session):
        self.session = session

    # ---------- reconciliation ----------
    def _sync_campuses(self, profile: TeacherProfile, wanted) -> None:
        missing = _missing(self.session, Campus, (a.campus_id for a in wanted))
        if missing:
            raise NotFound(f"Campus not found: {', '.join(missing)}", code="campus_not_found")
        existing = {row.campus_id: row for row in profile.campuses}
        wanted_by_id = {a.campus_id: a for a in wanted}

        for campus_id, row in existing.items():
            if campus_id not in wanted_by_id:
                profile.campuses.remove(row)
        # clear before set: non-primary rows first, then the primary one
        for campus_id, a in wanted_by_id.items():
            row = existing.get(campus_id)
            if row is not None and not a.is_primary:
                row.is_primary = False
                row.status = a.status
        self.session.flush()

        now = utcnow()
        for campus_id, a in wanted_by_id.items():
            row = existing.get(campus_id)
            if row is None:
                profile.campuses.append(TeacherCampus(
                    campus_id=campus_id, is_primary=a.is_primary, status=a.status, joined_at=now,
                ))
            elif a.is_primary:
                row.is_primary = True
                row.status = a.status
        self.session.flush()

    def _sync_links(self, rows: list, attr: str, wanted_ids: List[str], factory) -> None:
        current = {getattr(r, attr): r for r in rows}
        wanted = set(wanted_ids)
        for key, row in current.items():
            if key not in wanted:
                rows.remove(row)
        for key in wanted_ids:
            if key not in current:
                rows.append(factory(key))
                current[key] = rows[-1]

    # ---------- operations ----------
    def upsert_teacher(self, data: TeacherUpsertIn | Dict[str, Any], actor_id: str | None = None) -> Dict[str, Any]:
        """Create or update a teacher profile and reconcile its campus, subject and class links in one transaction."""
        if not isinstance(data, TeacherUpsertIn):
            try:
                data = TeacherUpsertIn.model_validate(data)
            except ValidationError as ve:
                raise BadRequest(f"Invalid teacher data: {ve.error_count()} error(s)",
                                 code="invalid_teacher_data") from ve
        p = data.profile
        with unit_of_work(self.session, conflict="Teacher already exists with this user ID",
                          conflict_code="teacher_conflict"):
            if self.session.get(User, p.user_id) is None:
                raise NotFound("User not found", code="user_not_found")
            profile = self.session.scalar(
                select(TeacherProfile).where(TeacherProfile.user_id == p.user_id).with_for_update()
            )
            created = profile is None
            if created:
                profile = TeacherProfile(user_id=p.user_id)
                self.session.add(profile)
            profile.teacher_type = p.teacher_type
            profile.specialization = p.specialization
            self.session.flush()

            if data.assignments is not None:
                self._sync_campuses(profile, data.assignments)
            if data.subjects is not None:
                missing = _missing(self.session, Subject, data.subjects)
                if missing:
                    raise NotFound(f"Subject not found: {', '.join(missing)}", code="subject_not_found")
                self._sync_links(profile.subjects, "subject_id", list(dict.fromkeys(data.subjects)),
                                 lambda sid: TeacherSubject(subject_id=sid, status=Status.ACTIVE))
            if data.classes is not None:
                missing = _missing(self.session, Class, data.classes)
                if missing:
                    raise NotFound(f"Class not found: {', '.join(missing)}", code="class_not_found")
                self._sync_links(profile.classes, "class_id", list(dict.fromkeys(data.classes)),
                                 lambda cid: TeacherClass(class_id=cid, status=Status.ACTIVE))
            self.session.flush()
            self.session.add(AuditLog(
                user_id=actor_id, action="teacher.create" if created else "teacher.update",
                entity="teacher_profiles", entity_id=profile.id,
                payload={"assignments": len(data.assignments or []),
                         "subjects": len(data.subjects or []), "classes": len(data.classes or [])},
            ))
            teacher_id = profile.id
        log.info("teacher upserted", extra={"event": "teacher.upsert", "actor_id": actor_id,
                                             "person_id": teacher_id})
        return self.get_teacher_profile(teacher_id)

    def get_teacher_profile(self, teacher_id: str) -> Dict[str, Any]:
        profile = self.session.scalar(
            select(TeacherProfile)
            .where(TeacherProfile.id == teacher_id)
            .options(
                selectinload(TeacherProfile.user),
                selectinload(TeacherProfile.campuses).selectinload(TeacherCampus.campus),
                selectinload(TeacherProfile.subjects).selectinload(TeacherSubject.subject),
                selectinload(TeacherProfile.classes).selectinload(TeacherClass.klass)
                .selectinload(Class.class_group),
            )
        )
        if profile is None:
            raise NotFound("Teacher not found", code="teacher_not_found")
        u = profile.user
        return {
            "id": profile.id,
            "user": {"id": u.id, "name": u.name, "email": u.email, "status": Status(u.status).value},
            "teacher_type": profile.teacher_type.value,
            "specialization": profile.specialization,
            "campuses": [
                {"campus_id": tc.campus_id, "name": tc.campus.name, "is_primary": bool(tc.is_primary),
                 "status": Status(tc.status).value, "joined_at": tc.joined_at.isoformat()}
                for tc in sorted(profile.campuses, key=lambda r: (not r.is_primary, r.joined_at, r.campus_id))
            ],
            "subjects": [
                {"id": ts.id, "subject_id": ts.subject_id, "name": ts.subject.name,
                 "status": Status(ts.status).value}
                for ts in sorted(profile.subjects, key=lambda r: r.subject.name)
            ],
            "classes": [
                {"id": tc.id, "class_id": tc.class_id, "name": tc.klass.name,
                 "class_group": (tc.klass.class_group.name if tc.klass.class_group else None),
                 "status": Status(tc.status).value}
                for tc in sorted(profile.classes, key=lambda r: r.klass.name)
            ],
        }

    def update_teacher_status(self, teacher_id: str, new_status: Status | str,
                              actor_id: str | None = None) -> Dict[str, Any]:
        """Set the status of the teacher's user and every membership in one transaction."""
        try:
            new_status = Status(new_status)
        except ValueError:
            raise BadRequest(f"unknown status {new_status!r}", code="invalid_status")
        # campus memberships only know ACTIVE/INACTIVE
        campus_status = Status.ACTIVE if new_status == Status.ACTIVE else Status.INACTIVE

        with unit_of_work(self.session):
            profile = self.session.scalar(
                select(TeacherProfile).where(TeacherProfile.id == teacher_id).with_for_update()
            )
            if profile is None:
                raise NotFound("Teacher not found", code="teacher_not_found")
            profile.user.status = new_status

            keep = None
            if campus_status == Status.ACTIVE:
                flagged = [r for r in profile.campuses if r.is_primary]
                active = [r for r in flagged if r.status == Status.ACTIVE]
                if active:
                    keep = active[0]
                elif flagged:
                    keep = max(flagged, key=lambda r: (r.updated_at, r.joined_at))
            for row in profile.campuses:
                if campus_status == Status.ACTIVE and row.is_primary and row is not keep:
                    row.is_primary = False
                # untouched rows keep their updated_at, which decides the survivor above
                if row.status != campus_status:
                    row.status = campus_status
            for row in profile.subjects:
                row.status = new_status
            for row in profile.classes:
                row.status = new_status
            self.session.flush()
            self.session.add(AuditLog(
                user_id=actor_id, action="teacher.update_status", entity="teacher_profiles",
                entity_id=profile.id, payload={"status": new_status.value},
            ))
        log.info("teacher status updated", extra={"event": "teacher.update_status", "actor_id": actor_id,
                                                   "person_id": teacher_id})
        return self.get_teacher_profile(teacher_id)
