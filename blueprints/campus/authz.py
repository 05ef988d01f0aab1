# blueprints/campus/authz.py
from __future__ import annotations
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from models import (
    CampusPermission as P, CampusRole, CampusUserRole, Role, RolePermission,
    Status, User, UserType,
)

# Default role -> capability table, seeded into role_permissions.
ROLE_PERMISSIONS: dict[CampusRole, tuple[P, ...]] = {
    CampusRole.CAMPUS_ADMIN: tuple(P),
    CampusRole.CAMPUS_MANAGER: (
        P.MANAGE_CAMPUS_TEACHERS, P.VIEW_CAMPUS_TEACHERS,
        P.MANAGE_CAMPUS_STUDENTS, P.VIEW_CAMPUS_STUDENTS,
        P.MANAGE_CAMPUS_CLASSES, P.VIEW_CAMPUS_CLASSES,
    ),
    CampusRole.CAMPUS_COORDINATOR: (
        P.VIEW_CAMPUS_TEACHERS, P.VIEW_CAMPUS_STUDENTS, P.VIEW_CAMPUS_CLASSES,
        P.VIEW_PROGRAMS, P.MANAGE_CAMPUS_CLASSES,
    ),
    CampusRole.CAMPUS_TEACHER: (P.VIEW_CAMPUS_CLASSES, P.VIEW_CAMPUS_STUDENTS),
    CampusRole.CAMPUS_STUDENT: (P.VIEW_CAMPUS_CLASSES,),
}


class AuthorizationService:
    """Role -> capability lookup scoped to a campus."""

    def __init__(self, session: Session):
        self.session = session

    def _actor(self, actor_id: str | None) -> User | None:
        if not actor_id:
            return None
        user = self.session.get(User, actor_id)
        if user is None or user.status != Status.ACTIVE:
            return None
        return user

    def campuses_with_permission(self, actor_id: str | None, capability: P,
                                 campus_ids: Iterable[str]) -> set[str]:
        campus_ids = set(campus_ids)
        user = self._actor(actor_id)
        if user is None or not campus_ids:
            return set()
        if user.user_type == UserType.SUPER_ADMIN:
            return campus_ids
        stmt = (
            select(CampusUserRole.campus_id)
            .join(Role, Role.id == CampusUserRole.role_id)
            .join(RolePermission, RolePermission.role_id == Role.id)
            .where(
                CampusUserRole.user_id == user.id,
                CampusUserRole.campus_id.in_(campus_ids),
                RolePermission.permission == capability,
            )
        )
        return set(self.session.scalars(stmt).all())

    def has_permission(self, actor_id: str | None, campus_id: str, capability: P) -> bool:
        return campus_id in self.campuses_with_permission(actor_id, capability, [campus_id])

    def has_permission_anywhere(self, actor_id: str | None, capability: P) -> bool:
        """True if the actor holds the capability on at least one campus."""
        user = self._actor(actor_id)
        if user is None:
            return False
        if user.user_type == UserType.SUPER_ADMIN:
            return True
        stmt = (
            select(CampusUserRole.id)
            .join(RolePermission, RolePermission.role_id == CampusUserRole.role_id)
            .where(CampusUserRole.user_id == user.id, RolePermission.permission == capability)
            .limit(1)
        )
        return self.session.scalar(stmt) is not None

    def grant_role(self, user_id: str, campus_id: str, role: CampusRole) -> CampusUserRole:
        """Attach a campus role to a user; the role row must already be seeded."""
        role_row = self.session.scalar(select(Role).where(Role.name == role.value))
        if role_row is None:
            raise LookupError(f"role {role.value} is not seeded")
        existing = self.session.scalar(select(CampusUserRole).where(
            CampusUserRole.user_id == user_id,
            CampusUserRole.campus_id == campus_id,
            CampusUserRole.role_id == role_row.id,
        ))
        if existing:
            return existing
        link = CampusUserRole(user_id=user_id, campus_id=campus_id, role_id=role_row.id)
        self.session.add(link)
        self.session.flush()
        return link


def seed_roles(session: Session) -> int:
    """Idempotently create roles and their permissions. Returns number of rows added."""
    created = 0
    for role_name, perms in ROLE_PERMISSIONS.items():
        role = session.scalar(select(Role).where(Role.name == role_name.value))
        if role is None:
            role = Role(name=role_name.value, description=f"Default {role_name.value} role")
            session.add(role)
            session.flush()
            created += 1
        have = {rp.permission for rp in role.permissions}
        for perm in perms:
            if perm not in have:
                role.permissions.append(RolePermission(permission=perm))
                created += 1
    session.flush()
    return created
