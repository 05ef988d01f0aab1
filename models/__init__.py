from __future__ import annotations
import uuid
from datetime import datetime, date, UTC
from enum import Enum as PyEnum

from flask_login import UserMixin
from sqlalchemy import (
    Enum, ForeignKey, UniqueConstraint, Index, Boolean, Date, DateTime,
    Integer, String, Text, JSON, text
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from werkzeug.security import generate_password_hash, check_password_hash

from extensions import db


def utcnow() -> datetime:
    # naive UTC, stored as-is by SQLite and "timestamp without time zone" elsewhere
    return datetime.now(UTC).replace(tzinfo=None)

def new_id() -> str:
    return str(uuid.uuid4())


# ---------- Enums ----------
class Status(str, PyEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ARCHIVED = "ARCHIVED"

class UserType(str, PyEnum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    COORDINATOR = "COORDINATOR"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"
    PARENT = "PARENT"

class CampusType(str, PyEnum):
    MAIN = "MAIN"
    BRANCH = "BRANCH"

class TeacherType(str, PyEnum):
    CLASS = "CLASS"
    SUBJECT = "SUBJECT"

class CampusRole(str, PyEnum):
    CAMPUS_ADMIN = "CAMPUS_ADMIN"
    CAMPUS_MANAGER = "CAMPUS_MANAGER"
    CAMPUS_COORDINATOR = "CAMPUS_COORDINATOR"
    CAMPUS_TEACHER = "CAMPUS_TEACHER"
    CAMPUS_STUDENT = "CAMPUS_STUDENT"

class CampusPermission(str, PyEnum):
    MANAGE_CAMPUS = "MANAGE_CAMPUS"
    MANAGE_CAMPUS_CLASSES = "MANAGE_CAMPUS_CLASSES"
    MANAGE_CAMPUS_TEACHERS = "MANAGE_CAMPUS_TEACHERS"
    MANAGE_CAMPUS_STUDENTS = "MANAGE_CAMPUS_STUDENTS"
    VIEW_CAMPUS_TEACHERS = "VIEW_CAMPUS_TEACHERS"
    VIEW_CAMPUS_STUDENTS = "VIEW_CAMPUS_STUDENTS"
    VIEW_CAMPUS_CLASSES = "VIEW_CAMPUS_CLASSES"
    VIEW_PROGRAMS = "VIEW_PROGRAMS"


# ---------- Users & access ----------
class User(UserMixin, db.Model):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str | None] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    user_type: Mapped[UserType] = mapped_column(Enum(UserType), nullable=False, index=True)
    status: Mapped[Status] = mapped_column(Enum(Status), nullable=False, default=Status.ACTIVE)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    teacher_profile = relationship("TeacherProfile", back_populates="user", uselist=False)
    student_profile = relationship("StudentProfile", back_populates="user", uselist=False)

    def set_password(self, raw: str):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw: str) -> bool:
        return check_password_hash(self.password_hash, raw)

    # Flask-Login reads .is_active
    @property
    def is_active(self):
        return self.status == Status.ACTIVE

    def __repr__(self):
        return f"<User {self.email}>"


class Role(db.Model):
    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255))

    permissions = relationship("RolePermission", back_populates="role", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Role {self.name}>"


class RolePermission(db.Model):
    __tablename__ = "role_permissions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    role_id: Mapped[str] = mapped_column(ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)
    permission: Mapped[CampusPermission] = mapped_column(Enum(CampusPermission), nullable=False)

    role = relationship("Role", back_populates="permissions")

    __table_args__ = (
        UniqueConstraint("role_id", "permission", name="uq_role_permission"),
    )


class CampusUserRole(db.Model):
    __tablename__ = "campus_user_roles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    campus_id: Mapped[str] = mapped_column(ForeignKey("campuses.id", ondelete="CASCADE"), nullable=False)
    role_id: Mapped[str] = mapped_column(ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)

    role = relationship("Role")

    __table_args__ = (
        UniqueConstraint("user_id", "campus_id", "role_id", name="uq_campus_user_role"),
        Index("ix_campus_user_roles_user_campus", "user_id", "campus_id"),
    )


# ---------- Campus & curriculum ----------
class Campus(db.Model):
    __tablename__ = "campuses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    type: Mapped[CampusType] = mapped_column(Enum(CampusType), nullable=False, default=CampusType.MAIN)
    address: Mapped[str | None] = mapped_column(String(255))
    city: Mapped[str | None] = mapped_column(String(100))
    country: Mapped[str | None] = mapped_column(String(100))
    phone: Mapped[str | None] = mapped_column(String(50))
    email: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[Status] = mapped_column(Enum(Status), nullable=False, default=Status.ACTIVE)
    metadata_json: Mapped[dict | None] = mapped_column("metadata", JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Campus {self.code}>"


class Program(db.Model):
    __tablename__ = "programs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[Status] = mapped_column(Enum(Status), nullable=False, default=Status.ACTIVE)


class ClassGroup(db.Model):
    __tablename__ = "class_groups"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    program_id: Mapped[str] = mapped_column(ForeignKey("programs.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[Status] = mapped_column(Enum(Status), nullable=False, default=Status.ACTIVE)

    program = relationship("Program")


class Subject(db.Model):
    __tablename__ = "subjects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    class_group_id: Mapped[str | None] = mapped_column(ForeignKey("class_groups.id", ondelete="SET NULL"))
    status: Mapped[Status] = mapped_column(Enum(Status), nullable=False, default=Status.ACTIVE)

    class_group = relationship("ClassGroup")


class Class(db.Model):
    __tablename__ = "classes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    campus_id: Mapped[str] = mapped_column(ForeignKey("campuses.id", ondelete="CASCADE"), nullable=False, index=True)
    class_group_id: Mapped[str | None] = mapped_column(ForeignKey("class_groups.id", ondelete="SET NULL"))
    subject_id: Mapped[str | None] = mapped_column(ForeignKey("subjects.id", ondelete="SET NULL"))
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[Status] = mapped_column(Enum(Status), nullable=False, default=Status.ACTIVE)

    campus = relationship("Campus")
    class_group = relationship("ClassGroup")
    subject = relationship("Subject")


# ---------- People ----------
class TeacherProfile(db.Model):
    __tablename__ = "teacher_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    teacher_type: Mapped[TeacherType] = mapped_column(Enum(TeacherType), nullable=False, default=TeacherType.SUBJECT)
    specialization: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="teacher_profile")
    campuses = relationship("TeacherCampus", back_populates="teacher", cascade="all, delete-orphan")
    subjects = relationship("TeacherSubject", back_populates="teacher", cascade="all, delete-orphan")
    classes = relationship("TeacherClass", back_populates="teacher", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<TeacherProfile {self.id}>"


class StudentProfile(db.Model):
    __tablename__ = "student_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    class_id: Mapped[str | None] = mapped_column(ForeignKey("classes.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="student_profile")
    klass = relationship("Class")
    campuses = relationship("StudentCampus", back_populates="student", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<StudentProfile {self.id}>"


# ---------- Memberships ----------
# At most one ACTIVE primary campus per person; the partial index backs the
# service-level clear-then-set.
_ACTIVE_PRIMARY = "is_primary AND status = 'ACTIVE'"

class TeacherCampus(db.Model):
    __tablename__ = "teacher_campuses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    teacher_id: Mapped[str] = mapped_column(ForeignKey("teacher_profiles.id", ondelete="CASCADE"), nullable=False)
    campus_id: Mapped[str] = mapped_column(ForeignKey("campuses.id", ondelete="CASCADE"), nullable=False, index=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[Status] = mapped_column(Enum(Status), nullable=False, default=Status.ACTIVE)
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    teacher = relationship("TeacherProfile", back_populates="campuses")
    campus = relationship("Campus")

    __table_args__ = (
        UniqueConstraint("teacher_id", "campus_id", name="uq_teacher_campus"),
        Index("uq_teacher_campus_active_primary", "teacher_id", unique=True,
              sqlite_where=text(_ACTIVE_PRIMARY), postgresql_where=text(_ACTIVE_PRIMARY)),
    )


class StudentCampus(db.Model):
    __tablename__ = "student_campuses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    student_id: Mapped[str] = mapped_column(ForeignKey("student_profiles.id", ondelete="CASCADE"), nullable=False)
    campus_id: Mapped[str] = mapped_column(ForeignKey("campuses.id", ondelete="CASCADE"), nullable=False, index=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[Status] = mapped_column(Enum(Status), nullable=False, default=Status.ACTIVE)
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    student = relationship("StudentProfile", back_populates="campuses")
    campus = relationship("Campus")

    __table_args__ = (
        UniqueConstraint("student_id", "campus_id", name="uq_student_campus"),
        Index("uq_student_campus_active_primary", "student_id", unique=True,
              sqlite_where=text(_ACTIVE_PRIMARY), postgresql_where=text(_ACTIVE_PRIMARY)),
    )


class TeacherSubject(db.Model):
    __tablename__ = "teacher_subjects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    teacher_id: Mapped[str] = mapped_column(ForeignKey("teacher_profiles.id", ondelete="CASCADE"), nullable=False)
    subject_id: Mapped[str] = mapped_column(ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[Status] = mapped_column(Enum(Status), nullable=False, default=Status.ACTIVE)

    teacher = relationship("TeacherProfile", back_populates="subjects")
    subject = relationship("Subject")

    __table_args__ = (
        UniqueConstraint("teacher_id", "subject_id", name="uq_teacher_subject"),
    )


class TeacherClass(db.Model):
    __tablename__ = "teacher_classes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    teacher_id: Mapped[str] = mapped_column(ForeignKey("teacher_profiles.id", ondelete="CASCADE"), nullable=False)
    class_id: Mapped[str] = mapped_column(ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[Status] = mapped_column(Enum(Status), nullable=False, default=Status.ACTIVE)

    teacher = relationship("TeacherProfile", back_populates="classes")
    klass = relationship("Class")

    __table_args__ = (
        UniqueConstraint("teacher_id", "class_id", name="uq_teacher_class"),
    )


# ---------- Audit ----------
class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str | None] = mapped_column(String(36))
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    entity: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_id: Mapped[str | None] = mapped_column(String(36))
    payload: Mapped[dict | None] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
