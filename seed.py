"""
Idempotent seed script.
Usage:
  python seed.py --reset         # drop + recreate the DB, demo data and admin@example.com/pass
  python seed.py --ensure-admin  # only create the super admin user (no demo data)
  python seed.py                 # soft fill of missing demo data (idempotent)
"""
import argparse
from datetime import date

from sqlalchemy import func, select

from app import create_app
from extensions import db
from blueprints.assignments.services import CampusStudentService, CampusTeacherService
from blueprints.campus.authz import AuthorizationService, seed_roles
from blueprints.teacher.services import TeacherService
from models import (
    Campus, CampusRole, CampusType, Class, ClassGroup, Program, StudentProfile, Subject,
    TeacherProfile, User, UserType,
)

ADMIN_EMAIL = "admin@example.com"

# ---- helpers ----
def get_or_create(model, defaults=None, **by):
    """Idempotent create keyed on unique columns."""
    inst = db.session.scalar(select(model).filter_by(**by))
    if inst:
        return inst, False
    data = dict(by)
    if defaults:
        data.update(defaults)
    inst = model(**data)
    db.session.add(inst)
    db.session.flush()
    return inst, True

def get_or_create_user(email, name, user_type, password="pass"):
    user = db.session.scalar(select(User).where(func.lower(User.email) == email.lower()))
    if user:
        return user
    user = User(email=email, name=name, user_type=user_type)
    user.set_password(password)
    db.session.add(user)
    db.session.flush()
    return user

# ---- reference data ----
def seed_base_dicts():
    """Roles, campuses and a minimal curriculum. Returns ids used by the people seed."""
    ids = {}
    seed_roles(db.session)

    main, _ = get_or_create(Campus, code="EYC-001", defaults=dict(
        name="Early Years Campus", type=CampusType.MAIN, city="Springfield", country="US"))
    branch, _ = get_or_create(Campus, code="NB-002", defaults=dict(
        name="North Branch", type=CampusType.BRANCH, city="Springfield", country="US"))
    ids["campus_main_id"] = main.id
    ids["campus_branch_id"] = branch.id

    program, _ = get_or_create(Program, name="Early Years", defaults=dict(description="Ages 3 to 5"))
    group, _ = get_or_create(ClassGroup, name="Nursery", program_id=program.id)
    phonics, _ = get_or_create(Subject, code="PHON", defaults=dict(name="Phonics", class_group_id=group.id))
    klass, _ = get_or_create(Class, name="Nursery A", campus_id=main.id,
                             defaults=dict(class_group_id=group.id, subject_id=phonics.id, capacity=20))
    ids["subject_id"] = phonics.id
    ids["class_id"] = klass.id
    db.session.commit()
    return ids

# ---- people ----
def seed_people(ids):
    admin = ensure_admin()
    authz = AuthorizationService(db.session)

    manager = get_or_create_user("manager@example.com", "Campus Manager", UserType.ADMIN)
    authz.grant_role(manager.id, ids["campus_main_id"], CampusRole.CAMPUS_MANAGER)
    authz.grant_role(manager.id, ids["campus_branch_id"], CampusRole.CAMPUS_MANAGER)

    teacher_user = get_or_create_user("teacher@example.com", "Tess Teacher", UserType.TEACHER)
    authz.grant_role(teacher_user.id, ids["campus_main_id"], CampusRole.CAMPUS_TEACHER)
    student_user = get_or_create_user("student@example.com", "Sam Student", UserType.STUDENT)
    db.session.commit()

    if db.session.scalar(select(TeacherProfile).where(TeacherProfile.user_id == teacher_user.id)) is None:
        TeacherService(db.session).upsert_teacher({
            "profile": {"user_id": teacher_user.id, "teacher_type": "CLASS", "specialization": "Early literacy"},
            "assignments": [
                {"campus_id": ids["campus_main_id"], "is_primary": True},
                {"campus_id": ids["campus_branch_id"], "is_primary": False},
            ],
            "subjects": [ids["subject_id"]],
            "classes": [ids["class_id"]],
        }, actor_id=admin.id)

    student = db.session.scalar(select(StudentProfile).where(StudentProfile.user_id == student_user.id))
    if student is None:
        student = StudentProfile(user_id=student_user.id, date_of_birth=date(2021, 3, 14),
                                 class_id=ids["class_id"])
        db.session.add(student)
        db.session.commit()
        CampusStudentService(db.session).assign(admin.id, ids["campus_main_id"], student.id, is_primary=True)

    teachers = CampusTeacherService(db.session).list_for_campus(admin.id, ids["campus_main_id"])
    print(f"[seed] {len(teachers)} teacher(s) on {ids['campus_main_id']}")

# ---- admin ----
def ensure_admin():
    admin = db.session.scalar(select(User).where(func.lower(User.email) == ADMIN_EMAIL))
    if admin:
        return admin
    admin = get_or_create_user(ADMIN_EMAIL, "Administrator", UserType.SUPER_ADMIN)
    db.session.commit()
    print("[seed] admin created")
    return admin

# ---- main ----
def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--reset", action="store_true", help="drop + create + full seed (demo)")
    parser.add_argument("--ensure-admin", action="store_true", help="create only the super admin")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        if args.reset:
            db.drop_all()
            db.create_all()
            seed_people(seed_base_dicts())
            print("[seed] reset+seed complete")
            return

        if args.ensure_admin:
            db.create_all()
            ensure_admin()
            return

        # default mode: fill in whatever demo data is missing
        db.create_all()
        seed_people(seed_base_dicts())
        print("[seed] soft seed complete")

if __name__ == "__main__":
    main()
