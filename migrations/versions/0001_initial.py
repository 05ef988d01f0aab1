"""initial tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

ENUMS = {
    'status': ('ACTIVE', 'INACTIVE', 'ARCHIVED'),
    'usertype': ('SUPER_ADMIN', 'ADMIN', 'COORDINATOR', 'TEACHER', 'STUDENT', 'PARENT'),
    'campustype': ('MAIN', 'BRANCH'),
    'teachertype': ('CLASS', 'SUBJECT'),
    'campuspermission': (
        'MANAGE_CAMPUS', 'MANAGE_CAMPUS_CLASSES', 'MANAGE_CAMPUS_TEACHERS', 'MANAGE_CAMPUS_STUDENTS',
        'VIEW_CAMPUS_TEACHERS', 'VIEW_CAMPUS_STUDENTS', 'VIEW_CAMPUS_CLASSES', 'VIEW_PROGRAMS',
    ),
}

ACTIVE_PRIMARY = sa.text("is_primary AND status = 'ACTIVE'")

def _enum(name):
    # postgres types are created once up front, tables only reference them
    values = ENUMS[name]
    return sa.Enum(*values, name=name).with_variant(
        postgresql.ENUM(*values, name=name, create_type=False), 'postgresql')

def _stamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]

def _membership(table, person_col, person_table):
    op.create_table(table,
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column(person_col, sa.String(36), sa.ForeignKey(f'{person_table}.id', ondelete='CASCADE'), nullable=False),
        sa.Column('campus_id', sa.String(36), sa.ForeignKey('campuses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', _enum('status'), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        *_stamps(),
        sa.UniqueConstraint(person_col, 'campus_id', name=f'uq_{table[:-2]}'),
    )
    op.create_index(f'ix_{table}_campus_id', table, ['campus_id'])
    op.create_index(f'uq_{table[:-2]}_active_primary', table, [person_col], unique=True,
                    sqlite_where=ACTIVE_PRIMARY, postgresql_where=ACTIVE_PRIMARY)

def upgrade():
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for name, values in ENUMS.items():
            postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table('users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('user_type', _enum('usertype'), nullable=False),
        sa.Column('status', _enum('status'), nullable=False),
        *_stamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_user_type', 'users', ['user_type'])

    op.create_table('roles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(50), nullable=False, unique=True),
        sa.Column('description', sa.String(255), nullable=True),
    )
    op.create_table('role_permissions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('role_id', sa.String(36), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('permission', _enum('campuspermission'), nullable=False),
        sa.UniqueConstraint('role_id', 'permission', name='uq_role_permission'),
    )

    op.create_table('campuses',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('type', _enum('campustype'), nullable=False),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('country', sa.String(100), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('status', _enum('status'), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=True),
        *_stamps(),
    )
    op.create_index('ix_campuses_code', 'campuses', ['code'], unique=True)

    op.create_table('campus_user_roles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('campus_id', sa.String(36), sa.ForeignKey('campuses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role_id', sa.String(36), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        sa.UniqueConstraint('user_id', 'campus_id', 'role_id', name='uq_campus_user_role'),
    )
    op.create_index('ix_campus_user_roles_user_campus', 'campus_user_roles', ['user_id', 'campus_id'])

    op.create_table('programs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', _enum('status'), nullable=False),
    )
    op.create_table('class_groups',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('program_id', sa.String(36), sa.ForeignKey('programs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', _enum('status'), nullable=False),
    )
    op.create_table('subjects',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('class_group_id', sa.String(36), sa.ForeignKey('class_groups.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', _enum('status'), nullable=False),
    )
    op.create_table('classes',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('campus_id', sa.String(36), sa.ForeignKey('campuses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('class_group_id', sa.String(36), sa.ForeignKey('class_groups.id', ondelete='SET NULL'), nullable=True),
        sa.Column('subject_id', sa.String(36), sa.ForeignKey('subjects.id', ondelete='SET NULL'), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', _enum('status'), nullable=False),
    )
    op.create_index('ix_classes_campus_id', 'classes', ['campus_id'])

    op.create_table('teacher_profiles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('teacher_type', _enum('teachertype'), nullable=False),
        sa.Column('specialization', sa.String(255), nullable=True),
        *_stamps(),
    )
    op.create_table('student_profiles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('class_id', sa.String(36), sa.ForeignKey('classes.id', ondelete='SET NULL'), nullable=True),
        *_stamps(),
    )

    _membership('teacher_campuses', 'teacher_id', 'teacher_profiles')
    _membership('student_campuses', 'student_id', 'student_profiles')

    op.create_table('teacher_subjects',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('teacher_id', sa.String(36), sa.ForeignKey('teacher_profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('subject_id', sa.String(36), sa.ForeignKey('subjects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', _enum('status'), nullable=False),
        sa.UniqueConstraint('teacher_id', 'subject_id', name='uq_teacher_subject'),
    )
    op.create_table('teacher_classes',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('teacher_id', sa.String(36), sa.ForeignKey('teacher_profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('class_id', sa.String(36), sa.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', _enum('status'), nullable=False),
        sa.UniqueConstraint('teacher_id', 'class_id', name='uq_teacher_class'),
    )

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=True),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('entity', sa.String(100), nullable=False),
        sa.Column('entity_id', sa.String(36), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

def downgrade():
    for table in ('audit_logs', 'teacher_classes', 'teacher_subjects', 'student_campuses',
                  'teacher_campuses', 'student_profiles', 'teacher_profiles', 'classes',
                  'subjects', 'class_groups', 'programs', 'campus_user_roles', 'campuses',
                  'role_permissions', 'roles', 'users'):
        op.drop_table(table)
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for name in ENUMS:
            postgresql.ENUM(name=name).drop(bind, checkfirst=True)
