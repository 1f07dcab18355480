"""initial tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('role', sa.String(16), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table('subjects',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('code', sa.String(20), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('semester', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_subjects'),
    )
    op.create_index('ix_subjects_code', 'subjects', ['code'], unique=True)

    op.create_table('teacher_subjects',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('subject_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE',
                                name='fk_teacher_subjects_user_id_users'),
        sa.ForeignKeyConstraint(['subject_id'], ['subjects.id'], ondelete='CASCADE',
                                name='fk_teacher_subjects_subject_id_subjects'),
        sa.PrimaryKeyConstraint('user_id', 'subject_id', name='pk_teacher_subjects'),
    )

    op.create_table('courseworks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(300), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('requirements', sa.Text(), nullable=True),
        sa.Column('subject_id', sa.Integer(), nullable=False),
        sa.Column('teacher_id', sa.Integer(), nullable=False),
        sa.Column('max_students', sa.Integer(), nullable=False),
        sa.Column('difficulty_level', sa.String(20), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('enrolled_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['subject_id'], ['subjects.id'], ondelete='RESTRICT',
                                name='fk_courseworks_subject_id_subjects'),
        sa.ForeignKeyConstraint(['teacher_id'], ['users.id'], ondelete='RESTRICT',
                                name='fk_courseworks_teacher_id_users'),
        sa.CheckConstraint('max_students >= 1', name='ck_courseworks_max_students_positive'),
        sa.CheckConstraint('enrolled_count >= 0', name='ck_courseworks_enrolled_count_non_negative'),
        sa.CheckConstraint('enrolled_count <= max_students',
                           name='ck_courseworks_enrolled_count_within_capacity'),
        sa.CheckConstraint("difficulty_level IN ('easy','medium','hard')",
                           name='ck_courseworks_difficulty_level'),
        sa.PrimaryKeyConstraint('id', name='pk_courseworks'),
    )
    op.create_index('ix_courseworks_subject_id', 'courseworks', ['subject_id'])
    op.create_index('ix_courseworks_teacher_id', 'courseworks', ['teacher_id'])
    op.create_index('ix_courseworks_deleted_at', 'courseworks', ['deleted_at'])

    op.create_table('student_courseworks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('coursework_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('grade', sa.Integer(), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE',
                                name='fk_student_courseworks_student_id_users'),
        sa.ForeignKeyConstraint(['coursework_id'], ['courseworks.id'], ondelete='CASCADE',
                                name='fk_student_courseworks_coursework_id_courseworks'),
        sa.CheckConstraint('grade IS NULL OR (grade >= 2 AND grade <= 5)',
                           name='ck_student_courseworks_grade_range'),
        sa.PrimaryKeyConstraint('id', name='pk_student_courseworks'),
    )
    op.create_index('ix_student_courseworks_coursework_id', 'student_courseworks', ['coursework_id'])
    op.create_index('ix_student_courseworks_coursework_status', 'student_courseworks',
                    ['coursework_id', 'status'])
    # одно активное назначение на студента
    op.create_index('uq_student_courseworks_active_student', 'student_courseworks', ['student_id'],
                    unique=True,
                    sqlite_where=sa.text('deleted_at IS NULL'),
                    postgresql_where=sa.text('deleted_at IS NULL'))


def downgrade():
    op.drop_index('uq_student_courseworks_active_student', table_name='student_courseworks')
    op.drop_index('ix_student_courseworks_coursework_status', table_name='student_courseworks')
    op.drop_index('ix_student_courseworks_coursework_id', table_name='student_courseworks')
    op.drop_table('student_courseworks')
    op.drop_index('ix_courseworks_deleted_at', table_name='courseworks')
    op.drop_index('ix_courseworks_teacher_id', table_name='courseworks')
    op.drop_index('ix_courseworks_subject_id', table_name='courseworks')
    op.drop_table('courseworks')
    op.drop_table('teacher_subjects')
    op.drop_index('ix_subjects_code', table_name='subjects')
    op.drop_table('subjects')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
