from datetime import datetime, UTC
from enum import Enum as PyEnum

from flask_login import UserMixin
from sqlalchemy import (
    CheckConstraint, ForeignKey, Index, Boolean, DateTime, Integer, String, Text, text
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from werkzeug.security import generate_password_hash, check_password_hash

from extensions import db, login_manager


def utcnow() -> datetime:
    # в БД храним naive UTC
    return datetime.now(UTC).replace(tzinfo=None)


# ---------- Enums ----------
class Role(str, PyEnum):
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


class DifficultyLevel(str, PyEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class CourseworkStatus(str, PyEnum):
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    REVIEWED = "reviewed"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def values(cls) -> list[str]:
        return [s.value for s in cls]


# ---------- Association Tables ----------
teacher_subjects = db.Table(
    "teacher_subjects",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    db.Column("subject_id", db.Integer, db.ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
)


# ---------- Identity ----------
class User(UserMixin, db.Model):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    # строковое поле, чтобы не зависеть от конкретного типа БД
    role: Mapped[str] = mapped_column(String(16), index=True, nullable=False, default=Role.STUDENT.value)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    subjects = relationship("Subject", secondary=teacher_subjects, back_populates="teachers")

    def set_password(self, raw: str) -> None:
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw: str) -> bool:
        return bool(self.password_hash) and check_password_hash(self.password_hash, raw)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    @property
    def is_teacher(self) -> bool:
        return self.role == Role.TEACHER.value

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT.value

    def __repr__(self):
        return f"<User {self.email} {self.role}>"


@login_manager.user_loader
def load_user(user_id: str):
    try:
        user = db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None
    # деактивированный пользователь теряет сессию
    if user is None or not user.is_active:
        return None
    return user


# ---------- Catalog ----------
class Subject(db.Model):
    __tablename__ = "subjects"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    teachers = relationship("User", secondary=teacher_subjects, back_populates="subjects", order_by="User.id")

    def __repr__(self):
        return f"<Subject {self.code}>"


class Coursework(db.Model):
    __tablename__ = "courseworks"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    requirements: Mapped[str | None] = mapped_column(Text)
    subject_id: Mapped[int] = mapped_column(ForeignKey("subjects.id", ondelete="RESTRICT"), nullable=False, index=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    max_students: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    difficulty_level: Mapped[str] = mapped_column(String(20), nullable=False, default=DifficultyLevel.MEDIUM.value)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # счётчик активных назначений; меняется только вместе со student_courseworks
    enrolled_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, index=True)

    subject = relationship("Subject")
    teacher = relationship("User")

    __table_args__ = (
        CheckConstraint("max_students >= 1", name="max_students_positive"),
        CheckConstraint("enrolled_count >= 0", name="enrolled_count_non_negative"),
        CheckConstraint("enrolled_count <= max_students", name="enrolled_count_within_capacity"),
        CheckConstraint("difficulty_level IN ('easy','medium','hard')", name="difficulty_level"),
    )

    @property
    def free_slots(self) -> int:
        return max(self.max_students - self.enrolled_count, 0)

    def __repr__(self):
        return f"<Coursework {self.id} {self.title!r}>"


# ---------- Workflow ----------
class StudentCoursework(db.Model):
    __tablename__ = "student_courseworks"

    id: Mapped[int] = mapped_column(primary_key=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    coursework_id: Mapped[int] = mapped_column(ForeignKey("courseworks.id", ondelete="CASCADE"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=CourseworkStatus.ASSIGNED.value)
    grade: Mapped[int | None] = mapped_column(Integer)
    feedback: Mapped[str | None] = mapped_column(Text)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)

    student = relationship("User")
    coursework = relationship("Coursework")

    __table_args__ = (
        # не более одного активного назначения на студента
        Index(
            "uq_student_courseworks_active_student", "student_id",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
        CheckConstraint("grade IS NULL OR (grade >= 2 AND grade <= 5)", name="grade_range"),
        Index("ix_student_courseworks_coursework_status", "coursework_id", "status"),
    )

    def __repr__(self):
        return f"<StudentCoursework {self.id} s={self.student_id} cw={self.coursework_id} {self.status}>"
