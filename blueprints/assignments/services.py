# blueprints/assignments/services.py
"""
Workflow назначения студентов на курсовые работы.

Каждая изменяющая операция: проверки предусловий, затем ровно один commit.
Повторов нет, сбой хранилища отдаётся вызывающему как TransientError.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional

from flask import current_app

from extensions import db
from models import User, Role, StudentCoursework, CourseworkStatus, utcnow
from blueprints.core.errors import NotFound
from blueprints.core.http import iso_z
from . import repository
from .errors import (
    AlreadyAssigned, CapacityExceeded, CourseworkUnavailable,
    InvalidGrade, InvalidStatus, InvalidTransition,
)

log = logging.getLogger(__name__)

GRADE_MIN = 2
GRADE_MAX = 5

S = CourseworkStatus
TRANSITIONS: Dict[str, FrozenSet[str]] = {
    S.ASSIGNED.value: frozenset({S.IN_PROGRESS.value, S.SUBMITTED.value}),
    S.IN_PROGRESS.value: frozenset({S.SUBMITTED.value}),
    S.SUBMITTED.value: frozenset({S.IN_PROGRESS.value, S.REVIEWED.value}),
    # повторная проверка и возврат на доработку
    S.REVIEWED.value: frozenset({S.IN_PROGRESS.value, S.REVIEWED.value, S.COMPLETED.value, S.FAILED.value}),
    S.COMPLETED.value: frozenset(),
    S.FAILED.value: frozenset(),
}


@dataclass
class AssignmentOut:
    id: int
    student_id: int
    student_name: str
    coursework_id: int
    coursework_title: str
    teacher_id: int
    status: str
    grade: Optional[int]
    feedback: Optional[str]
    submitted_at: Optional[datetime]
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: StudentCoursework) -> "AssignmentOut":
        return cls(
            id=row.id,
            student_id=row.student_id,
            student_name=row.student.full_name,
            coursework_id=row.coursework_id,
            coursework_title=row.coursework.title,
            teacher_id=row.coursework.teacher_id,
            status=row.status,
            grade=row.grade,
            feedback=row.feedback,
            submitted_at=row.submitted_at,
            completed_at=row.completed_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "student_id": self.student_id,
            "student_name": self.student_name,
            "coursework_id": self.coursework_id,
            "coursework_title": self.coursework_title,
            "teacher_id": self.teacher_id,
            "status": self.status,
            "grade": self.grade,
            "feedback": self.feedback,
            "submitted_at": iso_z(self.submitted_at),
            "completed_at": iso_z(self.completed_at),
            "created_at": iso_z(self.created_at),
            "updated_at": iso_z(self.updated_at),
        }


@dataclass
class StudentSummary:
    student_id: int
    student_name: str
    status: str
    assigned_at: datetime
    submitted_at: Optional[datetime]
    completed_at: Optional[datetime]
    grade: Optional[int]

    def to_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "student_name": self.student_name,
            "status": self.status,
            "assigned_at": iso_z(self.assigned_at),
            "submitted_at": iso_z(self.submitted_at),
            "completed_at": iso_z(self.completed_at),
            "grade": self.grade,
        }


@dataclass
class ProgressReport:
    coursework_id: int
    coursework_title: str
    total_students: int = 0
    assigned_students: int = 0
    in_progress_count: int = 0
    submitted_count: int = 0
    reviewed_count: int = 0
    completed_count: int = 0
    failed_count: int = 0
    students: List[StudentSummary] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "coursework_id": self.coursework_id,
            "coursework_title": self.coursework_title,
            "total_students": self.total_students,
            "assigned_students": self.assigned_students,
            "in_progress_count": self.in_progress_count,
            "submitted_count": self.submitted_count,
            "reviewed_count": self.reviewed_count,
            "completed_count": self.completed_count,
            "failed_count": self.failed_count,
            "students": [s.to_dict() for s in self.students],
        }


_BUCKETS = {
    S.ASSIGNED.value: "assigned_students",
    S.IN_PROGRESS.value: "in_progress_count",
    S.SUBMITTED.value: "submitted_count",
    S.REVIEWED.value: "reviewed_count",
    S.COMPLETED.value: "completed_count",
    S.FAILED.value: "failed_count",
}


# ---------- helpers ----------
def _load(assignment_id: int) -> StudentCoursework:
    row = repository.get_assignment(assignment_id)
    if row is None:
        raise NotFound("assignment", assignment_id)
    return row


def _check_transition(row: StudentCoursework, target: str) -> None:
    if not current_app.config.get("COURSEWORK_ENFORCE_TRANSITIONS", True):
        return
    if target not in TRANSITIONS.get(row.status, frozenset()):
        log.info("transition rejected", extra={
            "event": "transition_rejected", "assignment_id": row.id,
            "from_status": row.status, "to_status": target,
        })
        raise InvalidTransition(row.status, target)


def _move(row: StudentCoursework, target: str) -> None:
    log.info("assignment status changed", extra={
        "event": "status_changed", "assignment_id": row.id,
        "from_status": row.status, "to_status": target,
    })
    repository.update_status(row, target)


# ---------- операции ----------
def assign_student(student_id: int, coursework_id: int) -> AssignmentOut:
    """Записать студента на курсовую.

    Порядок проверок: студент (активный, с ролью STUDENT), существующее назначение, курсовая,
    открыта ли запись, свободные места. Место занимается атомарно.
    """
    student = db.session.get(User, student_id)
    if student is None or student.role != Role.STUDENT.value or not student.is_active:
        raise NotFound("student", student_id)

    if repository.get_assignment_by_student(student_id) is not None:
        raise AlreadyAssigned("student already has an assigned coursework")

    cw, count = repository.get_coursework_with_enrollment_count(coursework_id)
    if not cw.is_available:
        raise CourseworkUnavailable("coursework is closed for enrollment")
    if count >= cw.max_students:
        raise CapacityExceeded("no slots available for this coursework")

    row = repository.create_assignment(student_id, coursework_id, utcnow())
    log.info("student assigned", extra={
        "event": "assigned", "assignment_id": row.id,
        "student_id": student_id, "coursework_id": coursework_id,
    })
    return AssignmentOut.from_row(row)


def get_student_assignment(student_id: int) -> AssignmentOut:
    row = repository.get_assignment_by_student(student_id)
    if row is None:
        raise NotFound("assignment")
    return AssignmentOut.from_row(row)


def get_assignment(assignment_id: int) -> AssignmentOut:
    return AssignmentOut.from_row(_load(assignment_id))


def submit(assignment_id: int) -> AssignmentOut:
    row = _load(assignment_id)
    _move(row, S.SUBMITTED.value)
    repository.set_submitted(row, utcnow())
    repository.save()
    return AssignmentOut.from_row(row)


def grade(assignment_id: int, grade: int, feedback: Optional[str] = None) -> AssignmentOut:
    # диапазон проверяется до любых чтений и записей
    if isinstance(grade, bool) or not isinstance(grade, int) or not GRADE_MIN <= grade <= GRADE_MAX:
        raise InvalidGrade(f"grade must be between {GRADE_MIN} and {GRADE_MAX}",
                           extra={"grade": grade})
    row = _load(assignment_id)
    _move(row, S.REVIEWED.value)
    repository.set_grade(row, grade, feedback)
    repository.save()
    return AssignmentOut.from_row(row)


def complete(assignment_id: int) -> AssignmentOut:
    row = _load(assignment_id)
    _move(row, S.COMPLETED.value)
    repository.set_completed(row, utcnow())
    repository.save()
    return AssignmentOut.from_row(row)


def update_status(assignment_id: int, status: str) -> AssignmentOut:
    """Прямая смена статуса по таблице TRANSITIONS; timestamps не трогает.

    submit/grade/complete таблицу не проверяют: каждая из них сама
    задаёт свой статус и поля.
    """
    if status not in S.values():
        raise InvalidStatus(f"unknown status {status!r}", extra={"allowed": S.values()})
    row = _load(assignment_id)
    _check_transition(row, status)
    _move(row, status)
    repository.save()
    return AssignmentOut.from_row(row)


def unassign_student(student_id: int) -> None:
    row = repository.get_assignment_by_student(student_id)
    if row is None:
        raise NotFound("assignment")
    assignment_id, coursework_id = row.id, row.coursework_id
    repository.delete_assignment(row, utcnow())
    log.info("student unassigned", extra={
        "event": "unassigned", "assignment_id": assignment_id,
        "student_id": student_id, "coursework_id": coursework_id,
    })


def list_teacher_assignments(teacher_id: int) -> List[AssignmentOut]:
    return [AssignmentOut.from_row(r) for r in repository.list_by_teacher(teacher_id)]


def coursework_progress(coursework_id: int) -> ProgressReport:
    cw = repository.get_coursework(coursework_id)
    report = ProgressReport(coursework_id=cw.id, coursework_title=cw.title)
    for r in repository.list_by_coursework(coursework_id):
        report.total_students += 1
        bucket = _BUCKETS.get(r.status)
        if bucket:
            setattr(report, bucket, getattr(report, bucket) + 1)
        report.students.append(StudentSummary(
            student_id=r.student_id,
            student_name=r.student.full_name,
            status=r.status,
            assigned_at=r.created_at,
            submitted_at=r.submitted_at,
            completed_at=r.completed_at,
            grade=r.grade,
        ))
    return report
