# blueprints/reports/services.py
from __future__ import annotations
from io import StringIO
import csv
from typing import List, Tuple

from models import Coursework
from blueprints.assignments.services import coursework_progress
from blueprints.courseworks.services import list_query


def _fmt(dt) -> str:
    return dt.strftime("%Y-%m-%d %H:%M") if dt else ""


def progress_csv(coursework_id: int) -> str:
    """
    CSV: student_id;student;status;assigned_at;submitted_at;completed_at;grade
    """
    report = coursework_progress(coursework_id)
    buf = StringIO()
    w = csv.writer(buf, delimiter=";")
    w.writerow(["student_id", "student", "status", "assigned_at", "submitted_at", "completed_at", "grade"])
    for s in report.students:
        w.writerow([
            s.student_id, s.student_name, s.status,
            _fmt(s.assigned_at), _fmt(s.submitted_at), _fmt(s.completed_at),
            "" if s.grade is None else s.grade,
        ])
    return buf.getvalue()


def capacity_csv() -> str:
    """
    CSV: coursework_id;title;subject;teacher;max_students;enrolled;free_slots;utilization_pct;is_available
    """
    rows: List[Tuple] = []
    cw: Coursework
    for cw in list_query().all():
        pct = round(100.0 * cw.enrolled_count / cw.max_students, 1) if cw.max_students else 0.0
        rows.append((
            cw.id, cw.title, cw.subject.code, cw.teacher.full_name,
            cw.max_students, cw.enrolled_count, cw.free_slots, pct,
            1 if cw.is_available else 0,
        ))
    buf = StringIO()
    w = csv.writer(buf, delimiter=";")
    w.writerow(["coursework_id", "title", "subject", "teacher", "max_students",
                "enrolled", "free_slots", "utilization_pct", "is_available"])
    w.writerows(rows)
    return buf.getvalue()
