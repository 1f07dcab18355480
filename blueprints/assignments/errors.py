"""Ошибки workflow назначений."""
from __future__ import annotations

from blueprints.core.errors import ApiError


class AlreadyAssigned(ApiError):
    status_code = 409
    error_code = "already_assigned"


class CapacityExceeded(ApiError):
    status_code = 409
    error_code = "capacity_exceeded"


class CourseworkUnavailable(ApiError):
    status_code = 409
    error_code = "coursework_unavailable"


class InvalidGrade(ApiError):
    status_code = 400
    error_code = "invalid_grade"


class InvalidStatus(ApiError):
    status_code = 400
    error_code = "invalid_status"


class InvalidTransition(ApiError):
    status_code = 409
    error_code = "invalid_transition"

    def __init__(self, from_status: str, to_status: str):
        super().__init__(
            f"transition {from_status} -> {to_status} is not allowed",
            extra={"from_status": from_status, "to_status": to_status},
        )
