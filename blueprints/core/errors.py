"""
Типизированные ошибки API.

Сервисы бросают наследников ApiError, единый обработчик в core/routes.py
превращает их в JSON: {"error": <error_code>, "detail": <detail>, ...extra}.
"""
from __future__ import annotations
from typing import Any, Dict, Optional


class ApiError(Exception):
    """Базовая ошибка API."""

    status_code = 400
    error_code = "bad_request"

    def __init__(
        self,
        detail: str | None = None,
        *,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        self.detail = detail or self.error_code
        if error_code:
            self.error_code = error_code
        if status_code:
            self.status_code = status_code
        self.extra = extra or {}
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error_code, "detail": self.detail}
        body.update(self.extra)
        return body


class NotFound(ApiError):
    status_code = 404
    error_code = "not_found"

    def __init__(self, entity: str, entity_id: Any = None):
        detail = f"{entity} {entity_id} not found" if entity_id is not None else f"{entity} not found"
        super().__init__(detail, extra={"entity": entity})


class Forbidden(ApiError):
    status_code = 403
    error_code = "forbidden"


class Conflict(ApiError):
    status_code = 409
    error_code = "conflict"


class TransientError(ApiError):
    """Сбой хранилища (I/O, таймаут); повтор остаётся на стороне клиента."""

    status_code = 503
    error_code = "storage_unavailable"
