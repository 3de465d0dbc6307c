"""
Error taxonomy for the JSON API.

Services raise these; the handlers registered in ``create_app()`` turn them
into the response envelope with the matching status code.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class ApiError(Exception):
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def payload(self) -> dict[str, Any]:
        return {}


class ValidationError(ApiError):
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: list[FieldError], message: str | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors)

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([FieldError(field, message)], message)

    def payload(self) -> dict[str, Any]:
        return {"errors": [e.to_dict() for e in self.errors]}


class InvalidType(ApiError):
    status_code = 400
    default_message = "Invalid file type"


class InvalidReference(ApiError):
    status_code = 400
    default_message = "Referenced record does not exist"


class Unauthorized(ApiError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(ApiError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class Conflict(ApiError):
    status_code = 409
    default_message = "Record already exists"


class Blocked(ApiError):
    status_code = 409
    default_message = "Delete blocked by dependent records"

    def __init__(self, course_count: int, message: str | None = None) -> None:
        super().__init__(message)
        self.course_count = course_count

    def payload(self) -> dict[str, Any]:
        return {"courseCount": self.course_count}


class FileTooLarge(ApiError):
    status_code = 413
    default_message = "File too large"


class ServerMisconfigured(ApiError):
    status_code = 500
    default_message = "Server misconfiguration"


class InternalError(ApiError):
    status_code = 500
    default_message = "Internal Server Error"
