from __future__ import annotations

from typing import Any, Dict, Iterable


class AppError(Exception):
    """Base for errors that map to a JSON error envelope."""

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def details(self) -> Dict[str, Any]:
        return {}


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation Error"

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors = [e for e in errors if e]
        super().__init__(", ".join(self.errors) or self.default_message)

    def details(self) -> Dict[str, Any]:
        return {"validation_errors": self.errors}


class PermissionDeniedError(AppError):
    status_code = 403
    default_message = "You do not have permission to perform this action"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class AuthError(AppError):
    status_code = 401
    default_message = "Not authenticated"


class ConflictError(AppError):
    status_code = 400
    default_message = "Resource already exists"


class BadRequestError(AppError):
    status_code = 400
    default_message = "Bad request"
