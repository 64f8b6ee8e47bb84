from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from fastapi import status


class ErrorKind(str, Enum):
    """Kinds of failure the API reports to clients."""

    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    INVALID_CREDENTIALS = "invalid_credentials"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class AppError(Exception):
    """Base class for errors rendered into the response envelope."""

    kind: ErrorKind = ErrorKind.INTERNAL
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Any = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return ERROR_STATUS[self.kind]


class ValidationFailure(AppError):
    kind = ErrorKind.VALIDATION
    default_message = "Validation failed"


class Unauthorized(AppError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Could not validate credentials"


class InvalidCredentials(AppError):
    """Login failure; identical for unknown email and wrong password."""

    kind = ErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid credentials"


class NotFound(AppError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found"


class Conflict(AppError):
    kind = ErrorKind.CONFLICT
    default_message = "Resource already exists"
