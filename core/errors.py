"""
core/errors.py -- Typed error hierarchy shared by auth/ and api/.

Every failure the service can report to a client is one of these classes.
The auth core raises them; api/main.py turns them into JSON responses with a
single exception handler keyed on AppError. Status codes live on the class so
the transport layer never has to guess.

  AppError
    ValidationError     400  one FieldIssue per offending field
    ConflictError       409  duplicate email
    UnauthorizedError   401  bad credentials, missing token
      InvalidTokenError 401  malformed or mis-signed token
      ExpiredTokenError 401  signature fine, exp in the past
    ForbiddenError      403  role mismatch
    StorageError        500  repository failure (driver error re-classified)

Layer rule: core/ is the kernel. No imports from api/ or auth/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldIssue:
    """One validation problem: which field, and what is wrong with it."""

    field: str
    message: str


class AppError(Exception):
    """Base class for errors with a client-facing message and status code."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid input"

    def __init__(self, message: str | None = None, issues: list[FieldIssue] | None = None) -> None:
        super().__init__(message)
        self.issues: list[FieldIssue] = list(issues or [])


class ConflictError(AppError):
    status_code = 409
    code = "conflict"
    default_message = "Email already in use"


class UnauthorizedError(AppError):
    status_code = 401
    code = "unauthorized"
    default_message = "Invalid credentials"


class InvalidTokenError(UnauthorizedError):
    code = "invalid_token"
    default_message = "Invalid token"


class ExpiredTokenError(UnauthorizedError):
    code = "expired_token"
    default_message = "Token has expired"


class ForbiddenError(AppError):
    status_code = 403
    code = "forbidden"
    default_message = "Forbidden"


class StorageError(AppError):
    """A repository could not complete an operation.

    The original driver exception is chained (raise ... from exc) for the log;
    the client only ever sees the generic message.
    """

    status_code = 500
    code = "storage_error"
    default_message = "Storage unavailable"
