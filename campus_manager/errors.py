from __future__ import annotations

from typing import Any


class CampusError(Exception):
    """Base class for request-terminal domain errors."""

    status_code = 400

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationError(CampusError):
    status_code = 400

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, [{"field": field, "message": message}])


class AuthenticationRequiredError(CampusError):
    status_code = 401


class PermissionDeniedError(CampusError):
    status_code = 403


class NotFoundError(CampusError):
    status_code = 404


class ConflictError(CampusError):
    status_code = 409


class NotAvailableError(CampusError):
    status_code = 409


class InvalidTransitionError(CampusError):
    status_code = 409


class ConcurrentModificationError(CampusError):
    status_code = 409


class StorageError(RuntimeError):
    pass


class StaleDocumentError(StorageError):
    pass


class DuplicateDocumentError(StorageError):
    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field
