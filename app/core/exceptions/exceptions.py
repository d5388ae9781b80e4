from typing import List, Optional

from app.core import messages


class AppError(Exception):
    """Base class for all application-level errors."""
    pass


class DomainError(AppError):
    """Base for domain logic errors.

    Carries the HTTP status the API layer should answer with, a stable
    human-readable `message` and optional `details`.
    """
    status_code = 400
    default_message = messages.BAD_REQUEST

    def __init__(self, message: Optional[str] = None, details: Optional[List[str]] = None):
        self.message = message or self.default_message
        self.details = details or []
        super().__init__(self.message)


class ConflictError(DomainError):
    status_code = 409
    default_message = messages.RESOURCE_ALREADY_EXISTS


class NotFoundError(DomainError):
    status_code = 404
    default_message = messages.RESOURCE_NOT_FOUND


class BadRequestError(DomainError):
    status_code = 400
    default_message = messages.BAD_REQUEST


class InvalidCursorError(BadRequestError):
    def __init__(self, cursor: str, reason: str = ""):
        self.cursor = cursor
        super().__init__(messages.INVALID_CURSOR_FORMAT, [reason] if reason else None)



class InfrastructureError(AppError):
    """Base for infrastructure-related errors (DB, cache, etc)."""
    pass

class CacheUnavailableError(InfrastructureError):
    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.message = f"Cache {operation} failed: {detail}"
        super().__init__(self.message)
