"""Application error hierarchy.

Every hard failure raised by an orchestrator is an ``AppError`` carrying a
machine-readable ``code`` and the HTTP status the API maps it to. Partial
failures are not errors; see ``strata.services.result.Outcome``.
"""

from fastapi import status


class AppError(Exception):
    """Base application error."""

    def __init__(self, message: str, code: str, http_status: int = 400):
        """Initialize error."""
        self.message = message
        self.code = code
        self.http_status = http_status
        super().__init__(message)


class InvalidInputError(AppError):
    """Malformed input: bad date, negative amount, unknown enum value."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, "validation_error", status.HTTP_400_BAD_REQUEST)


class NotFoundError(AppError):
    """Referenced schedule, budget, lot or item does not exist."""

    def __init__(self, message: str = "Not found"):
        super().__init__(message, "not_found", status.HTTP_404_NOT_FOUND)


class ConflictError(AppError):
    """Current state does not allow the requested change."""

    def __init__(self, message: str = "Conflict"):
        super().__init__(message, "conflict", status.HTTP_409_CONFLICT)


class OverAllocationError(ConflictError):
    """Allocations against a levy item exceed its total levy amount."""


class AuthError(AppError):
    """Request carries no usable identity."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, "unauthorized", status.HTTP_401_UNAUTHORIZED)


class StorageError(AppError):
    """Blob store upload, download or URL signing failed."""

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message, "storage_error", status.HTTP_502_BAD_GATEWAY)


class DeliveryError(AppError):
    """Email provider rejected or failed to send a message."""

    def __init__(self, message: str = "Email delivery failed"):
        super().__init__(message, "delivery_error", status.HTTP_502_BAD_GATEWAY)


__all__ = [
    "AppError",
    "InvalidInputError",
    "NotFoundError",
    "ConflictError",
    "OverAllocationError",
    "AuthError",
    "StorageError",
    "DeliveryError",
]
