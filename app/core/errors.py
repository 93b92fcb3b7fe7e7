"""Classified errors raised by the fleet services.

Every service failure is one of these; the API layer renders them with a
single exception handler so routers never translate errors by hand.
"""

from typing import Optional


class FleetError(Exception):
    """Base class for classified service errors"""

    kind = "error"
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(FleetError):
    """Missing or malformed input"""

    kind = "validation_error"
    status_code = 400


class NotFoundError(FleetError):
    """Unknown id"""

    kind = "not_found"
    status_code = 404


class ConflictError(FleetError):
    """Duplicate version, or an operation blocked by an in-flight deployment"""

    kind = "conflict"
    status_code = 409


class InvalidStateError(FleetError):
    """Deploy or cancel attempted from the wrong lifecycle state"""

    kind = "invalid_state"
    status_code = 400


class StorageError(FleetError):
    """Storage backend unreachable or a multi-backend store failed"""

    kind = "storage_error"
    status_code = 500


class AuthError(FleetError):
    """Missing or invalid credential, or insufficient role"""

    kind = "auth_error"
    status_code = 401


__all__ = [
    "FleetError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "InvalidStateError",
    "StorageError",
    "AuthError",
]
