"""
Domain exceptions shared by the moderation and check-in services.

Services raise these to their immediate caller; nothing is retried
internally.  Every class derives from ``ValueError`` so that code which
only distinguishes "bad request" from "server error" can keep catching
``ValueError``.  API endpoints translate them into HTTP responses using
the ``status_code`` attribute.
"""

from typing import Optional


class TurfPlatformError(ValueError):
    """Base class for all errors raised by the service layer."""

    status_code: int = 400

    def __init__(self, message: str, *, record_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.record_id = record_id


class NotFoundError(TurfPlatformError):
    """Referenced turf or booking does not exist at time of operation."""

    status_code = 404


class UnauthorizedError(TurfPlatformError):
    """Caller's owner identity does not match the turf's ``owner_id``."""

    status_code = 403


class ValidationError(TurfPlatformError):
    """Required input missing or malformed, or a stored record failed validation."""

    status_code = 422


class ConflictError(TurfPlatformError):
    """The record changed underneath the caller or is in the wrong state."""

    status_code = 409


class StoreError(TurfPlatformError):
    """Underlying persistence read or write failed."""

    status_code = 503
