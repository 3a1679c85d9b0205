"""
Error taxonomy shared by services and routers.

Each error carries the HTTP status it is rendered with; the app registers a
single handler for ``AppError`` that turns it into ``{"error": message}``.
"""


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError, ValueError):
    """Missing or malformed input."""

    status_code = 400


class AuthError(AppError):
    """Missing, invalid or expired credentials (401 or 403)."""

    status_code = 401


class NotFoundError(AppError, LookupError):
    """Resource absent, or not owned by the caller."""

    status_code = 404


class ConflictError(AppError):
    """Duplicate username or email."""

    status_code = 400


class InternalError(AppError):
    """Unexpected failure; detail is hidden outside debug mode."""

    status_code = 500
