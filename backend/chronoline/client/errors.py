"""Client-side errors. Both carry the HTTP status when one is known."""

from chronoline.errors import AppError


class StorageError(AppError):
    """A storage adapter call failed; ``message`` is the server's error text when available."""


class AuthClientError(AppError):
    """Registration, login or session check failed."""
