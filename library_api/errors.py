"""Error taxonomy for the library service.

Every failure surfaced to a caller is a ``LibraryError`` subclass carrying a
human-readable ``message`` and the HTTP ``status_code`` the API answers with.
Models raise them; ``app.create_app`` registers one handler that renders
``{"error": message}``.
"""
from typing import Any, Dict, Optional


class LibraryError(Exception):
    """Base class for all errors reported back to the caller."""

    status_code: int = 500
    default_message: str = 'Unexpected error'

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {'error': self.message}


class ValidationError(LibraryError):
    """Missing or malformed input."""
    status_code = 400
    default_message = 'Invalid input'


class InvalidCredentialsError(LibraryError):
    """Login with an unknown email or a wrong password."""
    status_code = 400
    default_message = 'Invalid email or password'


class NotFoundError(LibraryError):
    status_code = 404
    default_message = 'Not found'


class ConflictError(LibraryError):
    status_code = 409
    default_message = 'Conflict'


class AlreadyBorrowedError(ConflictError):
    """An open loan for the same user and book already exists."""
    status_code = 400
    default_message = 'Book already borrowed'


class UnavailableError(LibraryError):
    status_code = 400
    default_message = 'Book not available'


class ForbiddenError(LibraryError):
    status_code = 403
    default_message = 'Admin access required'


class InvalidCredentialError(LibraryError):
    """Missing, malformed, expired or unsigned access token."""
    status_code = 401
    default_message = 'Invalid token'


class UnexpectedError(LibraryError):
    status_code = 500
    default_message = 'Unexpected error'
