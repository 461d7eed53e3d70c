"""
Custom Exception Classes for the Visage backend

Each exception carries the HTTP status the API answers with, so services can
raise them without knowing about the web layer. The handlers in main.py turn
them into ``{"message": ...}`` responses.
"""


class VisageError(Exception):
    """Base exception for all Visage application errors."""
    status_code = 500

    def __init__(self, message: str = "Something went wrong"):
        super().__init__(message)
        self.message = message


# =============================================================================
# Client Errors
# =============================================================================

class ValidationError(VisageError):
    """Raised when a request is missing a required field or carries a bad value."""
    status_code = 400


class ConflictError(VisageError):
    """Raised when the requested state change already happened (duplicate like, follow, account)."""
    status_code = 400


class AuthError(VisageError):
    """Raised for bad credentials or a missing, invalid or expired token."""
    status_code = 401


class AuthorizationError(VisageError):
    """Raised when the acting user does not own the resource being changed.

    Answered with 401 rather than 403; existing clients treat both the same way.
    """
    status_code = 401


class NotFoundError(VisageError):
    """Raised when a referenced document does not exist."""
    status_code = 404


# =============================================================================
# Media Host Errors
# =============================================================================

class MediaError(VisageError):
    """Base exception for media host failures."""
    status_code = 500


class MediaUploadError(MediaError):
    """Raised when the media host rejects or fails an upload."""
    pass


# =============================================================================
# Database Errors
# =============================================================================

class DatabaseError(VisageError):
    """Base exception for database-related errors."""
    status_code = 500


class DatabaseUnavailableError(DatabaseError):
    """Raised when no database connection is configured."""
    pass


class ConsistencyError(DatabaseError):
    """Raised when the second half of a two-document update failed and was rolled back."""
    pass
