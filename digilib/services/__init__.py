"""Service exports."""

from . import (
    auth_service,
    book_access_service,
    book_service,
    category_service,
    reader_service,
    reading_progress_service,
    session_service,
    storage_service,
    user_service,
)
from .auth_service import (
    AuthValidationError,
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
)
from .book_access_service import AccessCheck, AccessGrantError, AccessStatus
from .book_service import BookNotFoundError, BookValidationError
from .reader_service import AccessDeniedError
from .session_service import SessionUser, coordinator

__all__ = [
    "auth_service",
    "book_access_service",
    "book_service",
    "category_service",
    "reader_service",
    "reading_progress_service",
    "session_service",
    "storage_service",
    "user_service",
    "AuthValidationError",
    "EmailAlreadyRegisteredError",
    "InvalidCredentialsError",
    "AccessCheck",
    "AccessGrantError",
    "AccessStatus",
    "BookNotFoundError",
    "BookValidationError",
    "AccessDeniedError",
    "SessionUser",
    "coordinator",
]
