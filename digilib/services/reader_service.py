"""Opening a book for reading and recording page turns."""
from __future__ import annotations

from typing import Any, Dict, Optional

from digilib.services import book_access_service, book_service, reading_progress_service
from digilib.services.book_service import BookNotFoundError
from digilib.services.session_service import SessionUser
from digilib.utils.identity import ensure_authenticated
from digilib.utils.logging import get_logger

LOG = get_logger("reader_service")


class AccessDeniedError(RuntimeError):
    """Raised when a non-admin reader has no active grant for the book."""

    def __init__(self, code: str, *, expired: bool = False) -> None:
        super().__init__(code)
        self.expired = expired


def _require_access(user: SessionUser, book_id: str) -> None:
    check = book_access_service.resolve_access(user, book_id)
    if not check.has_access:
        LOG.info("Reader access denied user_id=%s book_id=%s status=%s", user.id, book_id, check.status.value)
        code = "access_expired" if check.expired else "access_denied"
        raise AccessDeniedError(code, expired=check.expired)


def open_book(user: Optional[SessionUser], book_id: str) -> Dict[str, Any]:
    ensure_authenticated(user)
    book = book_service.get_book(book_id)
    if book is None:
        raise BookNotFoundError("book_missing")
    _require_access(user, book_id)  # type: ignore[arg-type]
    progress = reading_progress_service.get_reading_progress(user.id, book_id)  # type: ignore[union-attr]
    return {
        "book": book,
        "pdf_url": book_service.get_read_url(book_id),
        "progress": progress,
        "resume_page": (progress or {}).get("current_page") or 1,
    }


def turn_page(
    user: Optional[SessionUser],
    book_id: str,
    page: Any,
    total_pages: Any = None,
) -> Dict[str, Any]:
    ensure_authenticated(user)
    if book_service.get_book(book_id) is None:
        raise BookNotFoundError("book_missing")
    _require_access(user, book_id)  # type: ignore[arg-type]
    return reading_progress_service.save_reading_progress(user.id, book_id, page, total_pages)  # type: ignore[union-attr]


__all__ = ["AccessDeniedError", "open_book", "turn_page"]
