"""Reading progress: one row per (user, book), last write wins."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from digilib.db.repositories import reading_progress_repo
from digilib.utils import constants
from digilib.utils.dates import isoformat, utcnow
from digilib.utils.logging import get_logger

LOG = get_logger("reading_progress_service")


class ProgressValidationError(ValueError):
    """Raised for page numbers that cannot be stored."""


def compute_progress_percent(current_page: int, total_pages: int) -> int:
    """Percentage of ``current_page`` over ``total_pages``, rounded half up.

    Integer arithmetic keeps 0.5 boundaries exact (e.g. 1/8 -> 13).
    """
    if total_pages <= 0:
        raise ValueError("total_pages must be positive")
    page = min(max(current_page, 0), total_pages)
    return (200 * page + total_pages) // (2 * total_pages)


def _as_page(value: Any, code: str) -> int:
    if isinstance(value, bool):
        raise ProgressValidationError(code)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ProgressValidationError(code) from exc


def save_reading_progress(
    user_id: str,
    book_id: str,
    current_page: Any,
    total_pages: Any = None,
    *,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    page = _as_page(current_page, "page_invalid")
    if page < 1:
        raise ProgressValidationError("page_invalid")
    total: Optional[int] = None
    if total_pages not in (None, ""):
        total = _as_page(total_pages, "total_pages_invalid")
        if total < 0:
            raise ProgressValidationError("total_pages_invalid")

    existing = reading_progress_repo.get_progress(user_id, book_id)
    if not total and existing is not None and existing.total_pages:
        total = existing.total_pages

    if total:
        page = min(page, total)
        percent = compute_progress_percent(page, total)
    else:
        percent = int(existing.progress or 0) if existing is not None else 0
        total = None

    record = reading_progress_repo.upsert_progress(
        user_id=user_id,
        book_id=book_id,
        current_page=page,
        total_pages=total,
        progress=percent,
        last_read_at=now or utcnow(),
    )
    LOG.debug("Saved progress user_id=%s book_id=%s page=%s progress=%s", user_id, book_id, page, percent)
    return record.as_dict()


def get_reading_progress(user_id: str, book_id: str) -> Optional[Dict[str, Any]]:
    record = reading_progress_repo.get_progress(user_id, book_id)
    return record.as_dict() if record else None


def get_user_reading_progress(user_id: str) -> List[Dict[str, Any]]:
    return [r.as_dict() for r in reading_progress_repo.list_for_user(user_id)]


def get_recently_read(user_id: str, limit: int = constants.RECENT_BOOKS_COUNT) -> List[Dict[str, Any]]:
    return get_user_reading_progress(user_id)[: max(limit, 0)]


def delete_reading_progress(user_id: str, book_id: str) -> bool:
    return reading_progress_repo.delete_progress(user_id, book_id)


def get_reading_stats(user_id: str) -> Dict[str, Any]:
    records = reading_progress_repo.list_for_user(user_id)
    total = len(records)
    values = [int(r.progress or 0) for r in records]
    last_read = max((r.last_read_at for r in records), default=None)
    return {
        "total_books": total,
        "completed_books": sum(1 for v in values if v == 100),
        "in_progress_books": sum(1 for v in values if 0 < v < 100),
        "average_progress": (2 * sum(values) + total) // (2 * total) if total else 0,
        "last_read_at": isoformat(last_read),
    }


__all__ = [
    "ProgressValidationError",
    "compute_progress_percent",
    "save_reading_progress",
    "get_reading_progress",
    "get_user_reading_progress",
    "get_recently_read",
    "delete_reading_progress",
    "get_reading_stats",
]
