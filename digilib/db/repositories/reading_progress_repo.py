"""Repository helpers for reading progress rows keyed by (user_id, book_id)."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from digilib.db import app_session
from digilib.db.models import ReadingProgress
from digilib.utils.logging import get_logger

LOG = get_logger("reading_progress_repo")


def get_progress(user_id: str, book_id: str) -> Optional[ReadingProgress]:
    with app_session() as session:
        return session.get(ReadingProgress, (user_id, book_id))


def _write(
    user_id: str,
    book_id: str,
    current_page: int,
    total_pages: Optional[int],
    progress: int,
    last_read_at: datetime,
) -> ReadingProgress:
    with app_session() as session:
        record = session.get(ReadingProgress, (user_id, book_id))
        if record is None:
            record = ReadingProgress(user_id=user_id, book_id=book_id)
            session.add(record)
        record.current_page = current_page
        record.total_pages = total_pages
        record.progress = progress
        record.last_read_at = last_read_at
        return record


def upsert_progress(
    *,
    user_id: str,
    book_id: str,
    current_page: int,
    total_pages: Optional[int],
    progress: int,
    last_read_at: datetime,
) -> ReadingProgress:
    """Create or overwrite the single row for the pair (last write wins)."""
    try:
        return _write(user_id, book_id, current_page, total_pages, progress, last_read_at)
    except IntegrityError:
        # a concurrent writer inserted the row first; it exists now, so update it
        LOG.info("progress insert raced user_id=%s book_id=%s; retrying as update", user_id, book_id)
        return _write(user_id, book_id, current_page, total_pages, progress, last_read_at)


def list_for_user(user_id: str) -> List[ReadingProgress]:
    with app_session() as session:
        return (
            session.query(ReadingProgress)
            .filter(ReadingProgress.user_id == user_id)
            .order_by(ReadingProgress.last_read_at.desc())
            .all()
        )


def delete_progress(user_id: str, book_id: str) -> bool:
    with app_session() as session:
        record = session.get(ReadingProgress, (user_id, book_id))
        if not record:
            return False
        session.delete(record)
        return True


def count_rows(user_id: str, book_id: str) -> int:
    with app_session() as session:
        return (
            session.query(ReadingProgress)
            .filter(ReadingProgress.user_id == user_id, ReadingProgress.book_id == book_id)
            .count()
        )


__all__ = [
    "get_progress",
    "upsert_progress",
    "list_for_user",
    "delete_progress",
    "count_rows",
]
