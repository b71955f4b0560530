"""Repository helpers for per-user/per-book access grants."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func

from digilib.db import app_session
from digilib.db.models import Book, BookAccess, UserProfile


def get_grant(user_id: str, book_id: str) -> Optional[BookAccess]:
    with app_session() as session:
        return session.get(BookAccess, (user_id, book_id))


def upsert_grant(
    *,
    user_id: str,
    book_id: str,
    granted_by: Optional[str],
    granted_at: datetime,
    expires_at: Optional[datetime],
) -> BookAccess:
    """Create the grant or overwrite grantor, grant time and expiry."""
    with app_session() as session:
        record = session.get(BookAccess, (user_id, book_id))
        if record is None:
            record = BookAccess(user_id=user_id, book_id=book_id)
            session.add(record)
        record.granted_by = granted_by
        record.granted_at = granted_at
        record.expires_at = expires_at
        return record


def delete_grant(user_id: str, book_id: str) -> bool:
    with app_session() as session:
        deleted = (
            session.query(BookAccess)
            .filter(BookAccess.user_id == user_id, BookAccess.book_id == book_id)
            .delete(synchronize_session=False)
        )
        return bool(deleted)


def list_for_user_with_books(user_id: str) -> List[Tuple[BookAccess, Book]]:
    with app_session() as session:
        rows = (
            session.query(BookAccess, Book)
            .join(Book, Book.id == BookAccess.book_id)
            .filter(BookAccess.user_id == user_id)
            .order_by(BookAccess.granted_at.desc())
            .all()
        )
        return [(grant, book) for grant, book in rows]


def list_for_book_with_profiles(book_id: str) -> List[Tuple[BookAccess, Optional[UserProfile]]]:
    with app_session() as session:
        rows = (
            session.query(BookAccess, UserProfile)
            .outerjoin(UserProfile, UserProfile.id == BookAccess.user_id)
            .filter(BookAccess.book_id == book_id)
            .order_by(BookAccess.granted_at.desc())
            .all()
        )
        return [(grant, profile) for grant, profile in rows]


def count_by_user() -> Dict[str, int]:
    with app_session() as session:
        rows = (
            session.query(BookAccess.user_id, func.count(BookAccess.book_id))
            .group_by(BookAccess.user_id)
            .all()
        )
        return {user_id: int(count) for user_id, count in rows}


__all__ = [
    "get_grant",
    "upsert_grant",
    "delete_grant",
    "list_for_user_with_books",
    "list_for_book_with_profiles",
    "count_by_user",
]
