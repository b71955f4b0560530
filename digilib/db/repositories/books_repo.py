"""Repository helpers for book metadata rows."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from digilib.db import app_session
from digilib.db.models import Book


def list_books() -> List[Book]:
    with app_session() as session:
        return (
            session.query(Book)
            .order_by(Book.created_at.desc(), Book.id.asc())
            .all()
        )


def get_book(book_id: str) -> Optional[Book]:
    with app_session() as session:
        return session.get(Book, book_id)


def create_book(**fields: Any) -> Book:
    book = Book(**fields)
    with app_session() as session:
        session.add(book)
    return book


def update_book(book_id: str, updates: Dict[str, Any]) -> Optional[Book]:
    with app_session() as session:
        book = session.get(Book, book_id)
        if not book:
            return None
        for key, value in updates.items():
            if key in Book.EDITABLE_FIELDS:
                setattr(book, key, value)
        return book


def delete_book(book_id: str) -> bool:
    with app_session() as session:
        book = session.get(Book, book_id)
        if not book:
            return False
        session.delete(book)
        return True


__all__ = [
    "list_books",
    "get_book",
    "create_book",
    "update_book",
    "delete_book",
]
