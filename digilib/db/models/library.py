"""ORM models for the library backend tables.

Mirrors the backend schema: auth identities, profiles (one-to-one, created by
an insert trigger), categories, books, reading progress and access grants.
"""
from __future__ import annotations

import json
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    event,
)
from sqlalchemy.orm import declarative_base

from digilib.utils import constants
from digilib.utils.dates import isoformat, to_naive_utc, utcnow

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class AuthUser(Base):
    """Authentication identity owned by the backend.

    The application only creates rows through signup and verifies password
    hashes; everything profile-related lives in `UserProfile`.
    """

    __tablename__ = "auth_users"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    raw_user_meta_data = Column(Text, nullable=True)  # JSON object
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_sign_in_at = Column(DateTime, nullable=True)

    def user_metadata(self) -> dict:
        if not self.raw_user_meta_data:
            return {}
        try:
            value = json.loads(self.raw_user_meta_data)
        except ValueError:
            return {}
        return value if isinstance(value, dict) else {}

    def __repr__(self) -> str:  # pragma: no cover
        return f"<AuthUser id={self.id} email={self.email}>"


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id = Column(String(36), ForeignKey("auth_users.id", ondelete="CASCADE"), primary_key=True)
    name = Column(String(255), nullable=True)
    role = Column(String(16), nullable=False, default=constants.ROLE_USER)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == constants.ROLE_ADMIN

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<UserProfile id={self.id} role={self.role}>"


@event.listens_for(AuthUser, "after_insert")
def _handle_new_user(mapper, connection, target: AuthUser) -> None:
    """Signup trigger: every new auth identity gets a `user` profile row."""
    meta = target.user_metadata()
    name = meta.get("name") if isinstance(meta.get("name"), str) else None
    connection.execute(
        UserProfile.__table__.insert().values(
            id=target.id,
            name=(name or "").strip() or None,
            role=constants.ROLE_USER,
            created_at=target.created_at or utcnow(),
        )
    )


class Category(Base):
    """Static reference data; listed, never edited by the application."""

    __tablename__ = "categories"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    color = Column(String(16), nullable=True)
    icon = Column(String(16), nullable=True)
    description = Column(Text, nullable=True)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "icon": self.icon,
            "description": self.description,
        }


class Book(Base):
    __tablename__ = "books"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    description = Column(Text, nullable=True, default="")
    category = Column(String(64), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    pdf_path = Column(String(500), nullable=True)
    cover_path = Column(String(500), nullable=True)
    size = Column(BigInteger, nullable=False, default=0)
    total_pages = Column(Integer, nullable=False, default=0)
    price = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    created_by = Column(String(36), ForeignKey("auth_users.id", ondelete="SET NULL"), nullable=True)

    EDITABLE_FIELDS = (
        "name",
        "author",
        "description",
        "category",
        "pdf_path",
        "cover_path",
        "size",
        "total_pages",
        "price",
    )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "author": self.author,
            "description": self.description or "",
            "category": self.category,
            "pdf_path": self.pdf_path,
            "cover_path": self.cover_path,
            "size": int(self.size or 0),
            "total_pages": int(self.total_pages or 0),
            "price": int(self.price or 0),
            "created_at": isoformat(self.created_at),
            "created_by": self.created_by,
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Book id={self.id} name={self.name!r}>"


class ReadingProgress(Base):
    """One row per (user, book); the composite key enforces it."""

    __tablename__ = "reading_progress"

    user_id = Column(String(36), ForeignKey("auth_users.id", ondelete="CASCADE"), primary_key=True)
    book_id = Column(String(36), ForeignKey("books.id", ondelete="CASCADE"), primary_key=True)
    current_page = Column(Integer, nullable=False, default=1)
    total_pages = Column(Integer, nullable=True)
    progress = Column(Integer, nullable=False, default=0)
    last_read_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (Index("ix_reading_progress_user_last_read", "user_id", "last_read_at"),)

    def as_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "book_id": self.book_id,
            "current_page": self.current_page,
            "total_pages": self.total_pages,
            "progress": int(self.progress or 0),
            "last_read_at": isoformat(self.last_read_at),
        }


class BookAccess(Base):
    """Per-user/per-book grant; ``expires_at`` NULL means unlimited."""

    __tablename__ = "user_book_access"

    user_id = Column(String(36), ForeignKey("auth_users.id", ondelete="CASCADE"), primary_key=True)
    book_id = Column(String(36), ForeignKey("books.id", ondelete="CASCADE"), primary_key=True, index=True)
    granted_at = Column(DateTime, default=utcnow, nullable=False)
    granted_by = Column(String(36), ForeignKey("auth_users.id", ondelete="SET NULL"), nullable=True)
    expires_at = Column(DateTime, nullable=True)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return to_naive_utc(self.expires_at) <= to_naive_utc(now or utcnow())

    def as_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "book_id": self.book_id,
            "granted_at": isoformat(self.granted_at),
            "granted_by": self.granted_by,
            "expires_at": isoformat(self.expires_at),
        }


__all__ = [
    "Base",
    "AuthUser",
    "UserProfile",
    "Category",
    "Book",
    "ReadingProgress",
    "BookAccess",
]
