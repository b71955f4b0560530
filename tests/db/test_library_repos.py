"""Tests for the library repositories using in-memory SQLite."""
from __future__ import annotations

from datetime import timedelta

import pytest

from digilib.db import app_session
from digilib.db.engine import init_engine_once, reset_for_tests
from digilib.db.models import BookAccess, ReadingProgress, UserProfile
from digilib.db.repositories import (
    auth_users_repo,
    book_access_repo,
    books_repo,
    categories_repo,
    reading_progress_repo,
    user_profiles_repo,
)
from digilib.utils.dates import utcnow


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch, tmp_path):
    reset_for_tests(drop=True)
    monkeypatch.setenv("DIGILIB_BACKEND_URL", "sqlite://")
    monkeypatch.setenv("DIGILIB_BACKEND_KEY", "repo-test-key")
    monkeypatch.setenv("DIGILIB_STORAGE_ROOT", str(tmp_path / "storage"))
    init_engine_once()
    yield
    reset_for_tests(drop=True)


def _user(email: str = "reader@example.com", name: str = "Reader"):
    return auth_users_repo.create_auth_user(email, "hash", {"name": name})


def _book(name: str = "Le Petit Prince"):
    categories_repo.ensure_category("fiction", "Fiction")
    return books_repo.create_book(name=name, author="Saint-Exupéry", category="fiction")


def test_signup_trigger_creates_user_profile():
    identity = _user(name="  Awa Diop ")

    profile = user_profiles_repo.get_profile(identity.id)

    assert profile is not None
    assert profile.name == "Awa Diop"
    assert profile.role == "user"
    row = user_profiles_repo.get_profile_with_email(identity.id)
    assert row is not None and row[1] == "reader@example.com"


def test_duplicate_email_raises_exists_error():
    _user()

    with pytest.raises(auth_users_repo.AuthUserExistsError):
        _user()

    with app_session() as session:
        assert session.query(UserProfile).count() == 1


def test_ensure_category_is_idempotent():
    assert categories_repo.ensure_category("science", "Science", color="#0ea5e9") is True
    assert categories_repo.ensure_category("science", "Renamed") is False
    assert categories_repo.get_category("science").name == "Science"


def test_upsert_progress_keeps_single_row():
    user = _user()
    book = _book()

    for page in (1, 5, 3):
        reading_progress_repo.upsert_progress(
            user_id=user.id,
            book_id=book.id,
            current_page=page,
            total_pages=10,
            progress=page * 10,
            last_read_at=utcnow(),
        )

    assert reading_progress_repo.count_rows(user.id, book.id) == 1
    assert reading_progress_repo.get_progress(user.id, book.id).current_page == 3


def test_upsert_grant_overwrites_expiry():
    user = _user()
    book = _book()
    first_expiry = utcnow() + timedelta(days=3)

    book_access_repo.upsert_grant(
        user_id=user.id, book_id=book.id, granted_by=None, granted_at=utcnow(), expires_at=first_expiry
    )
    book_access_repo.upsert_grant(
        user_id=user.id, book_id=book.id, granted_by=None, granted_at=utcnow(), expires_at=None
    )

    grant = book_access_repo.get_grant(user.id, book.id)
    assert grant.expires_at is None
    assert book_access_repo.count_by_user() == {user.id: 1}


def test_deleting_book_cascades_progress_and_grants():
    user = _user()
    book = _book()
    reading_progress_repo.upsert_progress(
        user_id=user.id, book_id=book.id, current_page=2, total_pages=4, progress=50, last_read_at=utcnow()
    )
    book_access_repo.upsert_grant(
        user_id=user.id, book_id=book.id, granted_by=None, granted_at=utcnow(), expires_at=None
    )

    assert books_repo.delete_book(book.id) is True

    with app_session() as session:
        assert session.query(ReadingProgress).count() == 0
        assert session.query(BookAccess).count() == 0
    assert books_repo.delete_book(book.id) is False


def test_list_for_book_with_profiles_joins_profile():
    user = _user(name="Moussa")
    book = _book()
    book_access_repo.upsert_grant(
        user_id=user.id, book_id=book.id, granted_by=None, granted_at=utcnow(), expires_at=None
    )

    rows = book_access_repo.list_for_book_with_profiles(book.id)

    assert len(rows) == 1
    grant, profile = rows[0]
    assert grant.user_id == user.id
    assert profile.name == "Moussa"
