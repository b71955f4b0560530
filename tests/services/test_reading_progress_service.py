"""Tests for reading progress upsert semantics and statistics."""
from __future__ import annotations

from datetime import timedelta

import pytest

from digilib.db.engine import init_engine_once, reset_for_tests
from digilib.db.repositories import books_repo, categories_repo, reading_progress_repo
from digilib.services import auth_service, reading_progress_service
from digilib.services.reading_progress_service import ProgressValidationError, compute_progress_percent
from digilib.utils.dates import utcnow


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch, tmp_path):
    reset_for_tests(drop=True)
    monkeypatch.setenv("DIGILIB_BACKEND_URL", "sqlite://")
    monkeypatch.setenv("DIGILIB_BACKEND_KEY", "progress-test-key")
    monkeypatch.setenv("DIGILIB_STORAGE_ROOT", str(tmp_path / "storage"))
    init_engine_once()
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def reader():
    return auth_service.register_identity("reader@example.com", "secret123", "Reader")


@pytest.fixture
def books():
    categories_repo.ensure_category("science", "Science")
    return [
        books_repo.create_book(name=f"Volume {idx}", author="Cheikh Anta Diop", category="science")
        for idx in range(3)
    ]


@pytest.mark.parametrize(
    "current, total, expected",
    [(1, 8, 13), (1, 3, 33), (2, 3, 67), (5, 10, 50), (10, 10, 100), (15, 10, 100), (1, 200, 1)],
)
def test_compute_progress_percent_rounds_half_up(current, total, expected):
    assert compute_progress_percent(current, total) == expected


def test_page_turns_keep_one_row(reader, books):
    book = books[0]
    for page in (1, 2, 3, 2, 9):
        reading_progress_service.save_reading_progress(reader.id, book.id, page, 10)

    assert reading_progress_repo.count_rows(reader.id, book.id) == 1
    saved = reading_progress_service.get_reading_progress(reader.id, book.id)
    assert saved["current_page"] == 9
    assert saved["progress"] == 90


def test_total_pages_fall_back_to_stored_value(reader, books):
    book = books[0]
    reading_progress_service.save_reading_progress(reader.id, book.id, 5, 10)

    saved = reading_progress_service.save_reading_progress(reader.id, book.id, 7)

    assert saved["total_pages"] == 10
    assert saved["progress"] == 70


def test_unknown_total_keeps_previous_progress(reader, books):
    book = books[0]

    first = reading_progress_service.save_reading_progress(reader.id, book.id, 3)

    assert first["progress"] == 0
    assert first["total_pages"] is None
    assert first["current_page"] == 3


def test_page_beyond_total_is_clamped(reader, books):
    saved = reading_progress_service.save_reading_progress(reader.id, books[0].id, 42, 20)

    assert saved["current_page"] == 20
    assert saved["progress"] == 100


@pytest.mark.parametrize("page", [0, -3, "abc", None])
def test_invalid_pages_are_rejected(reader, books, page):
    with pytest.raises(ProgressValidationError):
        reading_progress_service.save_reading_progress(reader.id, books[0].id, page, 10)
    assert reading_progress_service.get_reading_progress(reader.id, books[0].id) is None


def test_recently_read_orders_by_last_read(reader, books):
    now = utcnow()
    for offset, book in enumerate(books):
        reading_progress_service.save_reading_progress(
            reader.id, book.id, 1, 10, now=now - timedelta(hours=offset)
        )

    recent = reading_progress_service.get_recently_read(reader.id, limit=2)

    assert [r["book_id"] for r in recent] == [books[0].id, books[1].id]


def test_reading_stats_summarize_progress(reader, books):
    now = utcnow()
    reading_progress_service.save_reading_progress(reader.id, books[0].id, 10, 10, now=now)
    reading_progress_service.save_reading_progress(reader.id, books[1].id, 5, 10, now=now - timedelta(days=1))
    reading_progress_service.save_reading_progress(reader.id, books[2].id, 1)

    stats = reading_progress_service.get_reading_stats(reader.id)

    assert stats["total_books"] == 3
    assert stats["completed_books"] == 1
    assert stats["in_progress_books"] == 1
    assert stats["average_progress"] == 50


def test_empty_stats_and_delete(reader, books):
    assert reading_progress_service.get_reading_stats(reader.id) == {
        "total_books": 0,
        "completed_books": 0,
        "in_progress_books": 0,
        "average_progress": 0,
        "last_read_at": None,
    }
    reading_progress_service.save_reading_progress(reader.id, books[0].id, 2, 4)

    assert reading_progress_service.delete_reading_progress(reader.id, books[0].id) is True
    assert reading_progress_service.get_user_reading_progress(reader.id) == []
