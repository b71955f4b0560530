"""Tests for book CRUD coupled to object storage."""
from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from digilib.db.engine import init_engine_once, reset_for_tests
from digilib.db.repositories import books_repo, categories_repo, user_profiles_repo
from digilib.services import auth_service, book_service, session_service, storage_service
from digilib.services.book_service import UploadedFile
from digilib.utils import PermissionError

PDF_BYTES = b"%PDF-1.4\n1 0 obj<<>>endobj\ntrailer<<>>\n%%EOF"


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch, tmp_path):
    reset_for_tests(drop=True)
    monkeypatch.setenv("DIGILIB_BACKEND_URL", "sqlite://")
    monkeypatch.setenv("DIGILIB_BACKEND_KEY", "books-test-key")
    monkeypatch.setenv("DIGILIB_STORAGE_ROOT", str(tmp_path / "storage"))
    init_engine_once()
    categories_repo.ensure_category("fiction", "Fiction")
    categories_repo.ensure_category("history", "History")
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def admin():
    user = auth_service.register_identity("admin@example.com", "secret123", "Admin")
    user_profiles_repo.set_role(user.id, "admin")
    return session_service.load_session_user(user.id)


def _pdf(name: str = "guide.pdf") -> UploadedFile:
    return UploadedFile(filename=name, data=PDF_BYTES, content_type="application/pdf")


def _data(**overrides):
    data = {"name": "Sundiata", "author": "D. T. Niane", "category": "history", "price": "1500"}
    data.update(overrides)
    return data


def test_create_book_uploads_pdf_then_inserts_row(admin):
    book = book_service.create_book(admin, _data(), pdf=_pdf())

    assert book["pdf_path"].endswith("/guide.pdf")
    assert book["size"] == len(PDF_BYTES)
    assert book["price"] == 1500
    assert book["created_by"] == admin.id
    assert storage_service.download("books", book["pdf_path"]) == PDF_BYTES
    assert book_service.get_book(book["id"])["name"] == "Sundiata"


def test_create_book_with_cover(admin):
    cover = UploadedFile(filename="cover.png", data=b"\x89PNG", content_type="image/png")

    book = book_service.create_book(admin, _data(), pdf=_pdf(), cover=cover)

    assert storage_service.exists("covers", book["cover_path"])
    assert book_service.get_cover_url(book).startswith("/storage/sign/covers/")


def test_failed_insert_removes_uploaded_pdf(monkeypatch, admin, tmp_path):
    def boom(**_fields):
        raise OperationalError("INSERT", {}, Exception("backend down"))

    monkeypatch.setattr(book_service.books_repo, "create_book", boom)

    with pytest.raises(book_service.BookPersistenceError):
        book_service.create_book(admin, _data(), pdf=_pdf())

    leftovers = [p for p in (tmp_path / "storage" / "books").rglob("*") if p.is_file()]
    assert leftovers == []


def test_delete_removes_storage_object_and_row(admin):
    book = book_service.create_book(admin, _data(), pdf=_pdf())

    book_service.delete_book(admin, book["id"])

    assert book_service.get_book(book["id"]) is None
    assert not storage_service.exists("books", book["pdf_path"])


def test_failed_row_delete_restores_objects(monkeypatch, admin):
    book = book_service.create_book(admin, _data(), pdf=_pdf())

    def boom(_book_id):
        raise OperationalError("DELETE", {}, Exception("backend down"))

    monkeypatch.setattr(book_service.books_repo, "delete_book", boom)

    with pytest.raises(book_service.BookPersistenceError):
        book_service.delete_book(admin, book["id"])

    assert storage_service.download("books", book["pdf_path"]) == PDF_BYTES
    assert books_repo.get_book(book["id"]) is not None


def test_failed_cover_removal_restores_pdf_and_keeps_row(monkeypatch, admin):
    cover = UploadedFile(filename="cover.png", data=b"\x89PNG", content_type="image/png")
    book = book_service.create_book(admin, _data(), pdf=_pdf(), cover=cover)
    real_remove = storage_service.remove

    def flaky_remove(bucket, paths):
        if bucket == "covers":
            raise storage_service.StorageError("remove_failed")
        return real_remove(bucket, paths)

    monkeypatch.setattr(storage_service, "remove", flaky_remove)

    with pytest.raises(storage_service.StorageError):
        book_service.delete_book(admin, book["id"])

    assert books_repo.get_book(book["id"]) is not None
    assert storage_service.download("books", book["pdf_path"]) == PDF_BYTES
    assert storage_service.exists("covers", book["cover_path"])


def test_delete_missing_book_raises(admin):
    with pytest.raises(book_service.BookNotFoundError):
        book_service.delete_book(admin, "no-such-book")


@pytest.mark.parametrize(
    "overrides, code",
    [
        ({"name": "  "}, "name_required"),
        ({"name": "x" * 201}, "name_too_long"),
        ({"author": "y" * 101}, "author_too_long"),
        ({"description": "z" * 1001}, "description_too_long"),
        ({"price": "-1"}, "price_invalid"),
        ({"price": "cheap"}, "price_invalid"),
        ({"category": "poetry"}, "category_unknown"),
    ],
)
def test_create_book_validation(admin, overrides, code):
    with pytest.raises(book_service.BookValidationError) as excinfo:
        book_service.create_book(admin, _data(**overrides))
    assert str(excinfo.value) == code


def test_pdf_type_and_size_checked(monkeypatch, admin):
    with pytest.raises(book_service.BookValidationError) as excinfo:
        book_service.create_book(admin, _data(), pdf=UploadedFile("notes.txt", b"hello", "text/plain"))
    assert str(excinfo.value) == "pdf_type_invalid"

    monkeypatch.setattr(book_service.constants, "MAX_BOOK_SIZE", 10)
    with pytest.raises(book_service.BookValidationError) as excinfo:
        book_service.create_book(admin, _data(), pdf=_pdf())
    assert str(excinfo.value) == "pdf_too_large"


def test_non_admin_cannot_create():
    reader = auth_service.register_identity("reader@example.com", "secret123", "Reader")

    with pytest.raises(PermissionError):
        book_service.create_book(reader, _data())


def test_update_book_never_changes_id(admin):
    book = book_service.create_book(admin, _data())

    updated = book_service.update_book(admin, book["id"], {"id": "other", "price": 2000, "category": "fiction"})

    assert updated["id"] == book["id"]
    assert updated["price"] == 2000
    assert updated["category"] == "fiction"
    assert updated["name"] == "Sundiata"


def test_update_missing_book_raises(admin):
    with pytest.raises(book_service.BookNotFoundError):
        book_service.update_book(admin, "missing", {"price": 10})


def test_read_url_is_signed_for_one_hour(admin):
    book = book_service.create_book(admin, _data(), pdf=_pdf())

    url = book_service.get_read_url(book["id"])

    token = url.split("token=", 1)[1]
    storage_service.verify_signed_token("books", book["pdf_path"], token)


def test_read_url_requires_pdf(admin):
    book = book_service.create_book(admin, _data())

    with pytest.raises(book_service.BookFileMissingError):
        book_service.get_read_url(book["id"])


def test_catalog_helpers_filter_search_and_stats():
    books = [
        {"id": "1", "name": "Sundiata", "author": "Niane", "description": "", "category": "history",
         "size": 100, "created_at": "2024-01-01T00:00:00"},
        {"id": "2", "name": "Les Soleils", "author": "Kourouma", "description": "roman", "category": "fiction",
         "size": 201, "created_at": "2024-03-01T00:00:00"},
        {"id": "3", "name": "Allah", "author": "Kourouma", "description": "", "category": "fiction",
         "size": 0, "created_at": "2024-02-01T00:00:00"},
    ]

    assert len(book_service.filter_by_category(books, "all")) == 3
    assert [b["id"] for b in book_service.filter_by_category(books, "fiction")] == ["2", "3"]
    assert [b["id"] for b in book_service.search_books(books, "kourouma")] == ["2", "3"]
    assert [b["id"] for b in book_service.search_books(books, "ROMAN")] == ["2"]
    assert [b["id"] for b in book_service.recent_books(books, limit=2)] == ["2", "3"]
    stats = book_service.book_stats(books)
    assert stats["total_books"] == 3
    assert stats["total_size"] == 301
    assert stats["category_counts"] == {"history": 1, "fiction": 2}
    assert stats["average_size"] == 100
