"""Tests for reader, catalog and signed storage routes."""
from __future__ import annotations

from datetime import timedelta

import pytest

from digilib.db.engine import reset_for_tests
from digilib.db.repositories import categories_repo, user_profiles_repo
from digilib.services import auth_service, book_access_service, book_service, session_service
from digilib.services.book_service import UploadedFile
from digilib.startup.wiring import create_app
from digilib.utils.dates import utcnow

PDF_BYTES = b"%PDF-1.4\n%%EOF"


@pytest.fixture
def app(monkeypatch, tmp_path):
    reset_for_tests(drop=True)
    monkeypatch.setenv("DIGILIB_BACKEND_URL", "sqlite://")
    monkeypatch.setenv("DIGILIB_BACKEND_KEY", "reader-routes-key")
    monkeypatch.setenv("DIGILIB_STORAGE_ROOT", str(tmp_path / "storage"))
    flask_app = create_app({"TESTING": True})
    categories_repo.ensure_category("fiction", "Fiction", icon="📖")
    yield flask_app
    reset_for_tests(drop=True)
    session_service.coordinator.clear()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin(app):
    user = auth_service.register_identity("admin@example.com", "secret123", "Admin")
    user_profiles_repo.set_role(user.id, "admin")
    return session_service.load_session_user(user.id)


@pytest.fixture
def reader(app):
    return auth_service.register_identity("reader@example.com", "secret123", "Reader")


@pytest.fixture
def book(admin):
    return book_service.create_book(
        admin,
        {"name": "Les Bouts de bois de Dieu", "author": "Ousmane Sembène", "category": "fiction", "price": 2500},
        pdf=UploadedFile("bouts.pdf", PDF_BYTES, "application/pdf"),
    )


def _login(client, email="reader@example.com"):
    resp = client.post("/auth/login", json={"email": email, "password": "secret123"})
    assert resp.status_code == 200


def test_catalog_lists_and_filters_books(client, book):
    resp = client.get("/api/books?category=fiction&q=OUSMANE")

    payload = resp.get_json()
    assert payload["count"] == 1
    assert payload["books"][0]["category_name"] == "Fiction"
    assert payload["books"][0]["price_label"] == "2 500 FCFA"
    assert client.get("/api/books?category=history").get_json()["count"] == 0


def test_catalog_book_missing_returns_404(client):
    resp = client.get("/api/books/missing")

    assert resp.status_code == 404
    assert resp.get_json()["error"] == "book_missing"


def test_book_detail_redirects_when_missing(client):
    resp = client.get("/books/missing")

    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/api/books")


def test_book_detail_reports_access_state(client, reader, book):
    _login(client)

    payload = client.get(f"/books/{book['id']}").get_json()

    assert payload["access"] == {"has_access": False, "expired": False, "status": "none"}


def test_reader_requires_login(client, book):
    assert client.get(f"/reader/{book['id']}").status_code == 401


def test_reader_redirects_for_missing_book(client, reader):
    _login(client)

    resp = client.get("/reader/missing")

    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/api/books")


def test_reader_denies_expired_grant(client, admin, reader, book):
    book_access_service.grant_access(admin, reader.id, book["id"], utcnow() - timedelta(days=1))
    _login(client)

    resp = client.get(f"/reader/{book['id']}")

    assert resp.status_code == 403
    payload = resp.get_json()
    assert payload["error"] == "access_expired"
    assert payload["details"] == {"expired": True}


def test_reader_serves_signed_pdf_and_tracks_progress(client, admin, reader, book):
    book_access_service.grant_access(admin, reader.id, book["id"])
    _login(client)

    opened = client.get(f"/reader/{book['id']}").get_json()
    assert opened["resume_page"] == 1
    pdf = client.get(opened["pdf_url"])
    assert pdf.status_code == 200
    assert pdf.data == PDF_BYTES

    saved = client.put(f"/reader/{book['id']}/progress", json={"current_page": 3, "total_pages": 8})
    assert saved.status_code == 200
    assert saved.get_json()["progress"]["progress"] == 38

    reopened = client.get(f"/reader/{book['id']}").get_json()
    assert reopened["resume_page"] == 3
    assert client.get("/me/stats").get_json()["total_books"] == 1
    assert [b["id"] for b in client.get("/me/books").get_json()["books"]] == [book["id"]]
    assert client.get("/me/progress").get_json()["recent"][0]["book_id"] == book["id"]


def test_progress_rejects_invalid_page(client, admin, reader, book):
    book_access_service.grant_access(admin, reader.id, book["id"])
    _login(client)

    resp = client.put(f"/reader/{book['id']}/progress", json={"current_page": 0})

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "page_invalid"

    listed = client.put(f"/reader/{book['id']}/progress", json=[3, 8])
    assert listed.status_code == 400
    assert listed.get_json()["error"] == "payload_invalid"


def test_admin_reads_without_grant(client, book):
    _login(client, "admin@example.com")

    assert client.get(f"/reader/{book['id']}").status_code == 200


def test_storage_route_rejects_bad_tokens(client, book):
    url = book_service.get_read_url(book["id"])
    path = url.split("?", 1)[0]

    assert client.get(path).status_code == 403
    assert client.get(path + "?token=garbage").status_code == 403
    other = book_service.get_read_url(book["id"]).replace("bouts.pdf", "other.pdf")
    assert client.get(other).status_code == 403
