"""Tests for admin user management."""
from __future__ import annotations

import pytest
from flask import Flask, session

from digilib.db.engine import init_engine_once, reset_for_tests
from digilib.db.repositories import books_repo, categories_repo, user_profiles_repo
from digilib.services import auth_service, book_access_service, session_service, user_service
from digilib.utils import PermissionError


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch, tmp_path):
    reset_for_tests(drop=True)
    monkeypatch.setenv("DIGILIB_BACKEND_URL", "sqlite://")
    monkeypatch.setenv("DIGILIB_BACKEND_KEY", "users-test-key")
    monkeypatch.setenv("DIGILIB_STORAGE_ROOT", str(tmp_path / "storage"))
    init_engine_once()
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def admin():
    user = auth_service.register_identity("admin@example.com", "secret123", "Admin")
    user_profiles_repo.set_role(user.id, "admin")
    return session_service.load_session_user(user.id)


def test_create_user_keeps_admin_session(admin):
    app = Flask(__name__)
    app.config["SECRET_KEY"] = "users-secret"
    with app.test_request_context("/admin/api/users"):
        session["user_id"] = admin.id

        created = user_service.create_user(admin, "new@example.com", "Ibrahima", "secret123")

        assert session["user_id"] == admin.id
    assert created["email"] == "new@example.com"
    assert created["name"] == "Ibrahima"
    assert created["role"] == "user"


def test_list_users_with_access_counts(admin):
    reader = auth_service.register_identity("reader@example.com", "secret123", "Reader")
    categories_repo.ensure_category("fiction", "Fiction")
    book = books_repo.create_book(name="Maïmouna", author="Abdoulaye Sadji", category="fiction")
    book_access_service.grant_access(admin, reader.id, book.id)

    users = {u["email"]: u for u in user_service.list_users_with_access_counts(admin)}

    assert users["reader@example.com"]["access_count"] == 1
    assert users["admin@example.com"]["access_count"] == 0


def test_get_user_missing_returns_none(admin):
    assert user_service.get_user(admin, "missing") is None
    assert user_service.get_user(admin, admin.id)["email"] == "admin@example.com"


def test_user_management_requires_admin():
    reader = auth_service.register_identity("reader@example.com", "secret123", "Reader")

    with pytest.raises(PermissionError):
        user_service.list_users(reader)
    with pytest.raises(PermissionError):
        user_service.create_user(None, "x@example.com", "X", "secret123")
