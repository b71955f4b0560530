"""Admin JSON API under /admin/api.

Routes:
    /admin/api/stats                          -> dashboard counters
    /admin/api/books[/<id>]                   -> book CRUD (multipart upload on create)
    /admin/api/books/<id>/access              -> grants for one book
    /admin/api/users[/<id>]                   -> user create / list / detail
    /admin/api/users/<id>/access[/<book_id>]  -> grant management for one user

Every route resolves the session user first: anonymous callers get 401,
non-admins 403.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from flask import Blueprint, jsonify, request

from digilib.routes.responses import json_error, json_payload, require_admin_json
from digilib.services import (
    auth_service,
    book_access_service,
    book_service,
    category_service,
    storage_service,
    user_service,
)
from digilib.services.book_service import UploadedFile
from digilib.services.session_service import SessionUser
from digilib.utils.logging import get_logger

LOG = get_logger("routes.admin")
bp = Blueprint("admin_api", __name__, url_prefix="/admin/api")


def _book_payload() -> Optional[Dict[str, Any]]:
    if request.mimetype and request.mimetype.startswith("multipart/"):
        return request.form.to_dict()
    return json_payload()


def _uploaded(field: str) -> Optional[UploadedFile]:
    storage = request.files.get(field)
    if storage is None or not storage.filename:
        return None
    return UploadedFile.from_file_storage(storage)


@bp.route("/stats", methods=["GET"])
def api_stats():
    admin = require_admin_json()
    if not isinstance(admin, SessionUser):
        return admin
    users = user_service.list_users_with_access_counts(admin)
    return jsonify(
        {
            "books": book_service.book_stats(),
            "total_users": len(users),
            "total_grants": sum(u["access_count"] for u in users),
            "categories": len(category_service.list_categories()),
        }
    )


@bp.route("/books", methods=["GET"])
def api_books_list():
    admin = require_admin_json()
    if not isinstance(admin, SessionUser):
        return admin
    books = book_service.list_books()
    books = book_service.filter_by_category(books, request.args.get("category"))
    books = book_service.search_books(books, request.args.get("q"))
    return jsonify({"books": books, "count": len(books)})


@bp.route("/books", methods=["POST"])
def api_books_create():
    admin = require_admin_json()
    if not isinstance(admin, SessionUser):
        return admin
    payload = _book_payload()
    if payload is None:
        return json_error("payload_invalid", 400)
    try:
        book = book_service.create_book(admin, payload, pdf=_uploaded("pdf"), cover=_uploaded("cover"))
    except book_service.BookValidationError as exc:
        return json_error(str(exc), 400)
    except book_service.BookPersistenceError as exc:
        return json_error(str(exc), 500)
    except storage_service.StorageError:
        LOG.exception("Book upload failed")
        return json_error("storage_error", 502)
    return jsonify({"book": book}), 201


@bp.route("/books/<book_id>", methods=["PATCH"])
def api_books_update(book_id: str):
    admin = require_admin_json()
    if not isinstance(admin, SessionUser):
        return admin
    payload = _book_payload()
    if payload is None:
        return json_error("payload_invalid", 400)
    try:
        book = book_service.update_book(admin, book_id, payload)
    except book_service.BookValidationError as exc:
        return json_error(str(exc), 400)
    except book_service.BookNotFoundError:
        return json_error("book_missing", 404)
    return jsonify({"book": book})


@bp.route("/books/<book_id>", methods=["DELETE"])
def api_books_delete(book_id: str):
    admin = require_admin_json()
    if not isinstance(admin, SessionUser):
        return admin
    try:
        book_service.delete_book(admin, book_id)
    except book_service.BookNotFoundError:
        return json_error("book_missing", 404)
    except book_service.BookPersistenceError as exc:
        return json_error(str(exc), 500)
    except storage_service.StorageError:
        LOG.exception("Book storage removal failed book_id=%s", book_id)
        return json_error("storage_error", 502)
    return jsonify({"status": "deleted", "id": book_id})


@bp.route("/books/<book_id>/access", methods=["GET"])
def api_book_access(book_id: str):
    admin = require_admin_json()
    if not isinstance(admin, SessionUser):
        return admin
    book = book_service.get_book(book_id)
    if book is None:
        return json_error("book_missing", 404)
    return jsonify({"book": book, "access": book_access_service.get_book_access_list(book_id)})


@bp.route("/users", methods=["GET"])
def api_users_list():
    admin = require_admin_json()
    if not isinstance(admin, SessionUser):
        return admin
    return jsonify({"users": user_service.list_users_with_access_counts(admin)})


@bp.route("/users", methods=["POST"])
def api_users_create():
    admin = require_admin_json()
    if not isinstance(admin, SessionUser):
        return admin
    payload = json_payload()
    if payload is None:
        return json_error("payload_invalid", 400)
    try:
        user = user_service.create_user(admin, payload.get("email"), payload.get("name"), payload.get("password"))
    except auth_service.AuthValidationError as exc:
        return json_error(str(exc), 400)
    except auth_service.EmailAlreadyRegisteredError:
        return json_error("email_already_registered", 409)
    return jsonify({"user": user}), 201


@bp.route("/users/<user_id>", methods=["GET"])
def api_users_get(user_id: str):
    admin = require_admin_json()
    if not isinstance(admin, SessionUser):
        return admin
    user = user_service.get_user(admin, user_id)
    if user is None:
        return json_error("user_missing", 404)
    return jsonify({"user": user})


@bp.route("/users/<user_id>/access", methods=["GET"])
def api_user_access(user_id: str):
    """Everything the user-access page needs in one response."""
    admin = require_admin_json()
    if not isinstance(admin, SessionUser):
        return admin
    user = user_service.get_user(admin, user_id)
    if user is None:
        return json_error("user_missing", 404)
    return jsonify(
        {
            "user": user,
            "access": book_access_service.get_user_access(user_id),
            "books": book_service.list_books(),
        }
    )


@bp.route("/users/<user_id>/access", methods=["POST"])
def api_user_access_grant(user_id: str):
    admin = require_admin_json()
    if not isinstance(admin, SessionUser):
        return admin
    payload = json_payload()
    if payload is None:
        return json_error("payload_invalid", 400)
    book_id = payload.get("book_id")
    if not book_id:
        return json_error("book_missing", 400)
    try:
        grant = book_access_service.grant_access(admin, user_id, book_id, payload.get("expires_at"))
    except book_access_service.AccessGrantError as exc:
        code = str(exc)
        return json_error(code, 404 if code in ("user_missing", "book_missing") else 400)
    return jsonify({"access": grant}), 201


@bp.route("/users/<user_id>/access/<book_id>", methods=["DELETE"])
def api_user_access_revoke(user_id: str, book_id: str):
    admin = require_admin_json()
    if not isinstance(admin, SessionUser):
        return admin
    removed = book_access_service.revoke_access(admin, user_id, book_id)
    return jsonify({"status": "revoked" if removed else "absent"})


def register_admin(app: Any) -> None:
    if getattr(app, "_admin_api_bp", None):
        return
    app.register_blueprint(bp)
    setattr(app, "_admin_api_bp", bp)
    LOG.debug("admin api blueprint registered")


__all__ = ["register_admin"]
