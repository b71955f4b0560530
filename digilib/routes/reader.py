"""Reader and "my library" endpoints for signed-in users."""
from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify, redirect, url_for

from digilib.routes.responses import json_error, json_payload, require_user
from digilib.services import book_access_service, book_service, reader_service, reading_progress_service
from digilib.services.session_service import SessionUser
from digilib.services.storage_service import StorageError
from digilib.utils.formatters import format_datetime
from digilib.utils.logging import get_logger

LOG = get_logger("routes.reader")
bp = Blueprint("reader", __name__)


@bp.route("/reader/<book_id>", methods=["GET"])
def open_reader(book_id: str):
    user = require_user()
    if not isinstance(user, SessionUser):
        return user
    try:
        result = reader_service.open_book(user, book_id)
    except book_service.BookNotFoundError:
        return redirect(url_for("catalog.api_books"))
    except reader_service.AccessDeniedError as exc:
        return json_error(str(exc), 403, details={"expired": exc.expired})
    except book_service.BookFileMissingError:
        return json_error("pdf_missing", 404)
    except StorageError:
        LOG.exception("Signing read URL failed book_id=%s", book_id)
        return json_error("storage_error", 502)
    return jsonify(result)


@bp.route("/reader/<book_id>/progress", methods=["PUT"])
def save_progress(book_id: str):
    user = require_user()
    if not isinstance(user, SessionUser):
        return user
    payload = json_payload()
    if payload is None:
        return json_error("payload_invalid", 400)
    try:
        progress = reader_service.turn_page(user, book_id, payload.get("current_page"), payload.get("total_pages"))
    except book_service.BookNotFoundError:
        return json_error("book_missing", 404)
    except reader_service.AccessDeniedError as exc:
        return json_error(str(exc), 403, details={"expired": exc.expired})
    except reading_progress_service.ProgressValidationError as exc:
        return json_error(str(exc), 400)
    return jsonify({"progress": progress})


@bp.route("/me/books", methods=["GET"])
def my_books():
    user = require_user()
    if not isinstance(user, SessionUser):
        return user
    books = book_access_service.get_user_accessible_books(user.id)
    return jsonify({"books": books, "count": len(books)})


@bp.route("/me/progress", methods=["GET"])
def my_progress():
    user = require_user()
    if not isinstance(user, SessionUser):
        return user
    return jsonify(
        {
            "progress": reading_progress_service.get_user_reading_progress(user.id),
            "recent": reading_progress_service.get_recently_read(user.id),
        }
    )


@bp.route("/me/stats", methods=["GET"])
def my_stats():
    user = require_user()
    if not isinstance(user, SessionUser):
        return user
    stats = reading_progress_service.get_reading_stats(user.id)
    stats["last_read_label"] = format_datetime(stats["last_read_at"])
    return jsonify(stats)


def register_reader(app: Any) -> None:
    if getattr(app, "_reader_bp", None):
        return
    app.register_blueprint(bp)
    setattr(app, "_reader_bp", bp)
    LOG.debug("reader blueprint registered")


__all__ = ["register_reader"]
