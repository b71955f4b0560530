"""Public catalog endpoints: categories, book listing/search, book detail."""
from __future__ import annotations

from typing import Any

from flask import Blueprint, current_app, jsonify, redirect, request, url_for

from digilib.config import metadata
from digilib.routes.responses import json_error
from digilib.services import book_access_service, book_service, category_service, session_service
from digilib.utils.formatters import format_date, format_price, format_size
from digilib.utils.logging import get_logger

LOG = get_logger("routes.catalog")
bp = Blueprint("catalog", __name__)


def _decorate(book: dict) -> dict:
    payload = dict(book)
    payload["category_name"] = category_service.category_name(book.get("category"))
    payload["category_color"] = category_service.category_color(book.get("category"))
    payload["category_icon"] = category_service.category_icon(book.get("category"))
    payload["size_label"] = format_size(book.get("size") or 0)
    payload["price_label"] = format_price(book.get("price"))
    payload["created_label"] = format_date(book.get("created_at"))
    payload["cover_url"] = book_service.get_cover_url(book)
    return payload


@bp.route("/api/meta", methods=["GET"])
def api_meta():
    payload = dict(metadata())
    payload["title"] = current_app.config.get("APP_TITLE")
    return jsonify(payload)


@bp.route("/api/categories", methods=["GET"])
def api_categories():
    return jsonify({"categories": category_service.list_categories(), "options": category_service.category_options()})


@bp.route("/api/books", methods=["GET"])
def api_books():
    books = book_service.list_books()
    books = book_service.filter_by_category(books, request.args.get("category"))
    books = book_service.search_books(books, request.args.get("q"))
    return jsonify({"books": [_decorate(b) for b in books], "count": len(books)})


@bp.route("/api/books/<book_id>", methods=["GET"])
def api_book(book_id: str):
    book = book_service.get_book(book_id)
    if book is None:
        return json_error("book_missing", 404)
    return jsonify({"book": _decorate(book)})


@bp.route("/books/<book_id>", methods=["GET"])
def book_detail(book_id: str):
    book = book_service.get_book(book_id)
    if book is None:
        LOG.info("Book detail for missing book_id=%s; redirecting to catalog", book_id)
        return redirect(url_for("catalog.api_books"))
    user = session_service.current_session_user()
    access = book_access_service.resolve_access(user, book_id)
    return jsonify({"book": _decorate(book), "access": access.to_payload(), "signed_in": user is not None})


def register_catalog(app: Any) -> None:
    if getattr(app, "_catalog_bp", None):
        return
    app.register_blueprint(bp)
    setattr(app, "_catalog_bp", bp)
    LOG.debug("catalog blueprint registered")


__all__ = ["register_catalog"]
