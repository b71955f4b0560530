"""Shared JSON response helpers for the route blueprints.

Service exceptions carry short machine codes; `json_error` maps a code to a
human message and status. `require_user` / `require_admin_json` resolve the
explicit session user, returning either the user or an error response.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Tuple, Union

from flask import Response, jsonify, request

from digilib.services import session_service
from digilib.services.session_service import SessionUser

ERROR_MESSAGES = {
    "authentication_required": "Sign in to continue.",
    "admin_required": "Administrator access is required.",
    "invalid_credentials": "Incorrect email or password",
    "email_already_registered": "An account with this email already exists.",
    "email_invalid": "Enter a valid email address.",
    "name_required": "Name is required.",
    "password_too_short": "Password must be at least 6 characters.",
    "book_missing": "Book not found.",
    "user_missing": "User not found.",
    "pdf_missing": "This book has no PDF file.",
    "pdf_type_invalid": "Only PDF files are accepted.",
    "pdf_empty": "The PDF file is empty.",
    "pdf_too_large": "The PDF file exceeds 100 MB.",
    "name_too_long": "Title must be at most 200 characters.",
    "author_required": "Author is required.",
    "author_too_long": "Author must be at most 100 characters.",
    "description_too_long": "Description must be at most 1000 characters.",
    "category_required": "Category is required.",
    "category_unknown": "Unknown category.",
    "price_invalid": "Price must be a whole number of at least 0.",
    "total_pages_invalid": "Total pages must be a positive whole number.",
    "size_invalid": "Size must be a positive whole number.",
    "page_invalid": "Page must be a whole number of at least 1.",
    "expires_at_invalid": "Enter a valid expiry date.",
    "access_denied": "You do not have access to this book.",
    "access_expired": "Your access to this book has expired.",
    "book_insert_failed": "The book could not be saved.",
    "book_delete_failed": "The book could not be deleted.",
    "storage_error": "File storage request failed.",
    "invalid_token": "This link is invalid.",
    "token_required": "This link is invalid.",
    "token_mismatch": "This link is invalid.",
    "token_expired": "This link has expired.",
    "object_missing": "File not found.",
    "payload_invalid": "Request body must be a JSON object.",
    "password_required": "Enter your current password.",
    "password_mismatch": "The new passwords do not match.",
}


def error_message_for(code: str) -> Optional[str]:
    return ERROR_MESSAGES.get(code)


def json_error(
    code: str,
    status: int = 400,
    *,
    message: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Tuple[Response, int]:
    payload: Dict[str, Any] = {"error": code}
    final_message = message or error_message_for(code)
    if final_message:
        payload["message"] = final_message
    if details is not None:
        payload["details"] = details
    return jsonify(payload), status


ErrorResponse = Tuple[Response, int]


def json_payload() -> Optional[Dict[str, Any]]:
    """The JSON body as a dict; a missing body is empty, any non-object is None."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    return payload if isinstance(payload, dict) else None


def require_user() -> Union[SessionUser, ErrorResponse]:
    user = session_service.current_session_user()
    if user is None:
        return json_error("authentication_required", 401)
    return user


def require_admin_json() -> Union[SessionUser, ErrorResponse]:
    user = require_user()
    if not isinstance(user, SessionUser):
        return user
    if not user.is_admin:
        return json_error("admin_required", 403)
    return user


__all__ = [
    "ERROR_MESSAGES",
    "error_message_for",
    "json_error",
    "json_payload",
    "require_user",
    "require_admin_json",
]
