"""Identity & permission helpers (session keys, email normalization, admin guard)."""
from __future__ import annotations

from typing import Any, Optional

from flask import session

SESSION_USER_ID_KEY = "user_id"
SESSION_EMAIL_KEY = "email"


def normalize_email(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    cleaned = raw.strip().lower()
    return cleaned or None


def get_current_user_id() -> Optional[str]:
    uid = session.get(SESSION_USER_ID_KEY)
    if uid is None:
        return None
    uid = str(uid).strip()
    return uid or None


def store_identity_session(user_id: str, email: str) -> None:
    session[SESSION_USER_ID_KEY] = user_id
    session[SESSION_EMAIL_KEY] = email


def clear_identity_session() -> None:
    session.pop(SESSION_USER_ID_KEY, None)
    session.pop(SESSION_EMAIL_KEY, None)


class PermissionError(Exception):
    pass


class AuthenticationRequiredError(PermissionError):
    pass


def ensure_authenticated(user: Any) -> None:
    if user is None:
        raise AuthenticationRequiredError("Authentication required")


def ensure_admin(user: Any) -> None:
    """Raise unless ``user`` is a signed-in administrator.

    ``user`` is the explicitly passed session user; there is no ambient lookup.
    """
    ensure_authenticated(user)
    if not getattr(user, "is_admin", False):
        raise PermissionError("Admin privileges required")


__all__ = [
    "SESSION_USER_ID_KEY",
    "SESSION_EMAIL_KEY",
    "normalize_email",
    "get_current_user_id",
    "store_identity_session",
    "clear_identity_session",
    "PermissionError",
    "AuthenticationRequiredError",
    "ensure_authenticated",
    "ensure_admin",
]
